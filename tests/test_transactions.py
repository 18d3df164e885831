from pathlib import Path

from bson import ObjectId

from expense_tracker.mongo_collections import TRANSACTION_HISTORY
from expense_tracker.services import uploads

from conftest import run

FORM = {
    "type": "expense",
    "category": "Food",
    "amount": "25.5",
    "date": "2024-05-03T12:00:00Z",
    "item": "Pizza",
    "icon": "pizza",
    "note": "friday",
}


def _create(client, headers, files=None, **overrides):
    resp = client.post("/api/transactions", data={**FORM, **overrides}, files=files, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_writes_history_mirror(client, db, alice):
    tx = _create(client, alice["headers"])
    assert tx["amount"] == 25.5
    assert tx["paymentMethod"] == "cash"
    assert tx["invoice"] is None

    row = run(db[TRANSACTION_HISTORY].find_one({"transactionId": ObjectId(tx["_id"])}))
    assert row["title"] == "Pizza"
    assert row["icon"] == "pizza"
    assert row["note"] == "friday"
    assert row["type"] == "expense"


def test_create_requires_item_or_description(client, alice):
    form = {k: v for k, v in FORM.items() if k != "item"}
    resp = client.post("/api/transactions", data=form, headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json() == {"error": "Item or description is required"}


def test_create_rejects_bad_type(client, alice):
    resp = client.post("/api/transactions", data={**FORM, "type": "transfer"}, headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["message"] == "Validation failed"


def test_invoice_upload_and_cleanup(client, alice):
    files = {"invoice": ("bill.pdf", b"%PDF-1.4 test", "application/pdf")}
    tx = _create(client, alice["headers"], files=files)
    assert tx["invoice"].startswith("/uploads/invoices/invoice-")
    stored = uploads.local_path(tx["invoice"])
    assert stored.exists()

    new_files = {"invoice": ("bill2.png", b"\x89PNG", "image/png")}
    resp = client.put(f"/api/transactions/{tx['_id']}", data={"amount": "30"}, files=new_files, headers=alice["headers"])
    assert resp.status_code == 200
    updated = resp.json()
    assert updated["amount"] == 30
    assert not stored.exists()
    replaced = uploads.local_path(updated["invoice"])
    assert replaced.exists()

    assert client.delete(f"/api/transactions/{tx['_id']}", headers=alice["headers"]).status_code == 200
    assert not Path(replaced).exists()


def test_invoice_type_is_checked(client, alice):
    files = {"invoice": ("notes.txt", b"hello", "text/plain")}
    resp = client.post("/api/transactions", data=FORM, files=files, headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["message"] == "Only images (jpeg, jpg, png) and PDF files are allowed!"


def test_update_and_delete_keep_mirror_in_sync(client, db, alice):
    tx = _create(client, alice["headers"])
    tx_id = ObjectId(tx["_id"])

    resp = client.put(f"/api/transactions/{tx['_id']}", data={"item": "Pasta", "description": "Pasta"}, headers=alice["headers"])
    assert resp.status_code == 200
    assert run(db[TRANSACTION_HISTORY].find_one({"transactionId": tx_id}))["title"] == "Pasta"
    assert run(db[TRANSACTION_HISTORY].count_documents({})) == 1

    client.delete(f"/api/transactions/{tx['_id']}", headers=alice["headers"])
    assert run(db[TRANSACTION_HISTORY].count_documents({})) == 0


def test_mirror_failure_does_not_fail_request(client, alice, monkeypatch):
    from expense_tracker.services import transaction_history

    async def boom(*args, **kwargs):
        raise RuntimeError("mirror down")

    monkeypatch.setattr(transaction_history, "create_history_from_transaction", boom)
    tx = _create(client, alice["headers"])
    resp = client.get(f"/api/transactions/{tx['_id']}", headers=alice["headers"])
    assert resp.status_code == 200


def test_list_is_paginated_and_scoped(client, alice, bob):
    for i in range(3):
        _create(client, alice["headers"], date=f"2024-05-0{i + 1}T00:00:00Z", item=f"item {i}")
    _create(client, bob["headers"])

    body = client.get("/api/transactions?page=1&limit=2", headers=alice["headers"]).json()
    assert body["total"] == 3
    assert body["totalPages"] == 2
    assert body["currentPage"] == 1
    assert [t["item"] for t in body["transactions"]] == ["item 2", "item 1"]

    resp = client.get(f"/api/transactions/{body['transactions'][0]['_id']}", headers=bob["headers"])
    assert resp.status_code == 404
    assert resp.json() == {"error": "Transaction not found"}


def test_history_summary(client, alice):
    _create(client, alice["headers"])
    _create(client, alice["headers"], type="income", category="Salary", amount="100", item="Pay")

    body = client.get("/api/transactions/history", headers=alice["headers"]).json()
    assert body["success"] is True
    assert body["summary"] == {"totalIncome": 100, "totalExpense": 25.5, "netAmount": 74.5, "transactionCount": 2}

    body = client.get("/api/transactions/history?type=income", headers=alice["headers"]).json()
    assert body["summary"]["transactionCount"] == 1


def test_amount_only_update_keeps_icon_and_note(client, db, alice):
    tx = _create(client, alice["headers"])

    resp = client.put(f"/api/transactions/{tx['_id']}", data={"amount": "30"}, headers=alice["headers"])
    assert resp.status_code == 200

    row = run(db[TRANSACTION_HISTORY].find_one({"transactionId": ObjectId(tx["_id"])}))
    assert row["amount"] == 30.0
    assert row["icon"] == "pizza"
    assert row["note"] == "friday"

    client.put(f"/api/transactions/{tx['_id']}", data={"icon": "pasta"}, headers=alice["headers"])
    row = run(db[TRANSACTION_HISTORY].find_one({"transactionId": ObjectId(tx["_id"])}))
    assert row["icon"] == "pasta"
    assert row["note"] == "friday"
