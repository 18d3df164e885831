from bson import ObjectId

from expense_tracker.mongo_collections import EXPENSES

from conftest import run

DETECTION = {
    "detectedAmount": 199.999,
    "detectedTitle": "Swiggy order",
    "originalDate": "2024-05-01T09:30:00Z",
    "source": "SMS",
    "category": "Food",
}


def _create(client, headers, **fields):
    resp = client.post("/api/auto-expenses", json={**DETECTION, **fields}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def test_create_defaults(client, alice):
    doc = _create(client, alice["headers"])
    assert doc["status"] == "Detected"
    assert doc["detectedAmount"] == 200.0
    assert doc["confidence"] == 80
    assert doc["expenseId"] is None


def test_create_validation(client, alice):
    resp = client.post("/api/auto-expenses", json={**DETECTION, "detectedAmount": 0}, headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["message"] == "Detected amount must be greater than 0"

    resp = client.post(
        "/api/auto-expenses", json={**DETECTION, "originalDate": "2999-01-01T00:00:00Z"}, headers=alice["headers"]
    )
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["message"] == "Original date cannot be in the future"


def test_save_creates_linked_expense(client, db, alice):
    doc = _create(client, alice["headers"])
    resp = client.patch(f"/api/auto-expenses/{doc['_id']}/save", headers=alice["headers"])
    assert resp.status_code == 200
    saved = resp.json()["data"]
    assert saved["status"] == "Saved"

    expense = run(db[EXPENSES].find_one({"_id": ObjectId(saved["expenseId"])}))
    assert expense["title"] == "Swiggy order"
    assert expense["amount"] == 200.0

    detail = client.get(f"/api/auto-expenses/{doc['_id']}", headers=alice["headers"]).json()["data"]
    assert detail["expenseId"]["title"] == "Swiggy order"
    assert detail["userId"]["email"] == "alice@example.com"


def test_save_with_foreign_expense_is_rejected(client, alice, bob):
    doc = _create(client, alice["headers"])
    expense = client.post(
        "/api/expenses", json={"title": "Bob's", "amount": 5, "date": "2024-05-01T00:00:00Z"}, headers=bob["headers"]
    ).json()
    resp = client.patch(
        f"/api/auto-expenses/{doc['_id']}/save", json={"expenseId": expense["_id"]}, headers=alice["headers"]
    )
    assert resp.status_code == 404


def test_status_filter_and_pagination(client, alice):
    first = _create(client, alice["headers"])
    _create(client, alice["headers"], detectedTitle="Uber")
    client.patch(f"/api/auto-expenses/{first['_id']}/dismiss", headers=alice["headers"])

    body = client.get("/api/auto-expenses?filter=Dismissed", headers=alice["headers"]).json()
    assert [d["detectedTitle"] for d in body["data"]] == ["Swiggy order"]
    assert body["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}

    resp = client.get("/api/auto-expenses?filter=Bogus", headers=alice["headers"])
    assert resp.status_code == 400


def test_set_status_and_stats(client, alice):
    doc = _create(client, alice["headers"])
    resp = client.patch(f"/api/auto-expenses/{doc['_id']}/status", json={"status": "Saved"}, headers=alice["headers"])
    assert resp.json()["data"]["status"] == "Saved"

    resp = client.patch(f"/api/auto-expenses/{doc['_id']}/status", json={"status": "Lost"}, headers=alice["headers"])
    assert resp.status_code == 400

    stats = client.get("/api/auto-expenses/stats", headers=alice["headers"]).json()["data"]
    assert stats["totalDetected"] == 1
    assert stats["statusBreakdown"][0]["_id"] == "Saved"


def test_other_users_detection_is_not_found(client, alice, bob):
    doc = _create(client, alice["headers"])
    resp = client.delete(f"/api/auto-expenses/{doc['_id']}", headers=bob["headers"])
    assert resp.status_code == 404
    assert resp.json()["message"] == "Auto expense not found"
    assert client.delete(f"/api/auto-expenses/{doc['_id']}", headers=alice["headers"]).status_code == 200


def test_put_verbs_for_status_changes(client, alice):
    doc = _create(client, alice["headers"])
    resp = client.put(f"/api/auto-expenses/{doc['_id']}/status", json={"status": "Saved"}, headers=alice["headers"])
    assert resp.json()["data"]["status"] == "Saved"

    resp = client.put(f"/api/auto-expenses/{doc['_id']}/dismiss", headers=alice["headers"])
    assert resp.json()["data"]["status"] == "Dismissed"

    other = _create(client, alice["headers"])
    resp = client.put(f"/api/auto-expenses/{other['_id']}/save", headers=alice["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "Saved"
