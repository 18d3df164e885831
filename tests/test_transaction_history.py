def _entry(user_id, **fields):
    return {
        "userId": user_id,
        "title": "Salary",
        "amount": 1000,
        "type": "income",
        "category": "Job",
        "date": "2024-04-01T00:00:00Z",
        **fields,
    }


def test_create_and_list_own_history(client, alice):
    uid = alice["user"]["id"]
    resp = client.post("/api/transaction-history", json=_entry(uid), headers=alice["headers"])
    assert resp.status_code == 201
    entry = resp.json()["data"]
    assert entry["icon"] == "default"
    assert entry["paymentMethod"] == "cash"
    assert entry["status"] == "completed"

    body = client.get(f"/api/transaction-history/{uid}", headers=alice["headers"]).json()
    assert body["count"] == 1


def test_cannot_touch_other_users_history(client, alice, bob):
    resp = client.post("/api/transaction-history", json=_entry(alice["user"]["id"]), headers=bob["headers"])
    assert resp.status_code == 403

    resp = client.get(f"/api/transaction-history/{alice['user']['id']}", headers=bob["headers"])
    assert resp.status_code == 403

    entry = client.post(
        "/api/transaction-history", json=_entry(alice["user"]["id"]), headers=alice["headers"]
    ).json()["data"]
    assert client.delete(f"/api/transaction-history/{entry['_id']}", headers=bob["headers"]).status_code == 403


def test_by_type_and_summary(client, alice):
    uid = alice["user"]["id"]
    client.post("/api/transaction-history", json=_entry(uid), headers=alice["headers"])
    client.post(
        "/api/transaction-history",
        json=_entry(uid, title="Rent", amount=400, type="expense", category="Housing"),
        headers=alice["headers"],
    )

    body = client.get(f"/api/transaction-history/{uid}/type/expense", headers=alice["headers"]).json()
    assert [r["title"] for r in body["data"]] == ["Rent"]

    resp = client.get(f"/api/transaction-history/{uid}/type/transfer", headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["error"] == 'Type must be either "income" or "expense"'

    summary = client.get(f"/api/transaction-history/{uid}/summary", headers=alice["headers"]).json()["data"]
    assert summary == {"totalIncome": 1000, "totalExpense": 400, "balance": 600}


def test_date_range(client, alice):
    uid = alice["user"]["id"]
    client.post("/api/transaction-history", json=_entry(uid, date="2024-01-10T00:00:00Z"), headers=alice["headers"])
    client.post("/api/transaction-history", json=_entry(uid, date="2024-02-10T00:00:00Z"), headers=alice["headers"])

    body = client.get(
        f"/api/transaction-history/{uid}/date-range?startDate=2024-02-01&endDate=2024-02-28",
        headers=alice["headers"],
    ).json()
    assert body["count"] == 1


def test_update_requires_fields(client, alice):
    entry = client.post(
        "/api/transaction-history", json=_entry(alice["user"]["id"]), headers=alice["headers"]
    ).json()["data"]

    resp = client.put(f"/api/transaction-history/{entry['_id']}", json={}, headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["error"] == "No fields provided for update"

    resp = client.put(f"/api/transaction-history/{entry['_id']}", json={"note": "bonus"}, headers=alice["headers"])
    assert resp.json()["data"]["note"] == "bonus"


def test_invalid_ids(client, alice):
    resp = client.get("/api/transaction-history/xyz", headers=alice["headers"])
    assert resp.status_code == 400
    resp = client.delete("/api/transaction-history/xyz", headers=alice["headers"])
    assert resp.status_code == 400


def test_range_path(client, alice):
    uid = alice["user"]["id"]
    client.post("/api/transaction-history", json=_entry(uid, date="2024-03-05T00:00:00Z"), headers=alice["headers"])

    resp = client.get(
        f"/api/transaction-history/{uid}/range?startDate=2024-01-01&endDate=2024-12-31", headers=alice["headers"]
    )
    assert resp.status_code == 200
    assert resp.json()["count"] == 1
