def _create(client, headers, **fields):
    body = {"title": "Groceries", "amount": 40, "date": "2024-05-02T10:00:00Z", **fields}
    resp = client.post("/api/expenses", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_and_list(client, alice):
    created = _create(client, alice["headers"])
    assert created["category"] == "General"
    assert created["date"] == "2024-05-02T10:00:00.000Z"

    _create(client, alice["headers"], title="Rent", amount=500, date="2024-05-10T00:00:00Z", category="Housing")
    rows = client.get("/api/expenses", headers=alice["headers"]).json()
    assert [r["title"] for r in rows] == ["Rent", "Groceries"]


def test_validation(client, alice):
    resp = client.post("/api/expenses", json={"title": "X", "amount": 0, "date": "2024-05-01"}, headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "amount"


def test_update_and_delete_are_owner_scoped(client, alice, bob):
    expense = _create(client, alice["headers"])

    resp = client.put(f"/api/expenses/{expense['_id']}", json={"amount": 99}, headers=bob["headers"])
    assert resp.status_code == 404
    assert resp.json() == {"error": "Expense not found"}

    resp = client.put(f"/api/expenses/{expense['_id']}", json={"amount": 99}, headers=alice["headers"])
    assert resp.status_code == 200
    assert resp.json()["amount"] == 99

    assert client.delete(f"/api/expenses/{expense['_id']}", headers=bob["headers"]).status_code == 404
    assert client.delete(f"/api/expenses/{expense['_id']}", headers=alice["headers"]).status_code == 200
    assert client.get("/api/expenses", headers=alice["headers"]).json() == []


def test_summary_groups_by_title(client, alice):
    _create(client, alice["headers"], title="Coffee", amount=3)
    _create(client, alice["headers"], title="Coffee", amount=4)
    _create(client, alice["headers"], title="Lunch", amount=10)

    body = client.get("/api/expenses/summary", headers=alice["headers"]).json()
    assert body["totalExpenses"] == 17
    totals = {row["title"]: row["totalAmount"] for row in body["summary"]}
    assert totals == {"Coffee": 7, "Lunch": 10}


def test_range_summary_lifetime_and_custom(client, alice):
    _create(client, alice["headers"], amount=10, date="2024-01-15T00:00:00Z")
    _create(client, alice["headers"], amount=20, date="2024-03-15T00:00:00Z")

    body = client.get("/api/expenses/summary/range?type=lifetime", headers=alice["headers"]).json()
    assert body == {"totalAmount": 30, "count": 2}

    body = client.get(
        "/api/expenses/summary/range?type=custom&startDate=2024-03-01&endDate=2024-03-31",
        headers=alice["headers"],
    ).json()
    assert body == {"totalAmount": 20, "count": 1}


def test_invalid_id(client, alice):
    resp = client.delete("/api/expenses/123", headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid expense ID format"
