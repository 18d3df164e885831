def test_writes_need_admin(client, alice):
    resp = client.post("/api/categories", json={"name": "Food"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "No token provided. Authorization header required."

    resp = client.post("/api/categories", json={"name": "Food"}, headers=alice["headers"])
    assert resp.status_code == 403


def test_admin_crud_and_public_reads(client, admin):
    resp = client.post("/api/categories", json={"name": "Salary", "type": "income"}, headers=admin)
    assert resp.status_code == 201
    salary = resp.json()["data"]
    client.post("/api/categories", json={"name": "Food"}, headers=admin)

    body = client.get("/api/categories").json()
    assert [c["name"] for c in body["data"]] == ["Food", "Salary"]
    body = client.get("/api/categories?type=income").json()
    assert [c["name"] for c in body["data"]] == ["Salary"]

    resp = client.post("/api/categories", json={"name": "Food"}, headers=admin)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Category with this name already exists"

    resp = client.put(f"/api/categories/{salary['_id']}", json={"description": "Monthly pay"}, headers=admin)
    assert resp.json()["data"]["description"] == "Monthly pay"

    assert client.delete(f"/api/categories/{salary['_id']}", headers=admin).status_code == 200
    assert client.get(f"/api/categories/{salary['_id']}").status_code == 404
