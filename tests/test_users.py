from bson import ObjectId

from expense_tracker.mongo_collections import EXPENSES, PROFILES
from expense_tracker.services.serializers import utcnow

from conftest import PASSWORD, run


def test_list_users_is_admin_only(client, alice, admin):
    assert client.get("/api/users", headers=alice["headers"]).status_code == 403

    resp = client.get("/api/users", headers=admin)
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 1
    assert "password" not in body["data"][0]


def test_owner_can_read_and_update_self(client, alice):
    uid = alice["user"]["id"]
    resp = client.get(f"/api/users/{uid}", headers=alice["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == "alice@example.com"

    resp = client.put(f"/api/users/{uid}", json={"name": "Alice Cooper", "role": "admin"}, headers=alice["headers"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["name"] == "Alice Cooper"
    assert data["role"] == "user"


def test_other_user_is_forbidden(client, alice, bob):
    resp = client.get(f"/api/users/{alice['user']['id']}", headers=bob["headers"])
    assert resp.status_code == 403


def test_update_rejects_taken_email(client, alice, bob):
    resp = client.put(
        f"/api/users/{alice['user']['id']}", json={"email": "bob@example.com"}, headers=alice["headers"]
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Email already in use by another user"


def test_email_change_syncs_profile(client, db, alice):
    client.post("/api/profiles", json={"name": "Alice", "email": "alice@example.com", "phone": "9876543210"})
    profile = run(db[PROFILES].find_one({"email": "alice@example.com"}))
    run(db["users"].update_one({"email": "alice@example.com"}, {"$set": {"profile": profile["_id"]}}))

    resp = client.put(
        f"/api/users/{alice['user']['id']}", json={"email": "alice.new@example.com"}, headers=alice["headers"]
    )
    assert resp.status_code == 200
    assert run(db[PROFILES].find_one({"_id": profile["_id"]}))["email"] == "alice.new@example.com"


def test_change_password(client, alice):
    uid = alice["user"]["id"]
    resp = client.put(
        f"/api/users/{uid}/password",
        json={"currentPassword": "Wrong123", "newPassword": "Another1"},
        headers=alice["headers"],
    )
    assert resp.status_code == 401

    resp = client.put(
        f"/api/users/{uid}/password",
        json={"currentPassword": PASSWORD, "newPassword": "Another1"},
        headers=alice["headers"],
    )
    assert resp.status_code == 200
    assert client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Another1"}).status_code == 200


def test_delete_user_removes_expenses(client, db, alice, admin):
    uid = ObjectId(alice["user"]["id"])
    now = utcnow()
    run(db[EXPENSES].insert_one({"userId": uid, "title": "Tea", "amount": 2, "date": now, "createdAt": now}))

    resp = client.delete(f"/api/users/{uid}", headers=admin)
    assert resp.status_code == 200
    assert run(db[EXPENSES].count_documents({"userId": uid})) == 0


def test_invalid_user_id(client, admin):
    resp = client.get("/api/users/not-an-id", headers=admin)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid user ID format"
