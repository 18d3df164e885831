from expense_tracker.mongo_collections import USERS

from conftest import run

PROFILE = {"name": "Dana", "email": "dana@example.com", "phone": "9876543210"}


def test_create_generates_referral_code(client):
    resp = client.post("/api/profiles", json=PROFILE)
    assert resp.status_code == 201
    code = resp.json()["data"]["referralCode"]
    assert len(code) == 6 and code.isalnum() and code.upper() == code

    resp = client.get(f"/api/profiles/referral/{code.lower()}")
    assert resp.json()["data"] == {"name": "Dana", "referralCode": code}

    resp = client.post("/api/profiles", json=PROFILE)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Email already registered"


def test_profile_validation(client):
    resp = client.post("/api/profiles", json={**PROFILE, "email": "not-an-email"})
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["message"] == "Please enter a valid email"


def test_unknown_referral(client):
    resp = client.get("/api/profiles/referral/ZZZZZZ")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Invalid referral code"


def test_list_requires_auth_and_searches(client, alice):
    client.post("/api/profiles", json=PROFILE)
    client.post("/api/profiles", json={"name": "Eve", "email": "eve@example.com", "phone": "1234567890"})

    assert client.get("/api/profiles").status_code == 401

    body = client.get("/api/profiles?search=dana", headers=alice["headers"]).json()
    assert body["count"] == 1
    assert body["totalPages"] == 1
    assert body["data"][0]["email"] == "dana@example.com"


def test_own_profile_and_update_syncs_user(client, db, alice):
    client.post("/api/profiles", json={"name": "Alice Smith", "email": "alice@example.com", "phone": "9876543210"})
    profile = client.get("/api/profiles/me", headers=alice["headers"]).json()["data"]

    resp = client.put(f"/api/profiles/{profile['_id']}", json={"name": "Alice Walker"}, headers=alice["headers"])
    assert resp.status_code == 200
    assert run(db[USERS].find_one({"email": "alice@example.com"}))["name"] == "Alice Walker"

    resp = client.put(f"/api/profiles/{profile['_id']}", json={}, headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["error"] == "No fields provided for update"


def test_profile_for_user_and_delete(client, db, alice):
    client.post("/api/profiles", json={"name": "Alice Smith", "email": "alice@example.com", "phone": "9876543210"})
    resp = client.get(f"/api/profiles/user/{alice['user']['id']}", headers=alice["headers"])
    assert resp.status_code == 200
    profile = resp.json()["data"]

    assert client.delete(f"/api/profiles/{profile['_id']}", headers=alice["headers"]).status_code == 200
    assert run(db[USERS].find_one({"email": "alice@example.com"}))["profile"] is None


def test_invalid_profile_id(client, alice):
    resp = client.get("/api/profiles/nope", headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid profile ID format"


def test_change_password_path(client, alice):
    resp = client.put(
        "/api/profiles/change-password",
        json={"currentPassword": "Secret123", "newPassword": "Another1"},
        headers=alice["headers"],
    )
    assert resp.status_code == 200
    assert client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Another1"}).status_code == 200
