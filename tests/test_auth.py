from expense_tracker.mongo_collections import PROFILES, USERS
from expense_tracker.services import users

from conftest import PASSWORD, auth, run, signup


def test_signup_returns_user_and_token(client, db):
    user, token = signup(client, phone="9876543210", gender="female", currency="INR")
    assert user["email"] == "alice@example.com"
    assert user["role"] == "user"
    assert "password" not in user
    assert token

    stored = run(db[USERS].find_one({"email": "alice@example.com"}))
    assert stored["password"] != PASSWORD
    assert stored["phone"] == "9876543210"


def test_signup_validation_errors(client):
    resp = client.post("/api/auth/signup", json={"name": "A1", "email": "x@example.com", "password": "weak"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    fields = {e["field"] for e in body["errors"]}
    assert {"name", "password"} <= fields


def test_signup_rejects_bad_phone(client):
    resp = client.post("/api/auth/signup", json={
        "name": "Alice", "email": "a@example.com", "password": PASSWORD, "phone": "12345",
    })
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["message"] == "Phone number must be exactly 10 digits"


def test_duplicate_email_and_name(client, alice):
    resp = client.post("/api/auth/signup", json={"name": "Other Name", "email": "alice@example.com", "password": PASSWORD})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Email already registered"

    resp = client.post("/api/auth/signup", json={"name": "Alice Smith", "email": "new@example.com", "password": PASSWORD})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Username already taken"


def test_signup_links_existing_profile(client, db):
    resp = client.post("/api/profiles", json={"name": "Carol", "email": "carol@example.com", "phone": "+91 98765 43210"})
    assert resp.status_code == 201

    user, _ = signup(client, name="Carol", email="carol@example.com")
    stored = run(db[USERS].find_one({"email": "carol@example.com"}))
    profile = run(db[PROFILES].find_one({"email": "carol@example.com"}))
    assert stored["profile"] == profile["_id"]
    assert str(profile["userId"]) == user["id"]


def test_login(client, alice):
    resp = client.post("/api/auth/login", json={"email": "ALICE@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    assert resp.json()["data"]["token"]

    resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Wrong123"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid email or password"


def test_login_deactivated_user(client, db, alice):
    run(db[USERS].update_one({"email": "alice@example.com"}, {"$set": {"isActive": False}}))
    resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert resp.status_code == 403


def test_me_requires_token(client):
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Authentication required"}

    resp = client.get("/api/auth/me", headers=auth("not-a-jwt"))
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid or expired token"}


def test_me_and_user_data(client, alice):
    resp = client.get("/api/auth/me", headers=alice["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Alice Smith"

    resp = client.get("/api/auth/user-data", headers=alice["headers"])
    assert set(resp.json()["data"]) == {"name", "email", "phone", "gender", "currency"}


def test_logout_revokes_token(client, alice):
    resp = client.post("/api/auth/logout", headers=alice["headers"])
    assert resp.status_code == 200

    resp = client.get("/api/auth/me", headers=alice["headers"])
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid or expired token"}


def test_logout_without_token(client):
    assert client.post("/api/auth/logout").status_code == 400


def test_forgot_password_unknown_email(client):
    resp = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})
    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found with this email"


def test_forgot_password_mail_failure_clears_token(client, db, alice):
    resp = client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    assert resp.status_code == 500
    assert resp.json()["message"] == "Email could not be sent"
    stored = run(db[USERS].find_one({"email": "alice@example.com"}))
    assert stored["resetPasswordToken"] is None


def test_reset_password_flow(client, db, alice):
    _, token = run(users.start_password_reset(db, "alice@example.com"))

    resp = client.put(f"/api/auth/reset-password/{token}", json={"password": "NewSecret9"})
    assert resp.status_code == 200
    assert resp.json()["data"]["token"]

    resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "NewSecret9"})
    assert resp.status_code == 200

    resp = client.put(f"/api/auth/reset-password/{token}", json={"password": "NewSecret9"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid or expired reset token"
