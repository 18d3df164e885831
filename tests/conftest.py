import asyncio

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from expense_tracker.db import get_db
from expense_tracker.main import app
from expense_tracker.settings import settings

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "AdminPass1"
PASSWORD = "Secret123"


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def db():
    return AsyncMongoMockClient()["expense_tracker_test"]


@pytest.fixture
def client(db, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "admin_email", ADMIN_EMAIL)
    monkeypatch.setattr(settings, "admin_password", ADMIN_PASSWORD)
    monkeypatch.setattr(settings, "smtp_host", None)
    app.dependency_overrides[get_db] = lambda: db
    app.state.mongodb = db
    yield TestClient(app)
    app.dependency_overrides.clear()


def signup(client, name="Alice Smith", email="alice@example.com", password=PASSWORD, **extra):
    resp = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password, **extra})
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    return data["user"], data["token"]


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client):
    user, token = signup(client)
    return {"user": user, "token": token, "headers": auth(token)}


@pytest.fixture
def bob(client):
    user, token = signup(client, name="Bob Jones", email="bob@example.com")
    return {"user": user, "token": token, "headers": auth(token)}


@pytest.fixture
def admin(client):
    resp = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.text
    return auth(resp.json()["token"])
