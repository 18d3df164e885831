from expense_tracker.services import uploads


def _submit_manage_expense(client, headers=None):
    files = {"expenseProof": ("proof.pdf", b"%PDF-1.4 proof", "application/pdf")}
    data = {"fullName": "Frank", "annualExpense": "120000", "email": "frank@example.com"}
    return client.post("/api/manage-expense", data=data, files=files, headers=headers or {})


def test_anonymous_submission(client):
    resp = _submit_manage_expense(client)
    assert resp.status_code == 201
    doc = resp.json()["data"]
    assert doc["status"] == "pending"
    assert doc["userId"] is None
    assert doc["expenseProof"].startswith("/uploads/expense-proofs/expense-")
    assert uploads.local_path(doc["expenseProof"]).exists()


def test_submission_links_logged_in_user(client, alice):
    doc = _submit_manage_expense(client, alice["headers"]).json()["data"]
    assert doc["userId"] == alice["user"]["id"]


def test_file_is_required(client):
    resp = client.post("/api/manage-expense", data={"fullName": "Frank", "annualExpense": "1"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "expenseProof is required"}


def test_admin_review_flow(client, admin):
    doc = _submit_manage_expense(client).json()["data"]

    assert client.get("/api/manage-expense").status_code == 401
    body = client.get("/api/manage-expense", headers=admin).json()
    assert body["count"] == 1

    resp = client.patch(f"/api/manage-expense/{doc['_id']}/status", json={"status": "approved"}, headers=admin)
    assert resp.json()["data"]["status"] == "approved"

    resp = client.patch(f"/api/manage-expense/{doc['_id']}/status", json={"status": "done"}, headers=admin)
    assert resp.status_code == 400

    path = uploads.local_path(doc["expenseProof"])
    assert client.delete(f"/api/manage-expense/{doc['_id']}", headers=admin).status_code == 200
    assert not path.exists()


def test_income_tax_help(client, admin):
    files = {"incomeStatement": ("salary.png", b"\x89PNG", "image/png")}
    resp = client.post("/api/income-tax-help/submit", data={"fullName": "Gina", "annualIncome": "900000"}, files=files)
    assert resp.status_code == 201
    doc = resp.json()["data"]
    assert doc["annualIncome"] == 900000

    resp = client.patch(f"/api/income-tax-help/{doc['_id']}/status", json={"status": "in-progress"}, headers=admin)
    assert resp.json()["data"]["status"] == "in-progress"

    body = client.get("/api/income-tax-help/all", headers=admin).json()
    assert body["data"][0]["status"] == "in-progress"


def test_upload_size_limit(client, monkeypatch):
    from expense_tracker.settings import settings

    monkeypatch.setattr(settings, "max_upload_bytes", 10)
    files = {"incomeStatement": ("big.pdf", b"x" * 64, "application/pdf")}
    resp = client.post("/api/income-tax-help/submit", data={"fullName": "Gina", "annualIncome": "1"}, files=files)
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("File too large")
