# expense_tracker/routes/admin.py
"""
/api/admin: operator login, dashboard aggregations and oversight of every
collection. All routes except /login need an admin bearer token; each admin
request also refreshes the cookie-backed session record.
"""
import hmac
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from expense_tracker.db import get_db
from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import AUTO_EXPENSES, EXPENSES, TRANSACTION_HISTORY
from expense_tracker.schemas import (
    AdminAutoExpenseUpdateReq, AdminBudgetUpdateReq, AdminLoginReq, AdminTransactionUpdateReq, AdminUserCreateReq,
    CategoryReq, CategoryUpdateReq, IncomeTaxStatusReq, ManageExpenseStatusReq, ProfileUpdateReq, UserUpdateReq,
)
from expense_tracker.security import create_admin_token, require_admin, revoke_token
from expense_tracker.services import (
    admin_views, budgets, categories, dashboard, intake, profiles, sessions, transactions, users,
)
from expense_tracker.services.serializers import maybe_object_id, parse_object_id, to_json
from expense_tracker.settings import settings

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _client(request: Request) -> Dict[str, Any]:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
        "path": request.url.path,
        "method": request.method,
    }


async def tracked_admin(
    request: Request,
    admin=Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> Dict[str, Any]:
    session_id = request.session.get("sessionId")
    if session_id:
        stored = request.session.get("admin") or {}
        principal = {"userId": maybe_object_id(stored.get("userId")), "email": admin["email"], "role": "admin"}
        await sessions.track_session(db, session_id, principal, **_client(request))
    return admin


def _list_params(
    search: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
) -> Dict[str, Any]:
    return {"search": search, "start": startDate, "end": endDate, "page": page, "limit": limit}


# ---------------- auth & session ----------------

@router.post("/login")
async def login(body: AdminLoginReq, request: Request, db: AsyncIOMotorDatabase = Depends(get_db)):
    if not settings.admin_email or not settings.admin_password:
        log.error("Admin login attempted but ADMIN_EMAIL/ADMIN_PASSWORD are not set")
        raise ApiError(500, "Admin credentials not configured")

    email_ok = hmac.compare_digest(body.email.strip().lower(), settings.admin_email.strip().lower())
    password_ok = hmac.compare_digest(body.password, settings.admin_password)
    if not (email_ok and password_ok):
        raise ApiError(401, "Invalid admin credentials")

    token = create_admin_token(settings.admin_email)
    linked = await users.get_user_by_email(db, settings.admin_email)
    principal = {"userId": linked["_id"] if linked else None, "email": settings.admin_email, "role": "admin"}

    session_id = request.session.get("sessionId") or uuid.uuid4().hex
    request.session["sessionId"] = session_id
    request.session["admin"] = {
        "email": settings.admin_email, "role": "admin", "userId": str(linked["_id"]) if linked else None,
    }
    await sessions.start_session(db, session_id, principal, **_client(request))

    return {"success": True, "token": token, "user": {"email": settings.admin_email, "role": "admin"}}


@router.post("/logout")
async def logout(request: Request, admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await revoke_token(db, admin["token"], admin.get("exp"))
    session_id = request.session.get("sessionId")
    if session_id:
        client = _client(request)
        await sessions.log_activity(
            db, session_id, "logout", path=client["path"], method=client["method"], ip_address=client["ip_address"]
        )
        await sessions.end_session(db, session_id)
    request.session.clear()
    return {"success": True, "message": "Logged out successfully"}


@router.get("/verify")
async def verify(admin=Depends(tracked_admin)):
    return {"success": True, "user": {"email": admin["email"], "role": admin["role"]}}


@router.get("/session")
async def current_session(request: Request, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    session = await sessions.validate_session(db, request.session.get("sessionId"))
    return to_json({"success": True, "data": sessions.with_duration(session)})


# ---------------- dashboard ----------------

@router.get("/stats")
async def stats(_admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return await dashboard.dashboard_stats(db)


@router.get("/monthly-expenses")
async def monthly_expenses(_admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return await dashboard.monthly_expenses(db)


@router.get("/category-breakdown")
async def category_breakdown(_admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return await dashboard.category_breakdown(db)


@router.get("/trends")
async def trends(_admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return await dashboard.trends(db)


@router.get("/monthly-stats")
async def monthly_stats(_admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return await dashboard.monthly_stats(db)


@router.get("/top-users")
async def top_users(_admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await dashboard.top_users(db))


@router.get("/updated-expenses")
async def updated_expenses(_admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await dashboard.updated_expenses(db))


# ---------------- users ----------------

@router.get("/users")
async def list_users(params=Depends(_list_params), _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await admin_views.list_users(db, **params))


@router.post("/users", status_code=201)
async def create_user(body: AdminUserCreateReq, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await users.create_user(db, body.name, body.email, body.password, phone=body.phone, role=body.role)
    return to_json(users.strip_private(user))


@router.put("/users/{user_id}")
async def update_user(
    user_id: str, body: UserUpdateReq, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)
):
    changes = body.model_dump(exclude_none=True)
    if "username" in changes:
        changes["name"] = changes.pop("username")
    return to_json(await users.update_user(db, parse_object_id(user_id, "user"), changes))


@router.delete("/users/{user_id}")
async def delete_user(user_id: str, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await users.delete_user(db, parse_object_id(user_id, "user"))
    return {"message": "User deleted successfully"}


# ---------------- expenses ----------------

@router.get("/expenses")
async def list_expenses(params=Depends(_list_params), _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await admin_views.list_expenses(db, **params))


@router.delete("/expenses/{expense_id}")
async def delete_expense(expense_id: str, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await admin_views.delete_document(db, EXPENSES, parse_object_id(expense_id, "expense"), "Expense not found")
    return {"message": "Expense deleted successfully"}


# ---------------- categories ----------------

@router.get("/categories")
async def list_categories(_admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await categories.list_with_usage(db))


@router.post("/categories", status_code=201)
async def create_category(body: CategoryReq, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await categories.create_category(db, body.model_dump()))


@router.put("/categories/{cat_id}")
async def update_category(
    cat_id: str, body: CategoryUpdateReq, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)
):
    oid = parse_object_id(cat_id, "category")
    return to_json(await categories.update_category(db, oid, body.model_dump(exclude_none=True)))


@router.delete("/categories/{cat_id}")
async def delete_category(cat_id: str, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await categories.delete_category(db, parse_object_id(cat_id, "category"))
    return {"message": "Category deleted successfully"}


# ---------------- auto expenses ----------------

@router.get("/auto-expenses")
async def list_auto_expenses(params=Depends(_list_params), _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await admin_views.list_auto_expenses(db, **params))


@router.put("/auto-expenses/{auto_id}")
async def update_auto_expense(
    auto_id: str, body: AdminAutoExpenseUpdateReq, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)
):
    doc = await admin_views.update_document(
        db, AUTO_EXPENSES, parse_object_id(auto_id, "auto expense"), body.model_dump(), "Auto expense not found"
    )
    return to_json(doc)


@router.delete("/auto-expenses/{auto_id}")
async def delete_auto_expense(auto_id: str, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await admin_views.delete_document(
        db, AUTO_EXPENSES, parse_object_id(auto_id, "auto expense"), "Auto expense not found"
    )
    return {"message": "Auto expense deleted successfully"}


# ---------------- profiles ----------------

@router.get("/profiles")
async def list_profiles(params=Depends(_list_params), _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await admin_views.list_profiles(db, **params))


@router.put("/profiles/{profile_id}")
async def update_profile(
    profile_id: str, body: ProfileUpdateReq, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)
):
    oid = parse_object_id(profile_id, "profile")
    return to_json(await profiles.update_profile(db, oid, body.model_dump(exclude_none=True)))


@router.delete("/profiles/{profile_id}")
async def delete_profile(profile_id: str, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await profiles.delete_profile(db, parse_object_id(profile_id, "profile"))
    return {"message": "Profile deleted successfully"}


# ---------------- transactions ----------------

@router.get("/transactions")
async def list_transactions(params=Depends(_list_params), _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await admin_views.list_transactions(db, **params))


@router.put("/transactions/{tx_id}")
async def update_transaction(
    tx_id: str, body: AdminTransactionUpdateReq, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)
):
    doc = await transactions.admin_update_transaction(db, parse_object_id(tx_id, "transaction"), body.model_dump())
    return to_json(doc)


@router.delete("/transactions/{tx_id}")
async def delete_transaction(tx_id: str, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await transactions.admin_delete_transaction(db, parse_object_id(tx_id, "transaction"))
    return {"message": "Transaction deleted successfully"}


# ---------------- transaction history ----------------

@router.get("/transaction-history")
async def list_history(params=Depends(_list_params), _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await admin_views.list_history(db, **params))


@router.delete("/transaction-history/{entry_id}")
async def delete_history(entry_id: str, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await admin_views.delete_document(
        db, TRANSACTION_HISTORY, parse_object_id(entry_id, "transaction history"), "Transaction history item not found"
    )
    return {"message": "Transaction history item deleted successfully"}


# ---------------- budgets ----------------

@router.get("/budgets")
async def list_budgets(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = None,
    _admin=Depends(tracked_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return to_json(await budgets.admin_list_budgets(db, page, limit, month, year))


@router.put("/budgets/{budget_id}")
async def update_budget(
    budget_id: str, body: AdminBudgetUpdateReq, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)
):
    budget = await budgets.admin_update_budget(db, parse_object_id(budget_id, "budget"), body.model_dump())
    return to_json({"success": True, "data": budget})


@router.delete("/budgets/{budget_id}")
async def delete_budget(budget_id: str, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await budgets.admin_delete_budget(db, parse_object_id(budget_id, "budget"))
    return {"success": True, "message": "Budget deleted successfully"}


# ---------------- intake forms ----------------

INTAKE_FORMS = {"manage-expenses": intake.MANAGE_EXPENSE, "income-tax-help": intake.INCOME_TAX}


def _form(kind: str) -> intake.IntakeForm:
    form = INTAKE_FORMS.get(kind)
    if form is None:
        raise ApiError(404, "Route not found", body={"error": "Route not found"})
    return form


@router.get("/submissions/{kind}")
async def list_submissions(kind: str, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await intake.list_submissions(db, _form(kind)))


@router.patch("/submissions/manage-expenses/{sub_id}/status")
async def manage_expense_status(
    sub_id: str, body: ManageExpenseStatusReq, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)
):
    doc = await intake.set_status(db, intake.MANAGE_EXPENSE, parse_object_id(sub_id, "submission"), body.status)
    return to_json(doc)


@router.patch("/submissions/income-tax-help/{sub_id}/status")
async def income_tax_status(
    sub_id: str, body: IncomeTaxStatusReq, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)
):
    doc = await intake.set_status(db, intake.INCOME_TAX, parse_object_id(sub_id, "submission"), body.status)
    return to_json(doc)


@router.delete("/submissions/{kind}/{sub_id}")
async def delete_submission(kind: str, sub_id: str, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await intake.delete_submission(db, _form(kind), parse_object_id(sub_id, "submission"))
    return {"message": "Submission deleted successfully"}


# ---------------- sessions ----------------

@router.get("/sessions")
async def list_sessions(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    active: Optional[bool] = None,
    search: Optional[str] = None,
    _admin=Depends(tracked_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return to_json(await sessions.list_sessions(db, page, limit, active, search))


@router.get("/sessions/stats")
async def session_stats(_admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "data": await sessions.statistics(db)}


@router.delete("/sessions/cleanup")
async def cleanup_sessions(_admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    removed = await sessions.delete_expired_sessions(db)
    return {"success": True, "message": f"Removed {removed} expired sessions", "deletedCount": removed}


@router.delete("/sessions/{session_id}")
async def terminate_session(session_id: str, _admin=Depends(tracked_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    doc = await sessions.terminate_session(db, parse_object_id(session_id, "session"))
    return to_json({"success": True, "message": "Session terminated", "data": sessions.with_duration(doc)})
