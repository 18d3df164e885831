# expense_tracker/routes/auto_expenses.py
from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from expense_tracker.db import get_db
from expense_tracker.schemas import AutoExpenseReq, AutoExpenseSaveReq, AutoExpenseStatusReq
from expense_tracker.security import get_current_user
from expense_tracker.services import auto_expenses
from expense_tracker.services.serializers import parse_object_id, to_json

router = APIRouter(prefix="/api/auto-expenses", tags=["auto-expenses"])


def _auto_id(value: str):
    return parse_object_id(value, "auto expense")


@router.get("")
async def list_auto_expenses(
    filter: str = Query("All"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return to_json(await auto_expenses.list_auto_expenses(db, user["_id"], filter, page, limit))


@router.get("/stats")
async def stats(user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "data": await auto_expenses.stats(db, user["_id"])}


@router.post("", status_code=201)
async def create_auto_expense(
    body: AutoExpenseReq, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)
):
    doc = await auto_expenses.create_auto_expense(db, user["_id"], body.model_dump())
    return to_json({"success": True, "message": "Auto expense created successfully", "data": doc})


@router.get("/{auto_id}")
async def get_auto_expense(auto_id: str, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    doc = await auto_expenses.get_auto_expense(db, user["_id"], _auto_id(auto_id))
    return to_json({"success": True, "data": (await auto_expenses.populate(db, [doc]))[0]})


@router.put("/{auto_id}/status")
@router.patch("/{auto_id}/status")
async def set_status(
    auto_id: str, body: AutoExpenseStatusReq, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)
):
    doc = await auto_expenses.set_status(db, user["_id"], _auto_id(auto_id), body.status)
    return to_json({"success": True, "message": f"Auto expense marked as {body.status}", "data": doc})


@router.put("/{auto_id}/save")
@router.patch("/{auto_id}/save")
async def save(
    auto_id: str,
    body: AutoExpenseSaveReq | None = None,
    user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    expense_id = None
    if body is not None and body.expenseId:
        expense_id = parse_object_id(body.expenseId, "expense")
    doc = await auto_expenses.mark_saved(db, user["_id"], _auto_id(auto_id), expense_id)
    return to_json({"success": True, "message": "Auto expense saved", "data": doc})


@router.put("/{auto_id}/dismiss")
@router.patch("/{auto_id}/dismiss")
async def dismiss(auto_id: str, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    doc = await auto_expenses.mark_dismissed(db, user["_id"], _auto_id(auto_id))
    return to_json({"success": True, "message": "Auto expense dismissed", "data": doc})


@router.delete("/{auto_id}")
async def delete_auto_expense(auto_id: str, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    await auto_expenses.delete_auto_expense(db, user["_id"], _auto_id(auto_id))
    return {"success": True, "message": "Auto expense deleted successfully"}
