# expense_tracker/routes/expenses.py
from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from expense_tracker.db import get_db
from expense_tracker.schemas import ExpenseReq, ExpenseUpdateReq
from expense_tracker.security import get_current_user
from expense_tracker.services import expenses
from expense_tracker.services.serializers import parse_object_id, to_json

router = APIRouter(prefix="/api/expenses", tags=["expenses"])


@router.get("")
async def list_expenses(user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await expenses.list_expenses(db, user["_id"]))


@router.post("", status_code=201)
async def create_expense(body: ExpenseReq, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await expenses.create_expense(db, user["_id"], body.model_dump()))


@router.get("/summary")
async def summary(user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await expenses.expense_summary(db, user["_id"]))


@router.get("/summary/range")
async def summary_range(
    type: str = Query("lifetime"),
    startDate: str | None = None,
    endDate: str | None = None,
    user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return await expenses.range_summary(db, user["_id"], type, startDate, endDate)


@router.put("/{expense_id}")
async def update_expense(
    expense_id: str,
    body: ExpenseUpdateReq,
    user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    oid = parse_object_id(expense_id, "expense", key="error")
    return to_json(await expenses.update_expense(db, user["_id"], oid, body.model_dump(exclude_none=True)))


@router.delete("/{expense_id}")
async def delete_expense(expense_id: str, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    oid = parse_object_id(expense_id, "expense", key="error")
    await expenses.delete_expense(db, user["_id"], oid)
    return {"message": "Expense deleted successfully"}
