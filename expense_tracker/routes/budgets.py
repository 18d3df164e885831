# expense_tracker/routes/budgets.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase

from expense_tracker.db import get_db
from expense_tracker.schemas import BudgetReq, BudgetSpentReq
from expense_tracker.security import get_current_user
from expense_tracker.services import budgets
from expense_tracker.services.serializers import parse_object_id, to_json

router = APIRouter(prefix="/api/budgets", tags=["budgets"])


@router.post("")
async def upsert_budget(body: BudgetReq, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    budget, created = await budgets.upsert_budget(db, user["_id"], body.model_dump())
    message = "Budget created successfully" if created else "Budget updated successfully"
    return JSONResponse(
        status_code=201 if created else 200,
        content=to_json({"success": True, "message": message, "data": budget}),
    )


@router.get("")
async def list_budgets(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = None,
    user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if month and year:
        return to_json({"success": True, "data": await budgets.get_budget_for_month(db, user["_id"], month, year)})
    rows = await budgets.list_budgets(db, user["_id"])
    return to_json({"success": True, "count": len(rows), "data": rows})


@router.get("/current")
async def current_budget(user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json({"success": True, "data": await budgets.current_budget(db, user["_id"])})


@router.get("/{year}/{month}")
async def budget_for_month(year: int, month: int, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json({"success": True, "data": await budgets.get_budget_for_month(db, user["_id"], month, year)})


@router.put("/{budget_id}/category/{category_id}")
@router.patch("/{budget_id}/categories/{category_id}/spent")
async def set_category_spent(
    budget_id: str,
    category_id: str,
    body: BudgetSpentReq,
    user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    budget = await budgets.set_category_spent(
        db, user["_id"], parse_object_id(budget_id, "budget"), parse_object_id(category_id, "category"), body.spent
    )
    return to_json({"success": True, "message": "Category spent amount updated", "data": budget})


@router.delete("/{budget_id}")
async def delete_budget(budget_id: str, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    await budgets.delete_budget(db, user["_id"], parse_object_id(budget_id, "budget"))
    return {"success": True, "message": "Budget deleted successfully"}
