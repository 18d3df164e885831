# expense_tracker/services/expenses.py
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import EXPENSES
from expense_tracker.services.queries import period_range
from expense_tracker.services.serializers import to_mongo_safe, utcnow

DEFAULT_CATEGORY = "General"


def not_found() -> ApiError:
    return ApiError(404, "Expense not found", body={"error": "Expense not found"})


async def list_expenses(db: AsyncIOMotorDatabase, user_id: ObjectId) -> List[Dict[str, Any]]:
    return [e async for e in db[EXPENSES].find({"userId": user_id}).sort("date", -1)]


async def create_expense(db: AsyncIOMotorDatabase, user_id: ObjectId, data: Dict[str, Any]) -> Dict[str, Any]:
    now = utcnow()
    doc = to_mongo_safe({
        "userId": user_id,
        "title": data["title"].strip(),
        "amount": float(data["amount"]),
        "date": data["date"],
        "category": data.get("category") or DEFAULT_CATEGORY,
        "createdAt": now,
        "updatedAt": now,
    })
    result = await db[EXPENSES].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


async def update_expense(
    db: AsyncIOMotorDatabase, user_id: ObjectId, expense_id: ObjectId, changes: Dict[str, Any]
) -> Dict[str, Any]:
    changes = to_mongo_safe({k: v for k, v in changes.items() if v is not None})
    changes["updatedAt"] = utcnow()
    expense = await db[EXPENSES].find_one_and_update(
        {"_id": expense_id, "userId": user_id},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not expense:
        raise not_found()
    return expense


async def delete_expense(db: AsyncIOMotorDatabase, user_id: ObjectId, expense_id: ObjectId) -> None:
    if not await db[EXPENSES].find_one_and_delete({"_id": expense_id, "userId": user_id}):
        raise not_found()


async def expense_summary(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    """Grand total plus one {title, totalAmount} row per distinct title, in first-seen order."""
    total = 0.0
    by_title: Dict[str, Dict[str, Any]] = {}
    async for e in db[EXPENSES].find({"userId": user_id}).sort("date", 1):
        amount = float(e.get("amount") or 0)
        total += amount
        row = by_title.setdefault(e.get("title"), {"title": e.get("title"), "totalAmount": 0.0})
        row["totalAmount"] += amount
    return {
        "message": "Expense summary retrieved successfully",
        "totalExpenses": total,
        "summary": list(by_title.values()),
    }


async def range_summary(
    db: AsyncIOMotorDatabase, user_id: ObjectId, kind: str | None, start: Any = None, end: Any = None
) -> Dict[str, Any]:
    """{totalAmount, count} of the user's expenses inside a weekly/monthly/yearly/custom window."""
    first, last = period_range(kind, start, end)
    match: Dict[str, Any] = {"userId": user_id}
    if first and last:
        match["date"] = {"$gte": first, "$lte": last}

    pipeline = [
        {"$match": match},
        {"$group": {"_id": None, "totalAmount": {"$sum": "$amount"}, "count": {"$sum": 1}}},
    ]
    rows = [r async for r in db[EXPENSES].aggregate(pipeline)]
    if not rows:
        return {"totalAmount": 0, "count": 0}
    return {"totalAmount": rows[0]["totalAmount"], "count": rows[0]["count"]}
