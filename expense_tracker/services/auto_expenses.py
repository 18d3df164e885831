"""
Auto-detected expense candidates and their Detected -> Saved/Dismissed lifecycle.
"""

from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import AUTO_EXPENSES, EXPENSES, USERS
from expense_tracker.services import expenses
from expense_tracker.services.queries import paginate, total_pages
from expense_tracker.services.serializers import to_mongo_safe, utcnow

STATUSES = ("Detected", "Saved", "Dismissed")
FILTERS = ("All",) + STATUSES


def not_found() -> ApiError:
    return ApiError(404, "Auto expense not found")


async def populate(db: AsyncIOMotorDatabase, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """userId -> {name, email}; expenseId -> {amount, title, category}."""
    user_ids = list({r["userId"] for r in rows if isinstance(r.get("userId"), ObjectId)})
    expense_ids = list({r["expenseId"] for r in rows if isinstance(r.get("expenseId"), ObjectId)})
    users = {}
    if user_ids:
        async for u in db[USERS].find({"_id": {"$in": user_ids}}, {"name": 1, "email": 1}):
            users[u["_id"]] = u
    linked = {}
    if expense_ids:
        async for e in db[EXPENSES].find({"_id": {"$in": expense_ids}}, {"amount": 1, "title": 1, "category": 1}):
            linked[e["_id"]] = e
    out = []
    for r in rows:
        r = dict(r)
        if r.get("userId") in users:
            r["userId"] = users[r["userId"]]
        if r.get("expenseId") in linked:
            r["expenseId"] = linked[r["expenseId"]]
        out.append(r)
    return out


async def list_auto_expenses(
    db: AsyncIOMotorDatabase, user_id: ObjectId, status_filter: str | None, page: int | None, limit: int | None
) -> Dict[str, Any]:
    status_filter = status_filter or "All"
    if status_filter not in FILTERS:
        raise ApiError(400, f"Invalid filter. Use one of: {', '.join(FILTERS)}")
    page, limit, skip = paginate(page, limit)
    query: Dict[str, Any] = {"userId": user_id}
    if status_filter != "All":
        query["status"] = status_filter

    cursor = db[AUTO_EXPENSES].find(query).sort("detectedDate", -1).skip(skip).limit(limit)
    rows = await populate(db, [r async for r in cursor])
    total = await db[AUTO_EXPENSES].count_documents(query)
    return {
        "success": True,
        "data": rows,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": total_pages(total, limit)},
    }


async def stats(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    pipeline = [
        {"$match": {"userId": user_id}},
        {"$group": {"_id": "$status", "count": {"$sum": 1}, "totalAmount": {"$sum": "$detectedAmount"}}},
        {"$sort": {"_id": 1}},
    ]
    breakdown = [row async for row in db[AUTO_EXPENSES].aggregate(pipeline)]
    total = await db[AUTO_EXPENSES].count_documents({"userId": user_id})
    return {"totalDetected": total, "statusBreakdown": breakdown}


async def create_auto_expense(db: AsyncIOMotorDatabase, user_id: ObjectId, data: Dict[str, Any]) -> Dict[str, Any]:
    amount = round(float(data["detectedAmount"]), 2)
    if amount <= 0:
        raise ApiError(400, "Detected amount must be greater than 0")
    original = to_mongo_safe(data["originalDate"])
    if original > utcnow():
        raise ApiError(400, "Original date cannot be in the future")

    now = utcnow()
    doc = to_mongo_safe({
        "userId": user_id,
        "expenseId": None,
        "detectedDate": data.get("detectedDate") or now,
        "detectedAmount": amount,
        "detectedTitle": data["detectedTitle"].strip(),
        "status": "Detected",
        "originalDate": original,
        "source": data["source"],
        "category": data.get("category") or "Uncategorized",
        "confidence": 80 if data.get("confidence") is None else int(data["confidence"]),
        "createdAt": now,
        "updatedAt": now,
    })
    result = await db[AUTO_EXPENSES].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


async def get_auto_expense(db: AsyncIOMotorDatabase, user_id: ObjectId, auto_id: ObjectId) -> Dict[str, Any]:
    doc = await db[AUTO_EXPENSES].find_one({"_id": auto_id, "userId": user_id})
    if not doc:
        raise not_found()
    return doc


async def set_status(
    db: AsyncIOMotorDatabase, user_id: ObjectId, auto_id: ObjectId, status: str, extra: Dict[str, Any] | None = None
) -> Dict[str, Any]:
    if status not in STATUSES:
        raise ApiError(400, f"Invalid status. Use one of: {', '.join(STATUSES)}")
    fields = {"status": status, "updatedAt": utcnow(), **(extra or {})}
    doc = await db[AUTO_EXPENSES].find_one_and_update(
        {"_id": auto_id, "userId": user_id}, {"$set": fields}, return_document=ReturnDocument.AFTER
    )
    if not doc:
        raise not_found()
    return doc


async def mark_saved(
    db: AsyncIOMotorDatabase, user_id: ObjectId, auto_id: ObjectId, expense_id: ObjectId | None = None
) -> Dict[str, Any]:
    """
    Link the detection to an expense and mark it Saved. Without an explicit
    expense id (and no link yet) the expense is created from the detection.
    """
    doc = await get_auto_expense(db, user_id, auto_id)
    if expense_id is not None:
        if not await db[EXPENSES].find_one({"_id": expense_id, "userId": user_id}):
            raise ApiError(404, "Expense not found")
    elif doc.get("expenseId"):
        expense_id = doc["expenseId"]
    else:
        created = await expenses.create_expense(db, user_id, {
            "title": doc["detectedTitle"],
            "amount": doc["detectedAmount"],
            "date": doc.get("originalDate") or doc.get("detectedDate") or utcnow(),
            "category": doc.get("category"),
        })
        expense_id = created["_id"]
    return await set_status(db, user_id, auto_id, "Saved", {"expenseId": expense_id})


async def mark_dismissed(db: AsyncIOMotorDatabase, user_id: ObjectId, auto_id: ObjectId) -> Dict[str, Any]:
    return await set_status(db, user_id, auto_id, "Dismissed")


async def delete_auto_expense(db: AsyncIOMotorDatabase, user_id: ObjectId, auto_id: ObjectId) -> None:
    if not await db[AUTO_EXPENSES].find_one_and_delete({"_id": auto_id, "userId": user_id}):
        raise not_found()
