# expense_tracker/services/budgets.py
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import BUDGETS, USERS
from expense_tracker.services.queries import paginate, pagination_block
from expense_tracker.services.serializers import utcnow

DEFAULT_CURRENCY = "INR"


def _categories(items: List[Dict[str, Any]] | None) -> List[Dict[str, Any]]:
    """Budget category sub-documents, each with its own _id."""
    out = []
    for c in items or []:
        out.append({
            "_id": c.get("_id") or ObjectId(),
            "name": c["name"],
            "amount": float(c.get("amount") or 0),
            "spent": float(c.get("spent") or 0),
            "icon": c.get("icon") or "wallet",
            "color": c.get("color") or "#4CAF50",
        })
    return out


async def upsert_budget(db: AsyncIOMotorDatabase, user_id: ObjectId, data: Dict[str, Any]) -> tuple[Dict[str, Any], bool]:
    """
    One budget per (userId, month, year): update it when present, else create.
    Returns (budget, created).
    """
    key = {"userId": user_id, "month": int(data["month"]), "year": int(data["year"])}
    existing = await db[BUDGETS].find_one(key)
    now = utcnow()

    if existing:
        changes: Dict[str, Any] = {"totalBudget": float(data["totalBudget"]), "updatedAt": now}
        if data.get("categories") is not None:
            changes["categories"] = _categories(data["categories"])
        if data.get("currency"):
            changes["currency"] = data["currency"]
        if data.get("notes") is not None:
            changes["notes"] = data["notes"]
        budget = await db[BUDGETS].find_one_and_update(
            {"_id": existing["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        return budget, False

    doc = {
        **key,
        "totalBudget": float(data["totalBudget"]),
        "categories": _categories(data.get("categories")),
        "currency": data.get("currency") or DEFAULT_CURRENCY,
        "notes": data.get("notes") or "",
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        result = await db[BUDGETS].insert_one(doc)
    except DuplicateKeyError:
        raise ApiError(400, "Budget already exists for this month/year")
    doc["_id"] = result.inserted_id
    return doc, True


async def get_budget_for_month(db: AsyncIOMotorDatabase, user_id: ObjectId, month: int, year: int) -> Dict[str, Any]:
    budget = await db[BUDGETS].find_one({"userId": user_id, "month": month, "year": year})
    if not budget:
        raise ApiError(404, "Budget not found for this month/year")
    return budget


async def list_budgets(db: AsyncIOMotorDatabase, user_id: ObjectId) -> List[Dict[str, Any]]:
    cursor = db[BUDGETS].find({"userId": user_id}).sort([("year", -1), ("month", -1)])
    return [b async for b in cursor]


async def current_budget(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    now = utcnow()
    budget = await db[BUDGETS].find_one({"userId": user_id, "month": now.month, "year": now.year})
    if not budget:
        raise ApiError(
            404,
            "No budget set for current month",
            data={"month": now.month, "year": now.year, "totalBudget": 0, "categories": []},
        )
    return budget


async def set_category_spent(
    db: AsyncIOMotorDatabase, user_id: ObjectId, budget_id: ObjectId, category_id: ObjectId, spent: float
) -> Dict[str, Any]:
    budget = await db[BUDGETS].find_one({"_id": budget_id, "userId": user_id})
    if not budget:
        raise ApiError(404, "Budget not found")
    categories = budget.get("categories") or []
    for c in categories:
        if c.get("_id") == category_id:
            c["spent"] = float(spent)
            break
    else:
        raise ApiError(404, "Category not found in budget")

    return await db[BUDGETS].find_one_and_update(
        {"_id": budget_id},
        {"$set": {"categories": categories, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )


async def delete_budget(db: AsyncIOMotorDatabase, user_id: ObjectId, budget_id: ObjectId) -> Dict[str, Any]:
    budget = await db[BUDGETS].find_one_and_delete({"_id": budget_id, "userId": user_id})
    if not budget:
        raise ApiError(404, "Budget not found")
    return budget


# ---------- admin ----------

async def admin_list_budgets(
    db: AsyncIOMotorDatabase, page: int | None, limit: int | None, month: int | None = None, year: int | None = None
) -> Dict[str, Any]:
    page, limit, skip = paginate(page, limit)
    query: Dict[str, Any] = {}
    if month:
        query["month"] = month
    if year:
        query["year"] = year
    cursor = db[BUDGETS].find(query).sort([("year", -1), ("month", -1)]).skip(skip).limit(limit)
    rows = [b async for b in cursor]

    user_ids = list({b["userId"] for b in rows if isinstance(b.get("userId"), ObjectId)})
    users = {}
    if user_ids:
        async for u in db[USERS].find({"_id": {"$in": user_ids}}, {"name": 1, "email": 1}):
            users[u["_id"]] = u
    data = []
    for b in rows:
        owner = users.get(b.get("userId")) or {}
        data.append({**b, "userName": owner.get("name") or "Unknown", "userEmail": owner.get("email") or "Unknown"})

    total = await db[BUDGETS].count_documents(query)
    return {"success": True, "data": data, "pagination": pagination_block(page, limit, total, "Budgets")}


async def admin_update_budget(db: AsyncIOMotorDatabase, budget_id: ObjectId, changes: Dict[str, Any]) -> Dict[str, Any]:
    changes = {k: v for k, v in changes.items() if v is not None}
    if "categories" in changes:
        changes["categories"] = _categories(changes["categories"])
    changes["updatedAt"] = utcnow()
    budget = await db[BUDGETS].find_one_and_update(
        {"_id": budget_id}, {"$set": changes}, return_document=ReturnDocument.AFTER
    )
    if not budget:
        raise ApiError(404, "Budget not found")
    return budget


async def admin_delete_budget(db: AsyncIOMotorDatabase, budget_id: ObjectId) -> Dict[str, Any]:
    budget = await db[BUDGETS].find_one_and_delete({"_id": budget_id})
    if not budget:
        raise ApiError(404, "Budget not found")
    return budget
