# expense_tracker/services/categories.py
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import CATEGORIES, EXPENSES
from expense_tracker.services.serializers import utcnow


async def list_categories(db: AsyncIOMotorDatabase, cat_type: str | None = None) -> List[Dict[str, Any]]:
    query = {"type": cat_type} if cat_type else {}
    return [c async for c in db[CATEGORIES].find(query).sort("name", 1)]


async def list_with_usage(db: AsyncIOMotorDatabase) -> List[Dict[str, Any]]:
    """Categories plus how many expenses use each name (admin view)."""
    pipeline = [{"$group": {"_id": "$category", "count": {"$sum": 1}}}]
    usage = {row["_id"]: row["count"] async for row in db[EXPENSES].aggregate(pipeline)}
    return [{**c, "expenseCount": usage.get(c["name"], 0)} for c in await list_categories(db)]


async def get_category(db: AsyncIOMotorDatabase, cat_id: ObjectId) -> Dict[str, Any]:
    category = await db[CATEGORIES].find_one({"_id": cat_id})
    if not category:
        raise ApiError(404, "Category not found")
    return category


async def create_category(db: AsyncIOMotorDatabase, data: Dict[str, Any]) -> Dict[str, Any]:
    name = data["name"].strip()
    if await db[CATEGORIES].find_one({"name": name}):
        raise ApiError(400, "Category with this name already exists")
    now = utcnow()
    doc = {
        "name": name,
        "description": (data.get("description") or "").strip(),
        "type": data.get("type") or "expense",
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        result = await db[CATEGORIES].insert_one(doc)
    except DuplicateKeyError:
        raise ApiError(400, "Category with this name already exists")
    doc["_id"] = result.inserted_id
    return doc


async def update_category(db: AsyncIOMotorDatabase, cat_id: ObjectId, changes: Dict[str, Any]) -> Dict[str, Any]:
    changes = {k: v for k, v in changes.items() if v is not None}
    if "name" in changes:
        changes["name"] = changes["name"].strip()
        if await db[CATEGORIES].find_one({"name": changes["name"], "_id": {"$ne": cat_id}}):
            raise ApiError(400, "Category with this name already exists")
    changes["updatedAt"] = utcnow()
    category = await db[CATEGORIES].find_one_and_update(
        {"_id": cat_id}, {"$set": changes}, return_document=ReturnDocument.AFTER
    )
    if not category:
        raise ApiError(404, "Category not found")
    return category


async def delete_category(db: AsyncIOMotorDatabase, cat_id: ObjectId) -> Dict[str, Any]:
    category = await db[CATEGORIES].find_one_and_delete({"_id": cat_id})
    if not category:
        raise ApiError(404, "Category not found")
    return category
