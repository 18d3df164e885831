# expense_tracker/services/admin_views.py
"""
Admin panel list views. Rows written by older clients may miss fields, so the
mappers below fill every column the panel renders.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import (
    AUTO_EXPENSES, EXPENSES, PROFILES, TRANSACTIONS, TRANSACTION_HISTORY, USERS,
)
from expense_tracker.services.queries import combine, date_range_filter, paginate, search_filter
from expense_tracker.services.serializers import to_mongo_safe, utcnow
from expense_tracker.services.users import strip_private


def user_email_of(row: Dict[str, Any], owner: Dict[str, Any] | None) -> str:
    """owner email, else the row's own username/email, else 'Unknown'."""
    if owner and owner.get("email"):
        return owner["email"]
    return row.get("username") or row.get("email") or "Unknown"


def map_expense(row: Dict[str, Any], owner: Dict[str, Any] | None) -> Dict[str, Any]:
    return {**row, "userEmail": user_email_of(row, owner), "status": row.get("status") or "pending"}


def map_owned(row: Dict[str, Any], owner: Dict[str, Any] | None) -> Dict[str, Any]:
    return {**row, "userEmail": user_email_of(row, owner)}


def map_profile(row: Dict[str, Any], owner: Dict[str, Any] | None) -> Dict[str, Any]:
    return {
        **row,
        "userEmail": user_email_of(row, owner),
        "firstName": row.get("firstName") or row.get("name") or "N/A",
        "lastName": row.get("lastName") or "",
        "phone": row.get("phone") or "N/A",
    }


def map_history(row: Dict[str, Any], owner: Dict[str, Any] | None) -> Dict[str, Any]:
    if owner and owner.get("email"):
        email = owner["email"]
    elif row.get("userId") is not None:
        email = f"User ID: {row['userId']}"
    else:
        email = "Unknown"

    if row.get("transactionId"):
        tx_id = str(row["transactionId"])
    elif row.get("expenseId"):
        tx_id = f"Expense ID: {row['expenseId']}"
    else:
        tx_id = "N/A"

    amount = row.get("amount") or 0
    label = row.get("description") or row.get("title") or "Transaction"
    details = row.get("transactionDetails") or f"{label} (${amount})"
    return {
        "_id": row["_id"],
        "userEmail": email,
        "transactionId": tx_id,
        "transactionDetails": details,
        "action": row.get("action") or row.get("type") or "Unknown Action",
        "description": row.get("description") or row.get("details") or details or "No description",
        "amount": amount,
        "date": row.get("date") or row.get("createdAt"),
        "status": row.get("status") or "completed",
        "category": row.get("category"),
        "type": row.get("type"),
    }


async def owners_of(db: AsyncIOMotorDatabase, rows: Iterable[Dict[str, Any]]) -> Dict[ObjectId, Dict[str, Any]]:
    ids = list({r["userId"] for r in rows if isinstance(r.get("userId"), ObjectId)})
    if not ids:
        return {}
    return {u["_id"]: u async for u in db[USERS].find({"_id": {"$in": ids}}, {"name": 1, "email": 1})}


async def _page(
    db: AsyncIOMotorDatabase,
    collection: str,
    query: Dict[str, Any],
    sort_field: str,
    page: int | None,
    limit: int | None,
) -> List[Dict[str, Any]]:
    _, limit, skip = paginate(page, limit, default_limit=100)
    cursor = db[collection].find(query).sort(sort_field, -1).skip(skip).limit(limit)
    return [r async for r in cursor]


async def list_users(db, search=None, start=None, end=None, page=None, limit=None) -> List[Dict[str, Any]]:
    query = combine(search_filter(search, ("name", "email", "phone")), date_range_filter("createdAt", start, end))
    return [strip_private(u) for u in await _page(db, USERS, query, "createdAt", page, limit)]


async def list_expenses(db, search=None, start=None, end=None, page=None, limit=None) -> List[Dict[str, Any]]:
    query = combine(search_filter(search, ("title", "category")), date_range_filter("date", start, end))
    rows = await _page(db, EXPENSES, query, "date", page, limit)
    owners = await owners_of(db, rows)
    return [map_expense(r, owners.get(r.get("userId"))) for r in rows]


async def list_auto_expenses(db, search=None, start=None, end=None, page=None, limit=None) -> List[Dict[str, Any]]:
    query = combine(
        search_filter(search, ("detectedTitle", "category", "source", "status")),
        date_range_filter("detectedDate", start, end),
    )
    rows = await _page(db, AUTO_EXPENSES, query, "detectedDate", page, limit)
    owners = await owners_of(db, rows)
    return [map_owned(r, owners.get(r.get("userId"))) for r in rows]


async def list_profiles(db, search=None, start=None, end=None, page=None, limit=None) -> List[Dict[str, Any]]:
    query = combine(search_filter(search, ("name", "email", "phone")), date_range_filter("createdAt", start, end))
    rows = await _page(db, PROFILES, query, "createdAt", page, limit)
    owners = await owners_of(db, rows)
    return [map_profile(r, owners.get(r.get("userId"))) for r in rows]


async def list_transactions(db, search=None, start=None, end=None, page=None, limit=None) -> List[Dict[str, Any]]:
    query = combine(
        search_filter(search, ("item", "description", "category", "type")),
        date_range_filter("date", start, end),
    )
    rows = await _page(db, TRANSACTIONS, query, "date", page, limit)
    owners = await owners_of(db, rows)
    return [map_owned(r, owners.get(r.get("userId"))) for r in rows]


async def list_history(db, search=None, start=None, end=None, page=None, limit=None) -> List[Dict[str, Any]]:
    query = combine(
        search_filter(search, ("title", "description", "category", "type")),
        date_range_filter("date", start, end),
    )
    rows = await _page(db, TRANSACTION_HISTORY, query, "date", page, limit)
    owners = await owners_of(db, rows)
    return [map_history(r, owners.get(r.get("userId"))) for r in rows]


async def update_document(db: AsyncIOMotorDatabase, collection: str, doc_id: ObjectId,
                          changes: Dict[str, Any], not_found: str) -> Dict[str, Any]:
    changes = to_mongo_safe({k: v for k, v in changes.items() if v is not None})
    changes["updatedAt"] = utcnow()
    doc = await db[collection].find_one_and_update(
        {"_id": doc_id}, {"$set": changes}, return_document=ReturnDocument.AFTER
    )
    if not doc:
        raise ApiError(404, not_found)
    return doc


async def delete_document(db: AsyncIOMotorDatabase, collection: str, doc_id: ObjectId, not_found: str) -> Dict[str, Any]:
    doc = await db[collection].find_one_and_delete({"_id": doc_id})
    if not doc:
        raise ApiError(404, not_found)
    return doc
