"""
Transaction history: the denormalized, display-oriented mirror of transactions.

Rows are written directly through /api/transaction-history or as a side effect
of transaction writes (the `*_from_transaction` helpers). Mirrored rows carry
`transactionId`; rows written before that field existed are matched on
(userId, title, amount, type).
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import TRANSACTION_HISTORY
from expense_tracker.services.queries import date_range_filter
from expense_tracker.services.serializers import to_mongo_safe, utcnow

log = logging.getLogger(__name__)

HISTORY_TYPES = ("income", "expense")
PAYMENT_METHODS = ("cash", "card", "bank_transfer", "digital_wallet", "upi")


def _err(status: int, message: str) -> ApiError:
    return ApiError(status, message, key="error")


def _payment_method(value: Any) -> str:
    return value if value in PAYMENT_METHODS else "cash"


async def list_for_user(
    db: AsyncIOMotorDatabase, user_id: ObjectId, extra: Optional[Dict[str, Any]] = None
) -> List[Dict[str, Any]]:
    query = {"userId": user_id, **(extra or {})}
    return [h async for h in db[TRANSACTION_HISTORY].find(query).sort("date", -1)]


async def list_by_type(db: AsyncIOMotorDatabase, user_id: ObjectId, tx_type: str) -> List[Dict[str, Any]]:
    if tx_type not in HISTORY_TYPES:
        raise _err(400, 'Type must be either "income" or "expense"')
    return await list_for_user(db, user_id, {"type": tx_type})


async def list_in_range(db: AsyncIOMotorDatabase, user_id: ObjectId, start: Any, end: Any) -> List[Dict[str, Any]]:
    return await list_for_user(db, user_id, date_range_filter("date", start, end))


async def summary(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, float]:
    pipeline = [
        {"$match": {"userId": user_id}},
        {"$group": {"_id": "$type", "total": {"$sum": "$amount"}}},
    ]
    totals = {row["_id"]: row["total"] async for row in db[TRANSACTION_HISTORY].aggregate(pipeline)}
    income = totals.get("income", 0)
    expense = totals.get("expense", 0)
    return {"totalIncome": income, "totalExpense": expense, "balance": income - expense}


def totals_of(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Income/expense totals over already-fetched rows."""
    income = sum(float(r.get("amount") or 0) for r in rows if r.get("type") == "income")
    expense = sum(float(r.get("amount") or 0) for r in rows if r.get("type") != "income")
    return {
        "totalIncome": income,
        "totalExpense": expense,
        "netAmount": income - expense,
        "transactionCount": len(rows),
    }


async def create_entry(db: AsyncIOMotorDatabase, user_id: ObjectId, data: Dict[str, Any]) -> Dict[str, Any]:
    now = utcnow()
    doc = {
        "userId": user_id,
        "transactionId": data.get("transactionId"),
        "date": data.get("date") or now,
        "title": data["title"],
        "amount": float(data["amount"]),
        "type": data["type"],
        "category": data["category"],
        "icon": data.get("icon") or "default",
        "note": data.get("note") or "",
        "paymentMethod": _payment_method(data.get("paymentMethod")),
        "status": data.get("status") or "completed",
        "createdAt": now,
        "updatedAt": now,
    }
    doc = to_mongo_safe(doc)
    result = await db[TRANSACTION_HISTORY].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


async def get_entry(db: AsyncIOMotorDatabase, entry_id: ObjectId) -> Dict[str, Any]:
    entry = await db[TRANSACTION_HISTORY].find_one({"_id": entry_id})
    if not entry:
        raise _err(404, "Transaction not found")
    return entry


async def update_entry(db: AsyncIOMotorDatabase, entry_id: ObjectId, changes: Dict[str, Any]) -> Dict[str, Any]:
    changes = to_mongo_safe({k: v for k, v in changes.items() if v is not None})
    if not changes:
        raise _err(400, "No fields provided for update")
    changes["updatedAt"] = utcnow()
    entry = await db[TRANSACTION_HISTORY].find_one_and_update(
        {"_id": entry_id}, {"$set": changes}, return_document=ReturnDocument.AFTER
    )
    if not entry:
        raise _err(404, "Transaction not found")
    return entry


async def delete_entry(db: AsyncIOMotorDatabase, entry_id: ObjectId) -> Dict[str, Any]:
    entry = await db[TRANSACTION_HISTORY].find_one_and_delete({"_id": entry_id})
    if not entry:
        raise _err(404, "Transaction not found")
    return entry


# ---------- mirror of transaction writes ----------

def _title_of(tx: Dict[str, Any]) -> str:
    return tx.get("description") or tx.get("item") or tx.get("category") or "Transaction"


def _mirror_fields(tx: Dict[str, Any], icon: str | None = None, note: str | None = None) -> Dict[str, Any]:
    return {
        "date": tx.get("date"),
        "title": _title_of(tx),
        "amount": float(tx.get("amount") or 0),
        "type": tx.get("type") or "expense",
        "category": tx.get("category") or "General",
        "icon": icon or "default",
        "note": note or _title_of(tx),
        "paymentMethod": _payment_method(tx.get("paymentMethod")),
        "status": tx.get("status") or "completed",
    }


def _legacy_match(user_id: ObjectId, title: Any, amount: Any, tx_type: Any = None) -> Dict[str, Any]:
    query = {"userId": user_id, "title": title, "amount": amount, "transactionId": None}
    if tx_type:
        query["type"] = tx_type
    return query


async def create_history_from_transaction(
    db: AsyncIOMotorDatabase, tx: Dict[str, Any], icon: str | None = None, note: str | None = None
) -> Dict[str, Any]:
    data = {"transactionId": tx["_id"], **_mirror_fields(tx, icon, note)}
    return await create_entry(db, tx["userId"], data)


async def update_history_from_transaction(
    db: AsyncIOMotorDatabase,
    old_tx: Dict[str, Any],
    tx: Dict[str, Any],
    icon: str | None = None,
    note: str | None = None,
) -> Optional[Dict[str, Any]]:
    """Update the mirror row; creates it when none exists yet. icon and note are kept unless given."""
    fields = _mirror_fields(tx, icon, note)
    if icon is None:
        fields.pop("icon")
    if note is None:
        fields.pop("note")
    fields = to_mongo_safe({**fields, "transactionId": tx["_id"], "updatedAt": utcnow()})
    col = db[TRANSACTION_HISTORY]
    entry = await col.find_one_and_update(
        {"transactionId": tx["_id"]}, {"$set": fields}, return_document=ReturnDocument.AFTER
    )
    if entry is None:
        entry = await col.find_one_and_update(
            _legacy_match(tx["userId"], _title_of(old_tx), old_tx.get("amount")),
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
    if entry is None:
        log.info("No history row for transaction %s; creating one", tx["_id"])
        entry = await create_history_from_transaction(db, tx, icon, note)
    return entry


async def delete_history_from_transaction(db: AsyncIOMotorDatabase, tx: Dict[str, Any]) -> int:
    col = db[TRANSACTION_HISTORY]
    result = await col.delete_many({"transactionId": tx["_id"]})
    if result.deleted_count:
        return result.deleted_count
    legacy = await col.find_one_and_delete(
        _legacy_match(tx["userId"], _title_of(tx), tx.get("amount"), tx.get("type"))
    )
    return 1 if legacy else 0
