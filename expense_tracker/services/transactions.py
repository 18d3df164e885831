# expense_tracker/services/transactions.py
import logging
from typing import Any, Dict

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import TRANSACTIONS
from expense_tracker.services import transaction_history as history
from expense_tracker.services.queries import date_range_filter, paginate, total_pages
from expense_tracker.services.serializers import to_mongo_safe, utcnow
from expense_tracker.services.uploads import remove_upload

log = logging.getLogger(__name__)

TX_STATUSES = ("pending", "completed", "cancelled")


def not_found() -> ApiError:
    return ApiError(404, "Transaction not found", body={"error": "Transaction not found"})


async def list_transactions(
    db: AsyncIOMotorDatabase,
    user_id: ObjectId,
    page: int | None = None,
    limit: int | None = None,
    tx_type: str | None = None,
    category: str | None = None,
) -> Dict[str, Any]:
    page, limit, skip = paginate(page, limit)
    query: Dict[str, Any] = {"userId": user_id}
    if tx_type:
        query["type"] = tx_type
    if category:
        query["category"] = category

    cursor = db[TRANSACTIONS].find(query).sort("date", -1).skip(skip).limit(limit)
    rows = [t async for t in cursor]
    total = await db[TRANSACTIONS].count_documents(query)
    return {"transactions": rows, "totalPages": total_pages(total, limit), "currentPage": page, "total": total}


async def get_transaction(db: AsyncIOMotorDatabase, user_id: ObjectId, tx_id: ObjectId) -> Dict[str, Any]:
    tx = await db[TRANSACTIONS].find_one({"_id": tx_id, "userId": user_id})
    if not tx:
        raise not_found()
    return tx


async def create_transaction(
    db: AsyncIOMotorDatabase,
    user_id: ObjectId,
    data: Dict[str, Any],
    invoice: str | None = None,
    icon: str | None = None,
    note: str | None = None,
) -> Dict[str, Any]:
    """
    Insert the transaction, then mirror it into transaction history.
    The mirror is best-effort: its failure is logged, never raised.
    If the insert itself fails the stored invoice is removed.
    """
    now = utcnow()
    doc = to_mongo_safe({
        "userId": user_id,
        "type": data["type"],
        "category": data["category"],
        "item": data.get("item") or data.get("description"),
        "description": data.get("description") or data.get("item"),
        "amount": float(data["amount"]),
        "date": data.get("date") or now,
        "paymentMethod": data.get("paymentMethod") or "cash",
        "status": data.get("status") or "completed",
        "invoice": invoice,
        "createdAt": now,
        "updatedAt": now,
    })
    try:
        result = await db[TRANSACTIONS].insert_one(doc)
    except Exception:
        remove_upload(invoice)
        raise
    doc["_id"] = result.inserted_id

    try:
        await history.create_history_from_transaction(db, doc, icon=icon, note=note)
    except Exception:
        log.exception("History mirror failed for new transaction %s", doc["_id"])
    return doc


async def update_transaction(
    db: AsyncIOMotorDatabase,
    user_id: ObjectId,
    tx_id: ObjectId,
    changes: Dict[str, Any],
    invoice: str | None = None,
    icon: str | None = None,
    note: str | None = None,
) -> Dict[str, Any]:
    query = {"_id": tx_id, "userId": user_id}
    old = await db[TRANSACTIONS].find_one(query)
    if not old:
        remove_upload(invoice)
        raise not_found()
    return await _apply_update(db, query, old, changes, invoice, icon, note)


async def _apply_update(
    db: AsyncIOMotorDatabase,
    query: Dict[str, Any],
    old: Dict[str, Any],
    changes: Dict[str, Any],
    invoice: str | None = None,
    icon: str | None = None,
    note: str | None = None,
) -> Dict[str, Any]:
    changes = to_mongo_safe({k: v for k, v in changes.items() if v is not None})
    if "amount" in changes:
        changes["amount"] = float(changes["amount"])
    if invoice:
        changes["invoice"] = invoice
    changes["updatedAt"] = utcnow()

    tx = await db[TRANSACTIONS].find_one_and_update(query, {"$set": changes}, return_document=ReturnDocument.AFTER)
    if invoice and old.get("invoice"):
        remove_upload(old["invoice"])

    try:
        await history.update_history_from_transaction(db, old, tx, icon=icon, note=note)
    except Exception:
        log.exception("History mirror failed for updated transaction %s", old["_id"])
    return tx


async def delete_transaction(db: AsyncIOMotorDatabase, user_id: ObjectId, tx_id: ObjectId) -> Dict[str, Any]:
    tx = await db[TRANSACTIONS].find_one_and_delete({"_id": tx_id, "userId": user_id})
    if not tx:
        raise not_found()
    remove_upload(tx.get("invoice"))
    try:
        await history.delete_history_from_transaction(db, tx)
    except Exception:
        log.exception("History mirror delete failed for transaction %s", tx_id)
    return tx


async def history_with_summary(
    db: AsyncIOMotorDatabase,
    user_id: ObjectId,
    start: Any = None,
    end: Any = None,
    tx_type: str | None = None,
) -> Dict[str, Any]:
    extra: Dict[str, Any] = {}
    if start and end:
        extra.update(date_range_filter("date", start, end))
    if tx_type:
        extra["type"] = tx_type
    rows = await history.list_for_user(db, user_id, extra)
    return {"success": True, "transactions": rows, "summary": history.totals_of(rows)}


async def admin_delete_transaction(db: AsyncIOMotorDatabase, tx_id: ObjectId) -> Dict[str, Any]:
    """Delete any user's transaction; invoice and mirror go with it."""
    tx = await db[TRANSACTIONS].find_one_and_delete({"_id": tx_id})
    if not tx:
        raise not_found()
    remove_upload(tx.get("invoice"))
    try:
        await history.delete_history_from_transaction(db, tx)
    except Exception:
        log.exception("History mirror delete failed for transaction %s", tx_id)
    return tx


async def admin_update_transaction(db: AsyncIOMotorDatabase, tx_id: ObjectId, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Edit any user's transaction; the history mirror follows."""
    query = {"_id": tx_id}
    old = await db[TRANSACTIONS].find_one(query)
    if not old:
        raise ApiError(404, "Transaction not found")
    return await _apply_update(db, query, old, changes)
