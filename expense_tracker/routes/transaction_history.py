# expense_tracker/routes/transaction_history.py
from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from expense_tracker.db import get_db
from expense_tracker.errors import ApiError
from expense_tracker.schemas import HistoryCreateReq, HistoryUpdateReq
from expense_tracker.services import transaction_history as history
from expense_tracker.security import get_current_user
from expense_tracker.services.serializers import parse_object_id, to_json

router = APIRouter(prefix="/api/transaction-history", tags=["transaction-history"])


def _own_user_id(user, user_id: str):
    """Parse the path/body user id and require it to be the caller's."""
    oid = parse_object_id(user_id, "user", key="error")
    if oid != user["_id"]:
        raise ApiError(403, "Access denied", key="error")
    return oid


async def _own_entry(db, user, entry_id: str):
    entry = await history.get_entry(db, parse_object_id(entry_id, "transaction", key="error"))
    if entry.get("userId") != user["_id"]:
        raise ApiError(403, "Access denied", key="error")
    return entry


@router.post("", status_code=201)
async def create_entry(body: HistoryCreateReq, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    oid = _own_user_id(user, body.userId)
    entry = await history.create_entry(db, oid, body.model_dump(exclude={"userId"}))
    return to_json({"success": True, "data": entry})


@router.get("/{user_id}")
async def list_for_user(user_id: str, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    rows = await history.list_for_user(db, _own_user_id(user, user_id))
    return to_json({"success": True, "count": len(rows), "data": rows})


@router.get("/{user_id}/type/{tx_type}")
async def list_by_type(
    user_id: str, tx_type: str, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)
):
    rows = await history.list_by_type(db, _own_user_id(user, user_id), tx_type)
    return to_json({"success": True, "count": len(rows), "data": rows})


@router.get("/{user_id}/range")
@router.get("/{user_id}/date-range")
async def list_in_range(
    user_id: str,
    startDate: str,
    endDate: str,
    user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    rows = await history.list_in_range(db, _own_user_id(user, user_id), startDate, endDate)
    return to_json({"success": True, "count": len(rows), "data": rows})


@router.get("/{user_id}/summary")
async def summary(user_id: str, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "data": await history.summary(db, _own_user_id(user, user_id))}


@router.put("/{entry_id}")
async def update_entry(
    entry_id: str, body: HistoryUpdateReq, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)
):
    entry = await _own_entry(db, user, entry_id)
    updated = await history.update_entry(db, entry["_id"], body.model_dump(exclude_none=True))
    return to_json({"success": True, "data": updated})


@router.delete("/{entry_id}")
async def delete_entry(entry_id: str, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    entry = await _own_entry(db, user, entry_id)
    await history.delete_entry(db, entry["_id"])
    return {"success": True, "message": "Transaction deleted successfully"}
