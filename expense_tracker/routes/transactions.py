# expense_tracker/routes/transactions.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase

from expense_tracker.db import get_db
from expense_tracker.errors import ApiError
from expense_tracker.schemas import TxType
from expense_tracker.security import get_current_user
from expense_tracker.services import transactions, uploads
from expense_tracker.services.serializers import parse_object_id, to_json

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def _tx_id(value: str):
    return parse_object_id(value, "transaction", key="error")


async def _store_invoice(invoice: Optional[UploadFile]) -> str | None:
    if invoice is None or not invoice.filename:
        return None
    return await uploads.save_upload(uploads.INVOICE, invoice)


@router.get("")
async def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    type: Optional[TxType] = None,
    category: Optional[str] = None,
    user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return to_json(await transactions.list_transactions(db, user["_id"], page, limit, type, category))


@router.get("/history")
async def history(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    type: Optional[TxType] = None,
    user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return to_json(await transactions.history_with_summary(db, user["_id"], startDate, endDate, type))


@router.post("", status_code=201)
async def create_transaction(
    type: TxType = Form(...),
    category: str = Form(..., min_length=1),
    amount: float = Form(..., gt=0),
    date: datetime = Form(...),
    item: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    paymentMethod: Optional[str] = Form(None),
    icon: Optional[str] = Form(None),
    note: Optional[str] = Form(None),
    invoice: Optional[UploadFile] = File(None),
    user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if not (item or description):
        raise ApiError(400, "Item or description is required", body={"error": "Item or description is required"})
    path = await _store_invoice(invoice)
    data = {
        "type": type, "category": category, "amount": amount, "date": date,
        "item": item, "description": description, "paymentMethod": paymentMethod,
    }
    tx = await transactions.create_transaction(db, user["_id"], data, invoice=path, icon=icon, note=note)
    return to_json(tx)


@router.get("/{tx_id}")
async def get_transaction(tx_id: str, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json(await transactions.get_transaction(db, user["_id"], _tx_id(tx_id)))


@router.put("/{tx_id}")
async def update_transaction(
    tx_id: str,
    type: Optional[TxType] = Form(None),
    category: Optional[str] = Form(None),
    amount: Optional[float] = Form(None, gt=0),
    date: Optional[datetime] = Form(None),
    item: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    paymentMethod: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    icon: Optional[str] = Form(None),
    note: Optional[str] = Form(None),
    invoice: Optional[UploadFile] = File(None),
    user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    oid = _tx_id(tx_id)
    if status is not None and status not in transactions.TX_STATUSES:
        raise ApiError(400, "Invalid status", body={"error": "Invalid status"})
    path = await _store_invoice(invoice)
    changes = {
        "type": type, "category": category, "amount": amount, "date": date, "item": item,
        "description": description, "paymentMethod": paymentMethod, "status": status,
    }
    tx = await transactions.update_transaction(db, user["_id"], oid, changes, invoice=path, icon=icon, note=note)
    return to_json(tx)


@router.delete("/{tx_id}")
async def delete_transaction(tx_id: str, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    await transactions.delete_transaction(db, user["_id"], _tx_id(tx_id))
    return {"message": "Transaction deleted successfully"}
