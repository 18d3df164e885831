# expense_tracker/routes/categories.py
from typing import Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from expense_tracker.db import get_db
from expense_tracker.schemas import CategoryReq, CategoryUpdateReq, TxType
from expense_tracker.security import require_admin
from expense_tracker.services import categories
from expense_tracker.services.serializers import parse_object_id, to_json

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("")
async def list_categories(type: Optional[TxType] = None, db: AsyncIOMotorDatabase = Depends(get_db)):
    rows = await categories.list_categories(db, type)
    return to_json({"success": True, "count": len(rows), "data": rows})


@router.get("/{cat_id}")
async def get_category(cat_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json({"success": True, "data": await categories.get_category(db, parse_object_id(cat_id, "category"))})


@router.post("", status_code=201)
async def create_category(body: CategoryReq, _admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    category = await categories.create_category(db, body.model_dump())
    return to_json({"success": True, "message": "Category created successfully", "data": category})


@router.put("/{cat_id}")
async def update_category(
    cat_id: str, body: CategoryUpdateReq, _admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)
):
    category = await categories.update_category(
        db, parse_object_id(cat_id, "category"), body.model_dump(exclude_none=True)
    )
    return to_json({"success": True, "message": "Category updated successfully", "data": category})


@router.delete("/{cat_id}")
async def delete_category(cat_id: str, _admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await categories.delete_category(db, parse_object_id(cat_id, "category"))
    return {"success": True, "message": "Category deleted successfully"}
