# expense_tracker/routes/users.py
from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from expense_tracker.db import get_db
from expense_tracker.schemas import ChangePasswordReq, UserUpdateReq
from expense_tracker.security import ensure_owner_or_admin, get_user_or_admin, require_admin
from expense_tracker.services import users
from expense_tracker.services.serializers import parse_object_id, to_json

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("")
async def list_users(_admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    rows = await users.list_users(db)
    return to_json({"success": True, "count": len(rows), "data": rows})


@router.get("/{user_id}")
async def get_user(user_id: str, principal=Depends(get_user_or_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    oid = parse_object_id(user_id, "user")
    ensure_owner_or_admin(principal, oid, "Not authorized to view this user")
    return to_json({"success": True, "data": await users.get_user_view(db, oid)})


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdateReq,
    principal=Depends(get_user_or_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    oid = parse_object_id(user_id, "user")
    ensure_owner_or_admin(principal, oid, "Not authorized to update this user")

    changes = body.model_dump(exclude_none=True)
    if "username" in changes:
        changes["name"] = changes.pop("username")
    if not principal.get("admin"):
        # account role and activation are operator-only
        changes.pop("role", None)
        changes.pop("isActive", None)

    user = await users.update_user(db, oid, changes)
    return to_json({"success": True, "message": "User updated successfully", "data": user})


@router.put("/{user_id}/password")
async def change_password(
    user_id: str,
    body: ChangePasswordReq,
    principal=Depends(get_user_or_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    oid = parse_object_id(user_id, "user")
    ensure_owner_or_admin(principal, oid, "Not authorized to change this password")
    await users.change_password(db, oid, body.currentPassword, body.newPassword)
    return {"success": True, "message": "Password updated successfully"}


@router.delete("/{user_id}")
async def delete_user(user_id: str, principal=Depends(get_user_or_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    oid = parse_object_id(user_id, "user")
    ensure_owner_or_admin(principal, oid, "Not authorized to delete this user")
    await users.delete_user(db, oid)
    return {"success": True, "message": "User deleted successfully"}
