# expense_tracker/routes/profiles.py
from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from expense_tracker.db import get_db
from expense_tracker.schemas import ChangePasswordReq, ProfileCreateReq, ProfileUpdateReq
from expense_tracker.security import get_current_user
from expense_tracker.services import profiles, users
from expense_tracker.services.serializers import parse_object_id, to_json

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


def _profile_id(value: str):
    return parse_object_id(value, "profile", key="error")


# ---- public ----

@router.post("", status_code=201)
async def create_profile(body: ProfileCreateReq, db: AsyncIOMotorDatabase = Depends(get_db)):
    profile = await profiles.create_profile(db, body.model_dump())
    return to_json({"success": True, "message": "Profile created successfully", "data": profile})


@router.get("/email/{email}")
async def profile_by_email(email: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json({"success": True, "data": await profiles.get_profile_by_email(db, email)})


@router.get("/referral/{code}")
async def profile_by_referral(code: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "data": await profiles.get_profile_by_referral(db, code)}


# ---- authenticated ----

@router.get("/me")
async def my_profile(user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json({"success": True, "data": await profiles.get_own_profile(db, user)})


@router.put("/change-password")
@router.put("/password")
async def change_my_password(
    body: ChangePasswordReq, user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)
):
    await users.change_password(db, user["_id"], body.currentPassword, body.newPassword)
    return {"success": True, "message": "Password updated successfully"}


@router.get("")
async def list_profiles(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    search: str | None = None,
    _user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return to_json(await profiles.list_profiles(db, page, limit, search))


@router.get("/user/{user_id}")
async def profile_for_user(user_id: str, _user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    oid = parse_object_id(user_id, "user", key="error")
    return to_json({"success": True, "data": await profiles.get_profile_for_user(db, oid)})


@router.get("/{profile_id}")
async def get_profile(profile_id: str, _user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    return to_json({"success": True, "data": await profiles.get_profile(db, _profile_id(profile_id))})


@router.put("/{profile_id}")
async def update_profile(
    profile_id: str,
    body: ProfileUpdateReq,
    _user=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    profile = await profiles.update_profile(db, _profile_id(profile_id), body.model_dump(exclude_none=True))
    return to_json({"success": True, "message": "Profile updated successfully", "data": profile})


@router.delete("/{profile_id}")
async def delete_profile(profile_id: str, _user=Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    await profiles.delete_profile(db, _profile_id(profile_id))
    return {"success": True, "message": "Profile deleted successfully"}
