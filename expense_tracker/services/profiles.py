"""
Public profiles (referral programme) and their link to user accounts.
"""

import logging
import secrets
import string
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import PROFILES, USERS
from expense_tracker.services.queries import paginate, search_filter, total_pages
from expense_tracker.services.serializers import utcnow

log = logging.getLogger(__name__)

REFERRAL_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_LENGTH = 6


def _err(status: int, message: str) -> ApiError:
    return ApiError(status, message, key="error")


def new_referral_code() -> str:
    return "".join(secrets.choice(REFERRAL_ALPHABET) for _ in range(REFERRAL_LENGTH))


async def unique_referral_code(db: AsyncIOMotorDatabase) -> str:
    while True:
        code = new_referral_code()
        if not await db[PROFILES].find_one({"referralCode": code}):
            return code


async def create_profile(db: AsyncIOMotorDatabase, data: Dict[str, Any]) -> Dict[str, Any]:
    email = data["email"].strip().lower()
    if await db[PROFILES].find_one({"email": email}):
        raise _err(400, "Email already registered")

    now = utcnow()
    profile = {
        "name": data["name"].strip(),
        "email": email,
        "phone": data["phone"],
        "profilePic": data.get("profilePic") or "",
        "referralCode": await unique_referral_code(db),
        "referredBy": (data.get("referredBy") or "").upper() or None,
        "userId": None,
        "createdAt": now,
        "updatedAt": now,
    }

    user = await db[USERS].find_one({"email": email})
    if user:
        profile["userId"] = user["_id"]

    try:
        result = await db[PROFILES].insert_one(profile)
    except DuplicateKeyError:
        raise _err(400, "Email already registered")
    profile["_id"] = result.inserted_id

    if user and not user.get("profile"):
        await db[USERS].update_one({"_id": user["_id"]}, {"$set": {"profile": profile["_id"]}})
    return profile


async def get_profile_by_email(db: AsyncIOMotorDatabase, email: str) -> Dict[str, Any]:
    profile = await db[PROFILES].find_one({"email": email.strip().lower()})
    if not profile:
        raise _err(404, "Profile not found")
    return profile


async def get_profile_by_referral(db: AsyncIOMotorDatabase, code: str) -> Dict[str, Any]:
    profile = await db[PROFILES].find_one({"referralCode": code.strip().upper()})
    if not profile:
        raise _err(404, "Invalid referral code")
    return {"name": profile["name"], "referralCode": profile["referralCode"]}


async def _with_user(db: AsyncIOMotorDatabase, profile: Dict[str, Any]) -> Dict[str, Any]:
    uid = profile.get("userId")
    if isinstance(uid, ObjectId):
        user = await db[USERS].find_one({"_id": uid}, {"name": 1, "email": 1})
        profile = {**profile, "userId": user or uid}
    return profile


async def get_own_profile(db: AsyncIOMotorDatabase, user: Dict[str, Any]) -> Dict[str, Any]:
    query: Dict[str, Any]
    if user.get("profile"):
        query = {"_id": user["profile"]}
    else:
        query = {"$or": [{"userId": user["_id"]}, {"email": user.get("email")}]}
    profile = await db[PROFILES].find_one(query)
    if not profile:
        raise _err(404, "Profile not found")
    return profile


async def list_profiles(
    db: AsyncIOMotorDatabase, page: int | None, limit: int | None, search: str | None
) -> Dict[str, Any]:
    page, limit, skip = paginate(page, limit)
    query = search_filter(search, ("name", "email", "phone"))
    cursor = db[PROFILES].find(query).sort("createdAt", -1).skip(skip).limit(limit)
    rows = [await _with_user(db, p) async for p in cursor]
    count = await db[PROFILES].count_documents(query)
    return {
        "success": True,
        "count": len(rows),
        "totalPages": total_pages(count, limit),
        "currentPage": page,
        "data": rows,
    }


async def get_profile(db: AsyncIOMotorDatabase, profile_id: ObjectId) -> Dict[str, Any]:
    profile = await db[PROFILES].find_one({"_id": profile_id})
    if not profile:
        raise _err(404, "Profile not found")
    return await _with_user(db, profile)


async def get_profile_for_user(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    profile = await db[PROFILES].find_one({"userId": user_id})
    if not profile:
        user = await db[USERS].find_one({"_id": user_id})
        if user and user.get("profile"):
            profile = await db[PROFILES].find_one({"_id": user["profile"]})
    if not profile:
        raise _err(404, "Profile not found for this user")
    return await _with_user(db, profile)


async def update_profile(db: AsyncIOMotorDatabase, profile_id: ObjectId, changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Partial update; name and email changes are copied to the linked user.
    """
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        raise _err(400, "No fields provided for update")

    email = changes.get("email")
    if email and await db[PROFILES].find_one({"email": email, "_id": {"$ne": profile_id}}):
        raise _err(400, "Email already in use by another profile")

    changes["updatedAt"] = utcnow()
    profile = await db[PROFILES].find_one_and_update(
        {"_id": profile_id}, {"$set": changes}, return_document=ReturnDocument.AFTER
    )
    if not profile:
        raise _err(404, "Profile not found")

    user_changes = {k: changes[k] for k in ("name", "email") if k in changes}
    if user_changes:
        link: List[Dict[str, Any]] = [{"profile": profile_id}]
        if isinstance(profile.get("userId"), ObjectId):
            link.append({"_id": profile["userId"]})
        try:
            await db[USERS].update_one({"$or": link}, {"$set": {**user_changes, "updatedAt": utcnow()}})
        except DuplicateKeyError:
            log.warning("Profile %s change not mirrored to user: duplicate %s", profile_id, user_changes)
    return profile


async def delete_profile(db: AsyncIOMotorDatabase, profile_id: ObjectId) -> Optional[Dict[str, Any]]:
    profile = await db[PROFILES].find_one_and_delete({"_id": profile_id})
    if not profile:
        raise _err(404, "Profile not found")
    await db[USERS].update_many({"profile": profile_id}, {"$set": {"profile": None}})
    return profile
