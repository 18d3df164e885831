"""
User accounts: signup/login, password reset, profile linking and the
owner/admin maintenance operations behind /api/users and /api/admin/users.
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import EXPENSES, PROFILES, USERS
from expense_tracker.security import hash_password, verify_password
from expense_tracker.services.sessions import terminate_user_sessions
from expense_tracker.services.serializers import utcnow, without

log = logging.getLogger(__name__)

RESET_TOKEN_TTL = timedelta(hours=1)
PRIVATE_FIELDS = ("password", "resetPasswordToken", "resetPasswordExpire")


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """The shape auth endpoints return for a user."""
    return {
        "id": user["_id"],
        "name": user.get("name"),
        "email": user.get("email"),
        "phone": user.get("phone"),
        "gender": user.get("gender"),
        "currency": user.get("currency"),
        "profilePicture": user.get("profilePicture"),
        "authProvider": user.get("authProvider") or "local",
        "role": user.get("role") or "user",
        "createdAt": user.get("createdAt"),
        "updatedAt": user.get("updatedAt"),
    }


def strip_private(user: Dict[str, Any] | None) -> Dict[str, Any] | None:
    return without(user, *PRIVATE_FIELDS)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


async def get_user_by_id(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Optional[Dict[str, Any]]:
    """Get user by ObjectId."""
    return await db[USERS].find_one({"_id": user_id})


async def get_user_by_email(db: AsyncIOMotorDatabase, email: str) -> Optional[Dict[str, Any]]:
    """Get user by (lower-cased) email."""
    return await db[USERS].find_one({"email": email.strip().lower()})


async def create_user(
    db: AsyncIOMotorDatabase,
    name: str,
    email: str,
    password: str,
    *,
    phone: str | None = None,
    gender: str | None = None,
    currency: str | None = None,
    role: str = "user",
) -> Dict[str, Any]:
    """
    Register a local account.

    Args:
        db: MongoDB database instance
        name: display name, unique across users
        email: login email, stored lower-cased
        password: plain text, stored as a bcrypt hash

    Returns:
        The inserted user document (with password hash).

    An existing profile with the same email is linked both ways.
    """
    email = email.strip().lower()
    clauses: List[Dict[str, Any]] = [{"email": email}, {"name": name}]
    if phone:
        clauses.append({"phone": phone})

    existing = await db[USERS].find_one({"$or": clauses})
    if existing:
        if existing.get("email") == email:
            raise ApiError(400, "Email already registered")
        if existing.get("name") == name:
            raise ApiError(400, "Username already taken")
        raise ApiError(400, "Phone number already registered")

    now = utcnow()
    user = {
        "name": name,
        "email": email,
        "password": hash_password(password),
        "phone": phone,
        "gender": gender,
        "currency": currency,
        "profilePicture": None,
        "authProvider": "local",
        "resetPasswordToken": None,
        "resetPasswordExpire": None,
        "role": role,
        "isActive": True,
        "lastLogin": None,
        "profile": None,
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        result = await db[USERS].insert_one(user)
    except DuplicateKeyError:
        raise ApiError(400, "Email already registered")
    user["_id"] = result.inserted_id

    profile = await db[PROFILES].find_one({"email": email})
    if profile:
        await db[USERS].update_one({"_id": user["_id"]}, {"$set": {"profile": profile["_id"]}})
        await db[PROFILES].update_one({"_id": profile["_id"]}, {"$set": {"userId": user["_id"]}})
        user["profile"] = profile["_id"]

    log.info("User registered: %s", email)
    return user


async def authenticate(db: AsyncIOMotorDatabase, email: str, password: str) -> Dict[str, Any]:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.get("password")):
        raise ApiError(401, "Invalid email or password")
    if user.get("isActive") is False:
        raise ApiError(403, "Account is deactivated. Please contact support.")

    now = utcnow()
    await db[USERS].update_one({"_id": user["_id"]}, {"$set": {"lastLogin": now}})
    user["lastLogin"] = now
    return user


async def start_password_reset(db: AsyncIOMotorDatabase, email: str) -> tuple[Dict[str, Any], str]:
    """
    Store the sha256 of a fresh token with a one hour expiry.
    Returns (user, raw token); only the raw token goes into the email.
    """
    user = await get_user_by_email(db, email)
    if not user:
        raise ApiError(404, "User not found with this email")

    token = secrets.token_hex(32)
    await db[USERS].update_one(
        {"_id": user["_id"]},
        {"$set": {
            "resetPasswordToken": hash_reset_token(token),
            "resetPasswordExpire": utcnow() + RESET_TOKEN_TTL,
        }},
    )
    return user, token


async def clear_password_reset(db: AsyncIOMotorDatabase, user_id: ObjectId) -> None:
    await db[USERS].update_one(
        {"_id": user_id},
        {"$set": {"resetPasswordToken": None, "resetPasswordExpire": None}},
    )


async def complete_password_reset(db: AsyncIOMotorDatabase, token: str, password: str) -> Dict[str, Any]:
    user = await db[USERS].find_one({
        "resetPasswordToken": hash_reset_token(token),
        "resetPasswordExpire": {"$gt": utcnow()},
    })
    if not user:
        raise ApiError(400, "Invalid or expired reset token")

    return await db[USERS].find_one_and_update(
        {"_id": user["_id"]},
        {"$set": {
            "password": hash_password(password),
            "resetPasswordToken": None,
            "resetPasswordExpire": None,
            "updatedAt": utcnow(),
        }},
        return_document=ReturnDocument.AFTER,
    )


async def with_profiles(db: AsyncIOMotorDatabase, users: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Replace each user's `profile` reference by the profile document."""
    ids = list({u["profile"] for u in users if isinstance(u.get("profile"), ObjectId)})
    profiles: Dict[ObjectId, Dict[str, Any]] = {}
    if ids:
        async for p in db[PROFILES].find({"_id": {"$in": ids}}):
            profiles[p["_id"]] = p
    out = []
    for u in users:
        u = strip_private(u)
        if isinstance(u.get("profile"), ObjectId):
            u["profile"] = profiles.get(u["profile"])
        out.append(u)
    return out


async def list_users(db: AsyncIOMotorDatabase) -> List[Dict[str, Any]]:
    users = [u async for u in db[USERS].find().sort("createdAt", -1)]
    return await with_profiles(db, users)


async def get_user_view(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    user = await get_user_by_id(db, user_id)
    if not user:
        raise ApiError(404, "User not found")
    return (await with_profiles(db, [user]))[0]


async def update_user(db: AsyncIOMotorDatabase, user_id: ObjectId, changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Partial update with uniqueness checks on name and email.
    An email change is mirrored to the linked profile.
    """
    user = await get_user_by_id(db, user_id)
    if not user:
        raise ApiError(404, "User not found")

    changes = {k: v for k, v in changes.items() if v is not None}
    name = changes.get("name")
    if name and name != user.get("name"):
        if await db[USERS].find_one({"name": name, "_id": {"$ne": user_id}}):
            raise ApiError(400, "Username already taken")

    email = changes.get("email")
    if email:
        email = changes["email"] = str(email).lower()
    email_changed = bool(email) and email != user.get("email")
    if email_changed:
        if await db[USERS].find_one({"email": email, "_id": {"$ne": user_id}}):
            raise ApiError(400, "Email already in use by another user")
        profile_query: Dict[str, Any] = {"email": email}
        if user.get("profile"):
            profile_query["_id"] = {"$ne": user["profile"]}
        if await db[PROFILES].find_one(profile_query):
            raise ApiError(400, "Email already in use in profiles")

    if changes:
        changes["updatedAt"] = utcnow()
        await db[USERS].update_one({"_id": user_id}, {"$set": changes})

    if email_changed and user.get("profile"):
        await db[PROFILES].update_one(
            {"_id": user["profile"]}, {"$set": {"email": email, "updatedAt": utcnow()}}
        )

    return await get_user_view(db, user_id)


async def change_password(db: AsyncIOMotorDatabase, user_id: ObjectId, current: str, new: str) -> None:
    user = await get_user_by_id(db, user_id)
    if not user:
        raise ApiError(404, "User not found")
    if not verify_password(current, user.get("password")):
        raise ApiError(401, "Current password is incorrect")
    await db[USERS].update_one(
        {"_id": user_id},
        {"$set": {"password": hash_password(new), "updatedAt": utcnow()}},
    )


async def delete_user(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    """
    Delete the account, then its expenses and sessions in separate calls.
    The follow-up deletes are best-effort; a failure there is only logged.
    """
    user = await db[USERS].find_one_and_delete({"_id": user_id})
    if not user:
        raise ApiError(404, "User not found")

    try:
        result = await db[EXPENSES].delete_many({"userId": user_id})
        log.info("Deleted %s expenses of user %s", result.deleted_count, user_id)
    except Exception:
        log.exception("Expense cascade failed for user %s", user_id)

    try:
        await terminate_user_sessions(db, user_id)
    except Exception:
        log.exception("Session cleanup failed for user %s", user_id)

    return strip_private(user)
