# expense_tracker/security.py
"""
Password hashing, JWT issuing/verification and the FastAPI auth dependencies.

Two token families share the HS256 algorithm:
  - user tokens   {"userId", "exp"}         signed with JWT_SECRET, 7 days
  - admin tokens  {"email", "role", "exp"}  signed with ADMIN_JWT_SECRET (or JWT_SECRET), 24 h
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorDatabase
from passlib.context import CryptContext

from expense_tracker.db import get_db
from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import REVOKED_TOKENS, USERS
from expense_tracker.services.serializers import maybe_object_id, utcnow
from expense_tracker.settings import settings

log = logging.getLogger(__name__)

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # not a bcrypt hash (legacy row)
        return False


def create_user_token(user_id: Any, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.jwt_expires_days))
    return jwt.encode({"userId": str(user_id), "exp": expire}, settings.jwt_secret, algorithm=ALGORITHM)


def create_admin_token(email: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=settings.admin_token_hours))
    payload = {"email": email, "role": "admin", "exp": expire}
    return jwt.encode(payload, settings.admin_secret, algorithm=ALGORITHM)


def decode_user_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])


def decode_admin_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, settings.admin_secret, algorithms=[ALGORITHM])


# ---------- revocation (logout) ----------

async def revoke_token(db: AsyncIOMotorDatabase, token: str, expires_at: datetime | None = None) -> None:
    """Remember a token until it would have expired anyway (TTL index on expiresAt)."""
    await db[REVOKED_TOKENS].update_one(
        {"token": token},
        {"$set": {"token": token, "expiresAt": expires_at or utcnow() + timedelta(days=settings.jwt_expires_days)}},
        upsert=True,
    )


async def is_revoked(db: AsyncIOMotorDatabase, token: str) -> bool:
    return await db[REVOKED_TOKENS].find_one({"token": token}) is not None


def token_expiry(payload: Dict[str, Any]) -> datetime | None:
    exp = payload.get("exp")
    if exp is None:
        return None
    return datetime.fromtimestamp(int(exp), tz=timezone.utc).replace(tzinfo=None)


# ---------- dependencies ----------

def _user_error(message: str) -> ApiError:
    return ApiError(401, message, body={"error": message})


async def _load_user(db: AsyncIOMotorDatabase, token: str) -> Dict[str, Any]:
    try:
        payload = decode_user_token(token)
    except InvalidTokenError as e:
        log.info("User token rejected: %s", e)
        raise _user_error("Invalid or expired token")

    if await is_revoked(db, token):
        raise _user_error("Invalid or expired token")

    user_id = maybe_object_id(payload.get("userId"))
    user = await db[USERS].find_one({"_id": user_id}) if user_id else None
    if not user:
        raise _user_error("Invalid or expired token")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> Dict[str, Any]:
    if credentials is None:
        raise _user_error("Authentication required")
    return await _load_user(db, credentials.credentials)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> Optional[Dict[str, Any]]:
    """Anonymous callers pass through; a bad token is still rejected."""
    if credentials is None:
        return None
    return await _load_user(db, credentials.credentials)


async def _verify_admin(db: AsyncIOMotorDatabase, token: str) -> Dict[str, Any]:
    try:
        payload = decode_admin_token(token)
    except ExpiredSignatureError:
        raise ApiError(401, "Token expired. Please login again.")
    except InvalidTokenError:
        raise ApiError(401, "Invalid token")

    if payload.get("role") != "admin":
        raise ApiError(403, "Access denied. Admin privileges required.")
    if await is_revoked(db, token):
        raise ApiError(401, "Invalid token")
    return {"email": payload.get("email"), "role": payload["role"], "token": token, "exp": token_expiry(payload)}


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> Dict[str, Any]:
    if credentials is None:
        raise ApiError(401, "No token provided. Authorization header required.")
    return await _verify_admin(db, credentials.credentials)


async def get_user_or_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> Dict[str, Any]:
    """
    For routes an owner or an operator may call.
    Returns {"user": <doc or None>, "admin": <claims or None>}.
    """
    if credentials is None:
        raise _user_error("Authentication required")
    token = credentials.credentials
    try:
        return {"user": await _load_user(db, token), "admin": None}
    except ApiError:
        pass
    try:
        return {"user": None, "admin": await _verify_admin(db, token)}
    except ApiError:
        raise _user_error("Invalid or expired token")


def ensure_owner_or_admin(principal: Dict[str, Any], owner_id: Any, message: str = "Access denied") -> None:
    if principal.get("admin"):
        return
    user = principal.get("user")
    if not user or str(user["_id"]) != str(owner_id):
        raise ApiError(403, message, body={"error": message})
