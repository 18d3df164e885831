"""
Admin session tracking.

The browser holds a signed cookie (Starlette SessionMiddleware) carrying a
session id; this module keeps the matching `sessions` document: last activity,
request trail and active/ended state. Idle sessions are ended by the
scheduler's cleanup job.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import SESSIONS
from expense_tracker.services.queries import paginate, pagination_block, search_filter, combine
from expense_tracker.services.serializers import utcnow
from expense_tracker.settings import settings

log = logging.getLogger(__name__)

ACTIVITY_LOG_LIMIT = 100


def timeout_delta(timeout_ms: int | None = None) -> timedelta:
    return timedelta(milliseconds=timeout_ms if timeout_ms is not None else settings.session_timeout)


def _session_error(error: str, message: str | None = None) -> ApiError:
    body = {"error": error}
    if message:
        body["message"] = message
    return ApiError(401, message or error, body=body)


async def start_session(
    db: AsyncIOMotorDatabase,
    session_id: str,
    principal: Dict[str, Any],
    ip_address: str | None = None,
    user_agent: str | None = None,
    path: str | None = None,
    method: str | None = None,
) -> Dict[str, Any]:
    now = utcnow()
    doc = await db[SESSIONS].find_one_and_update(
        {"sessionId": session_id},
        {
            "$set": {
                "userId": principal.get("userId"),
                "email": principal.get("email"),
                "role": principal.get("role") or "user",
                "ipAddress": ip_address,
                "userAgent": user_agent,
                "loginTime": now,
                "lastActivity": now,
                "isActive": True,
                "endedAt": None,
                "requestPath": path,
                "requestMethod": method,
                "updatedAt": now,
            },
            "$setOnInsert": {"sessionId": session_id, "createdAt": now},
            "$push": {"activityLog": {
                "action": "login", "path": path, "method": method, "timestamp": now, "ipAddress": ip_address,
            }},
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    log.info("Admin session %s started for %s", session_id, principal.get("email"))
    return doc


async def track_session(
    db: AsyncIOMotorDatabase,
    session_id: str,
    principal: Dict[str, Any],
    ip_address: str | None = None,
    user_agent: str | None = None,
    path: str | None = None,
    method: str | None = None,
) -> None:
    """Refresh lastActivity and the request trail; an ended session stays ended. Never raises."""
    now = utcnow()
    try:
        await db[SESSIONS].update_one(
            {"sessionId": session_id},
            {
                "$set": {
                    "ipAddress": ip_address,
                    "userAgent": user_agent,
                    "lastActivity": now,
                    "requestPath": path,
                    "requestMethod": method,
                    "updatedAt": now,
                },
                "$setOnInsert": {
                    "sessionId": session_id,
                    "userId": principal.get("userId"),
                    "email": principal.get("email"),
                    "role": principal.get("role") or "user",
                    "loginTime": now,
                    "createdAt": now,
                    "isActive": True,
                    "activityLog": [],
                },
            },
            upsert=True,
        )
    except Exception as e:
        log.warning("Session tracking failed for %s: %s", session_id, e)


async def validate_session(db: AsyncIOMotorDatabase, session_id: str | None, timeout_ms: int | None = None) -> Dict[str, Any]:
    """
    The active session document, or 401. A session idle longer than the
    timeout is ended on the spot.
    """
    if not session_id:
        raise _session_error("No active session")
    session = await db[SESSIONS].find_one({"sessionId": session_id, "isActive": True})
    if not session:
        raise _session_error("Session expired or invalid")

    last = session.get("lastActivity") or session.get("loginTime")
    if last is None or utcnow() - last > timeout_delta(timeout_ms):
        await end_session(db, session_id)
        raise _session_error("Session timeout", "Your session has expired. Please login again.")
    return session


async def log_activity(
    db: AsyncIOMotorDatabase,
    session_id: str,
    action: str = "activity",
    path: str | None = None,
    method: str | None = None,
    ip_address: str | None = None,
) -> None:
    now = utcnow()
    try:
        await db[SESSIONS].update_one(
            {"sessionId": session_id},
            {
                "$push": {"activityLog": {
                    "$each": [{"action": action, "path": path, "method": method, "timestamp": now, "ipAddress": ip_address}],
                    "$slice": -ACTIVITY_LOG_LIMIT,
                }},
                "$set": {"lastActivity": now},
            },
        )
    except Exception as e:
        log.warning("Could not log %s for session %s: %s", action, session_id, e)


async def end_session(db: AsyncIOMotorDatabase, session_id: str) -> bool:
    result = await db[SESSIONS].update_one(
        {"sessionId": session_id, "isActive": True},
        {"$set": {"isActive": False, "endedAt": utcnow()}},
    )
    return result.modified_count > 0


async def cleanup_expired_sessions(db: AsyncIOMotorDatabase, timeout_ms: int | None = None) -> int:
    """Mark sessions idle past the timeout as ended. Returns how many."""
    cutoff = utcnow() - timeout_delta(timeout_ms)
    result = await db[SESSIONS].update_many(
        {"lastActivity": {"$lt": cutoff}, "isActive": True},
        {"$set": {"isActive": False, "endedAt": utcnow()}},
    )
    if result.modified_count:
        log.info("Ended %s idle sessions", result.modified_count)
    return result.modified_count


async def delete_expired_sessions(db: AsyncIOMotorDatabase, timeout_ms: int | None = None) -> int:
    """Remove ended sessions and sessions idle past the timeout."""
    cutoff = utcnow() - timeout_delta(timeout_ms)
    result = await db[SESSIONS].delete_many({"$or": [{"isActive": False}, {"lastActivity": {"$lt": cutoff}}]})
    return result.deleted_count


async def active_sessions_count(db: AsyncIOMotorDatabase, user_id: ObjectId | None = None) -> int:
    query: Dict[str, Any] = {"isActive": True}
    if user_id:
        query["userId"] = user_id
    return await db[SESSIONS].count_documents(query)


async def terminate_user_sessions(db: AsyncIOMotorDatabase, user_id: ObjectId) -> int:
    result = await db[SESSIONS].update_many(
        {"userId": user_id, "isActive": True},
        {"$set": {"isActive": False, "endedAt": utcnow()}},
    )
    return result.modified_count


async def terminate_session(db: AsyncIOMotorDatabase, object_id: ObjectId) -> Dict[str, Any]:
    doc = await db[SESSIONS].find_one_and_update(
        {"_id": object_id},
        {"$set": {"isActive": False, "endedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise ApiError(404, "Session not found")
    return doc


async def statistics(db: AsyncIOMotorDatabase, now: datetime | None = None) -> Dict[str, int]:
    now = now or utcnow()
    midnight = datetime(now.year, now.month, now.day)
    col = db[SESSIONS]
    return {
        "active": await col.count_documents({"isActive": True}),
        "total": await col.count_documents({}),
        "today": await col.count_documents({"loginTime": {"$gte": midnight}}),
        "last24Hours": await col.count_documents({"loginTime": {"$gte": now - timedelta(hours=24)}}),
    }


def with_duration(session: Dict[str, Any], now: datetime | None = None) -> Dict[str, Any]:
    """Adds `duration` (seconds from login to end, or to now while active)."""
    now = now or utcnow()
    login = session.get("loginTime")
    end = session.get("endedAt") or now
    duration = int((end - login).total_seconds()) if login else 0
    return {**session, "duration": max(duration, 0)}


async def list_sessions(
    db: AsyncIOMotorDatabase,
    page: int | None,
    limit: int | None,
    active: bool | None = None,
    search: str | None = None,
) -> Dict[str, Any]:
    page, limit, skip = paginate(page, limit, default_limit=20)
    query = combine(
        {"isActive": active} if active is not None else {},
        search_filter(search, ("email", "ipAddress", "userAgent")),
    )
    cursor = db[SESSIONS].find(query, {"activityLog": 0}).sort("lastActivity", -1).skip(skip).limit(limit)
    rows = [with_duration(s) async for s in cursor]
    total = await db[SESSIONS].count_documents(query)
    return {"success": True, "data": rows, "pagination": pagination_block(page, limit, total, "Sessions")}
