# expense_tracker/db.py
import logging

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from expense_tracker.settings import settings

log = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None


async def connect_to_mongo() -> AsyncIOMotorDatabase:
    """
    Open the shared client and return the application database.

    A failed startup ping is only logged; /api/health reports the state.
    """
    global _client
    _client = AsyncIOMotorClient(
        settings.mongodb_uri,
        serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
        appname="expense-tracker-api",
    )
    db = _client[settings.mongodb_db]
    try:
        await db.command("ping")
        log.info("MongoDB connected: %s/%s", _client.address, settings.mongodb_db)
    except PyMongoError as e:
        log.error("MongoDB connection failed: %s", e)
    return db


async def close_mongo_connection() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
        log.info("MongoDB connection closed")


def get_db(request: Request) -> AsyncIOMotorDatabase:
    """FastAPI dependency: the handle opened in the lifespan."""
    return request.app.state.mongodb
