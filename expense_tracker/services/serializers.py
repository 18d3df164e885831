# expense_tracker/services/serializers.py
from __future__ import annotations
from typing import Any, Dict
from bson import ObjectId
from bson.errors import InvalidId
import datetime as dt
from decimal import Decimal

from expense_tracker.errors import ApiError


def utcnow() -> dt.datetime:
    """Naive UTC, the form pymongo hands back."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def to_mongo_safe(value: Any) -> Any:
    """
    Recursively convert values so MongoDB can encode them.
    - date -> datetime (UTC midnight)
    - tz-aware datetime -> naive UTC datetime
    - Decimal -> float
    - dict/list -> recurse
    """
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return value

    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time.min)

    if isinstance(value, Decimal):
        return float(value)

    if isinstance(value, dict):
        return {k: to_mongo_safe(v) for k, v in value.items()}

    if isinstance(value, list):
        return [to_mongo_safe(v) for v in value]

    return value


def to_json(value: Any) -> Any:
    """Inverse direction: ObjectId -> str, datetime -> ISO-8601 with Z."""
    if isinstance(value, ObjectId):
        return str(value)

    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return value.isoformat(timespec="milliseconds") + "Z"

    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]

    return value


def without(doc: Dict[str, Any] | None, *fields: str) -> Dict[str, Any] | None:
    if doc is None:
        return None
    return {k: v for k, v in doc.items() if k not in fields}


def parse_object_id(value: Any, label: str = "", *, key: str = "message") -> ObjectId:
    """ObjectId from a path/body value, or 400 `Invalid <label> ID format`."""
    if isinstance(value, ObjectId):
        return value
    message = f"Invalid {label} ID format" if label else "Invalid ID format"
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ApiError(400, message, key=key)


def maybe_object_id(value: Any) -> ObjectId | None:
    if isinstance(value, ObjectId):
        return value
    if value and ObjectId.is_valid(str(value)):
        return ObjectId(str(value))
    return None
