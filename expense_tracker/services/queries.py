# expense_tracker/services/queries.py
"""
Filter and pagination builders shared by the list endpoints.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, Tuple
from datetime import datetime, timedelta
import math
import re

from expense_tracker.services.serializers import utcnow

MAX_PAGE_SIZE = 100


def paginate(page: int | None, limit: int | None, default_limit: int = 10) -> Tuple[int, int, int]:
    """Returns (page, limit, skip); page >= 1, 1 <= limit <= MAX_PAGE_SIZE."""
    page = max(int(page or 1), 1)
    limit = int(limit or default_limit)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    return page, limit, (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def pagination_block(page: int, limit: int, total: int, noun: str = "Items") -> Dict[str, Any]:
    pages = total_pages(total, limit)
    return {
        "currentPage": page,
        "totalPages": pages,
        f"total{noun}": total,
        "hasNext": page < pages,
        "hasPrev": page > 1,
    }


def search_filter(search: str | None, fields: Iterable[str]) -> Dict[str, Any]:
    """Case-insensitive substring match over any of `fields`; {} when no search."""
    if not search or not search.strip():
        return {}
    pattern = re.escape(search.strip())
    return {"$or": [{f: {"$regex": pattern, "$options": "i"}} for f in fields]}


def parse_date(value: Any, *, end_of_day: bool = False) -> datetime | None:
    """
    Accepts datetime or ISO strings ("2024-05-01", "2024-05-01T10:00:00Z").
    A bare date used as an upper bound covers the whole day.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo is None else _naive_utc(value)
    text = str(value).strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    parsed = _naive_utc(parsed)
    if end_of_day and len(text) == 10:
        parsed = parsed + timedelta(days=1) - timedelta(milliseconds=1)
    return parsed


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return (value - value.utcoffset()).replace(tzinfo=None)


def date_range_filter(field: str, start: Any = None, end: Any = None) -> Dict[str, Any]:
    start_dt = parse_date(start)
    end_dt = parse_date(end, end_of_day=True)
    cond: Dict[str, Any] = {}
    if start_dt:
        cond["$gte"] = start_dt
    if end_dt:
        cond["$lte"] = end_dt
    return {field: cond} if cond else {}


def combine(*parts: Dict[str, Any]) -> Dict[str, Any]:
    """AND together non-empty filters so a date range never replaces a search $or."""
    parts = tuple(p for p in parts if p)
    if not parts:
        return {}
    if len(parts) == 1:
        return dict(parts[0])
    return {"$and": list(parts)}


def period_range(kind: str | None, start: Any = None, end: Any = None,
                 now: datetime | None = None) -> Tuple[datetime | None, datetime | None]:
    """
    Date window for a summary period:
      weekly   -> Sunday..Saturday of the current week
      monthly  -> first..last day of the current month
      yearly   -> Jan 1..Dec 31 of the current year
      custom   -> the given start/end
      lifetime -> (None, None); also the fallback for unknown kinds
    """
    now = now or utcnow()
    today = datetime(now.year, now.month, now.day)
    if kind == "weekly":
        # weekday(): Monday=0 .. Sunday=6; weeks start on Sunday
        first = today - timedelta(days=(today.weekday() + 1) % 7)
        return first, first + timedelta(days=7) - timedelta(milliseconds=1)
    if kind == "monthly":
        first = datetime(now.year, now.month, 1)
        nxt = datetime(now.year + (now.month == 12), now.month % 12 + 1, 1)
        return first, nxt - timedelta(milliseconds=1)
    if kind == "yearly":
        return datetime(now.year, 1, 1), datetime(now.year + 1, 1, 1) - timedelta(milliseconds=1)
    if kind == "custom":
        return parse_date(start), parse_date(end, end_of_day=True)
    return None, None


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """[first of month, first of next month)"""
    first = datetime(year, month, 1)
    nxt = datetime(year + (month == 12), month % 12 + 1, 1)
    return first, nxt
