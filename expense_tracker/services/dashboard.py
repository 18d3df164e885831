# expense_tracker/services/dashboard.py
"""
Aggregations behind the admin dashboard charts.

Each query is a single pipeline over `expenses`; the row formatting lives in
small pure functions so the chart shapes can be checked without a server.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase

from expense_tracker.mongo_collections import AUTO_EXPENSES, EXPENSES, TRANSACTIONS, USERS
from expense_tracker.services.queries import month_bounds
from expense_tracker.services.serializers import utcnow

log = logging.getLogger(__name__)

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def ym(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


def previous_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def growth_percent(current: int, previous: int) -> float:
    """Month-over-month change in percent, one decimal; 0 without a baseline."""
    if previous <= 0:
        return 0
    return round((current - previous) / previous * 100, 1)


def weekday_name(day: str) -> str:
    """'2024-05-05' -> 'Sun'."""
    parsed = datetime.strptime(day, "%Y-%m-%d")
    return DAY_NAMES[(parsed.weekday() + 1) % 7]


def month_label(key: str) -> str:
    """'2024-05' -> 'May'; anything unparsable is returned unchanged."""
    try:
        _, month = key.split("-")
        return MONTH_NAMES[int(month) - 1]
    except (ValueError, IndexError):
        return key


def format_monthly(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {"month": ym(r["_id"]["year"], r["_id"]["month"]), "amount": r["amount"], "count": r["count"]}
        for r in rows
    ]


def format_categories(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{"name": r["_id"] or "Uncategorized", "value": r["value"], "count": r["count"]} for r in rows]


def format_trends(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {"day": weekday_name(r["_id"]), "expenses": r["expenses"], "amount": round(r["amount"] or 0)}
        for r in rows
    ]


def format_monthly_stats(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "month": month_label(r["_id"]),
            "expenses": r.get("expenses") or 0,
            "amount": round(r.get("amount") or 0),
            "users": len([u for u in r.get("users") or [] if u is not None]),
        }
        for r in rows
    ]


def _period_query(start: datetime, end: datetime | None = None) -> Dict[str, Any]:
    """createdAt or date inside [start, end)."""
    cond: Dict[str, Any] = {"$gte": start}
    if end is not None:
        cond["$lt"] = end
    return {"$or": [{"createdAt": cond}, {"date": cond}]}


async def _sum_amount(db: AsyncIOMotorDatabase) -> float:
    rows = [r async for r in db[EXPENSES].aggregate([{"$group": {"_id": None, "total": {"$sum": "$amount"}}}])]
    return rows[0]["total"] if rows else 0


async def dashboard_stats(db: AsyncIOMotorDatabase, now: datetime | None = None) -> Dict[str, Any]:
    now = now or utcnow()
    this_month, _ = month_bounds(now.year, now.month)
    last_month, _ = month_bounds(*previous_month(now.year, now.month))

    current = await db[EXPENSES].count_documents(_period_query(this_month))
    previous = await db[EXPENSES].count_documents(_period_query(last_month, this_month))

    return {
        "totalUsers": await db[USERS].count_documents({}),
        "totalExpenses": await db[EXPENSES].count_documents({}),
        "totalAmount": await _sum_amount(db),
        "monthlyGrowth": growth_percent(current, previous),
        "totalAutoExpenses": await db[AUTO_EXPENSES].count_documents({}),
        "totalTransactions": await db[TRANSACTIONS].count_documents({}),
    }


async def monthly_expenses(db: AsyncIOMotorDatabase, limit: int = 12) -> List[Dict[str, Any]]:
    effective = {"$ifNull": ["$date", "$createdAt"]}
    pipeline = [
        {"$group": {
            "_id": {"year": {"$year": effective}, "month": {"$month": effective}},
            "amount": {"$sum": "$amount"},
            "count": {"$sum": 1},
        }},
        {"$sort": {"_id.year": 1, "_id.month": 1}},
        {"$limit": limit},
    ]
    return format_monthly([r async for r in db[EXPENSES].aggregate(pipeline)])


async def category_breakdown(db: AsyncIOMotorDatabase) -> List[Dict[str, Any]]:
    pipeline = [
        {"$group": {"_id": "$category", "value": {"$sum": "$amount"}, "count": {"$sum": 1}}},
        {"$sort": {"value": -1}},
    ]
    return format_categories([r async for r in db[EXPENSES].aggregate(pipeline)])


async def trends(db: AsyncIOMotorDatabase, days: int = 7, now: datetime | None = None) -> List[Dict[str, Any]]:
    since = (now or utcnow()) - timedelta(days=days)
    pipeline = [
        {"$match": {"createdAt": {"$gte": since}}},
        {"$group": {
            "_id": {"$dateToString": {"format": "%Y-%m-%d", "date": "$createdAt"}},
            "expenses": {"$sum": 1},
            "amount": {"$sum": "$amount"},
        }},
        {"$sort": {"_id": 1}},
    ]
    return format_trends([r async for r in db[EXPENSES].aggregate(pipeline)])


async def monthly_stats(db: AsyncIOMotorDatabase, months: int = 6, now: datetime | None = None) -> List[Dict[str, Any]]:
    """
    Expense count, amount and distinct users per month for the last `months`.
    Any failure yields [] so the dashboard still renders.
    """
    now = now or utcnow()
    year, month = now.year, now.month
    for _ in range(months):
        year, month = previous_month(year, month)
    since = datetime(year, month, min(now.day, 28))

    effective = {"$ifNull": ["$createdAt", "$date"]}
    pipeline = [
        {"$addFields": {"effectiveDate": effective}},
        {"$match": {"effectiveDate": {"$gte": since}}},
        {"$group": {
            "_id": {"$dateToString": {"format": "%Y-%m", "date": "$effectiveDate"}},
            "expenses": {"$sum": 1},
            "amount": {"$sum": {"$ifNull": ["$amount", 0]}},
            "users": {"$addToSet": "$userId"},
        }},
        {"$sort": {"_id": 1}},
    ]
    try:
        rows = [r async for r in db[EXPENSES].aggregate(pipeline)]
    except Exception:
        log.exception("Monthly stats aggregation failed")
        return []
    return format_monthly_stats(rows)


async def top_users(db: AsyncIOMotorDatabase, limit: int = 10) -> List[Dict[str, Any]]:
    pipeline = [
        {"$group": {"_id": "$userId", "totalSpent": {"$sum": "$amount"}, "expenseCount": {"$sum": 1}}},
        {"$sort": {"totalSpent": -1}},
        {"$limit": limit},
    ]
    rows = [r async for r in db[EXPENSES].aggregate(pipeline)]
    ids = [r["_id"] for r in rows if r["_id"] is not None]
    users = {}
    if ids:
        async for u in db[USERS].find({"_id": {"$in": ids}}, {"name": 1, "email": 1}):
            users[u["_id"]] = u
    return [
        {
            "_id": r["_id"],
            "name": users.get(r["_id"], {}).get("name") or "Unknown",
            "email": users.get(r["_id"], {}).get("email") or "Unknown",
            "totalSpent": round(r["totalSpent"] or 0),
            "expenseCount": r["expenseCount"],
        }
        for r in rows
    ]


async def updated_expenses(db: AsyncIOMotorDatabase, limit: int = 20) -> List[Dict[str, Any]]:
    rows = [e async for e in db[EXPENSES].find().sort("updatedAt", -1).limit(limit)]
    ids = list({e["userId"] for e in rows if e.get("userId") is not None})
    users = {}
    if ids:
        async for u in db[USERS].find({"_id": {"$in": ids}}, {"name": 1, "email": 1}):
            users[u["_id"]] = u
    out = []
    for e in rows:
        owner = users.get(e.get("userId"), {})
        out.append({
            "_id": e["_id"],
            "title": e.get("title"),
            "description": e.get("description") or e.get("title"),
            "amount": e.get("amount"),
            "category": e.get("category"),
            "userEmail": owner.get("email") or "Unknown",
            "userName": owner.get("name") or "Unknown",
            "updatedAt": e.get("updatedAt"),
            "createdAt": e.get("createdAt"),
        })
    return out
