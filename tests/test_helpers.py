from datetime import datetime

import pytest
from bson import ObjectId

from expense_tracker.errors import ApiError
from expense_tracker.services import admin_views, dashboard, queries, uploads
from expense_tracker.services.serializers import parse_object_id, to_json, to_mongo_safe


def test_paginate_clamps():
    assert queries.paginate(None, None) == (1, 10, 0)
    assert queries.paginate(0, 0) == (1, 10, 0)
    assert queries.paginate(3, 500) == (3, 100, 200)
    assert queries.paginate(-2, -5) == (1, 1, 0)


def test_pagination_block():
    block = queries.pagination_block(2, 10, 25, "Users")
    assert block == {"currentPage": 2, "totalPages": 3, "totalUsers": 25, "hasNext": True, "hasPrev": True}


def test_search_filter_escapes_regex():
    assert queries.search_filter("  ", ("name",)) == {}
    query = queries.search_filter("a+b", ("name", "email"))
    assert query["$or"][0] == {"name": {"$regex": r"a\+b", "$options": "i"}}
    assert len(query["$or"]) == 2


def test_combine_ands_filters():
    search = queries.search_filter("x", ("title",))
    dates = queries.date_range_filter("date", "2024-01-01")
    assert queries.combine({}, {}) == {}
    assert queries.combine(search, {}) == search
    assert queries.combine(search, dates) == {"$and": [search, dates]}


def test_parse_date():
    assert queries.parse_date("") is None
    assert queries.parse_date("garbage") is None
    assert queries.parse_date("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10)
    assert queries.parse_date("2024-05-01", end_of_day=True) == datetime(2024, 5, 1, 23, 59, 59, 999000)


def test_period_range_weekly_starts_sunday():
    wednesday = datetime(2024, 5, 8, 15, 30)
    start, end = queries.period_range("weekly", now=wednesday)
    assert start == datetime(2024, 5, 5)
    assert end == datetime(2024, 5, 11, 23, 59, 59, 999000)

    sunday = datetime(2024, 5, 5, 9)
    assert queries.period_range("weekly", now=sunday)[0] == datetime(2024, 5, 5)


def test_period_range_other_kinds():
    now = datetime(2024, 12, 15)
    assert queries.period_range("monthly", now=now) == (datetime(2024, 12, 1), datetime(2024, 12, 31, 23, 59, 59, 999000))
    assert queries.period_range("yearly", now=now)[0] == datetime(2024, 1, 1)
    assert queries.period_range("custom", "2024-01-01", "2024-01-31", now=now)[1] == datetime(2024, 1, 31, 23, 59, 59, 999000)
    assert queries.period_range("lifetime", now=now) == (None, None)
    assert queries.period_range("bogus", now=now) == (None, None)


def test_month_bounds_wraps_year():
    assert queries.month_bounds(2024, 12) == (datetime(2024, 12, 1), datetime(2025, 1, 1))


def test_growth_and_labels():
    assert dashboard.growth_percent(5, 0) == 0
    assert dashboard.growth_percent(15, 10) == 50.0
    assert dashboard.growth_percent(1, 3) == -66.7
    assert dashboard.previous_month(2024, 1) == (2023, 12)
    assert dashboard.weekday_name("2024-05-05") == "Sun"
    assert dashboard.month_label("2024-05") == "May"
    assert dashboard.month_label("weird") == "weird"


def test_dashboard_formatters():
    assert dashboard.format_categories([{"_id": None, "value": 4, "count": 1}]) == [
        {"name": "Uncategorized", "value": 4, "count": 1}
    ]
    assert dashboard.format_monthly([{"_id": {"year": 2024, "month": 3}, "amount": 9, "count": 2}]) == [
        {"month": "2024-03", "amount": 9, "count": 2}
    ]
    rows = dashboard.format_monthly_stats([{"_id": "2024-05", "expenses": 3, "amount": 10.6, "users": ["a", None, "b"]}])
    assert rows == [{"month": "May", "expenses": 3, "amount": 11, "users": 2}]


def test_admin_mappers_fill_missing_columns():
    row = {"_id": ObjectId(), "title": "Lunch"}
    assert admin_views.map_expense(row, None)["status"] == "pending"
    assert admin_views.map_owned({**row, "username": "legacy"}, None)["userEmail"] == "legacy"

    profile = admin_views.map_profile({"_id": ObjectId(), "name": "Dana"}, {"email": "d@example.com"})
    assert profile["firstName"] == "Dana"
    assert profile["phone"] == "N/A"
    assert profile["userEmail"] == "d@example.com"

    expense_id = ObjectId()
    history = admin_views.map_history({"_id": ObjectId(), "expenseId": expense_id, "amount": 5}, None)
    assert history["transactionId"] == f"Expense ID: {expense_id}"
    assert history["userEmail"] == "Unknown"
    assert history["transactionDetails"] == "Transaction ($5)"


def test_to_json_and_mongo_safe():
    oid = ObjectId()
    out = to_json({"_id": oid, "at": datetime(2024, 5, 1, 10, 0, 0, 123456), "tags": [oid]})
    assert out == {"_id": str(oid), "at": "2024-05-01T10:00:00.123Z", "tags": [str(oid)]}
    assert to_mongo_safe({"d": datetime(2024, 5, 1).date()}) == {"d": datetime(2024, 5, 1)}


def test_parse_object_id():
    oid = ObjectId()
    assert parse_object_id(str(oid)) == oid
    with pytest.raises(ApiError) as err:
        parse_object_id("nope", "expense", key="error")
    assert err.value.status_code == 400
    assert err.value.body == {"success": False, "error": "Invalid expense ID format"}


def test_local_path_rejects_traversal():
    assert uploads.local_path(None) is None
    assert uploads.local_path("/etc/passwd") is None
    assert uploads.local_path("/uploads/../secret") is None
    assert uploads.local_path("/uploads/invoices/a.pdf").name == "a.pdf"
