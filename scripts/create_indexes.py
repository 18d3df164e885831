# scripts/create_indexes.py
"""
Create/ensure MongoDB indexes for the expense tracker API.

Run from project root:
  - python scripts/create_indexes.py
  - OR: python -m scripts.create_indexes
"""

import asyncio
import os
import sys

# --- Make sure 'expense_tracker' is importable when running this file directly ---
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from motor.motor_asyncio import AsyncIOMotorClient  # type: ignore

from expense_tracker.settings import settings
from expense_tracker.mongo_collections import (
    USERS,
    PROFILES,
    EXPENSES,
    TRANSACTIONS,
    TRANSACTION_HISTORY,
    AUTO_EXPENSES,
    BUDGETS,
    CATEGORIES,
    MANAGE_EXPENSES,
    INCOME_TAX_HELP,
    SESSIONS,
    REVOKED_TOKENS,
)

SESSION_TTL_SECONDS = 30 * 24 * 60 * 60


async def ensure_indexes() -> None:
    client = AsyncIOMotorClient(settings.mongodb_uri)
    db = client[settings.mongodb_db]

    # USERS (email and display name are unique; phone only when present)
    await db[USERS].create_index("email", unique=True)
    await db[USERS].create_index("name", unique=True)
    await db[USERS].create_index("phone", unique=True, partialFilterExpression={"phone": {"$type": "string"}})
    await db[USERS].create_index("resetPasswordToken", sparse=True)

    # PROFILES
    await db[PROFILES].create_index("email", unique=True)
    await db[PROFILES].create_index("referralCode", unique=True, sparse=True)
    await db[PROFILES].create_index([("userId", 1)])

    # EXPENSES
    await db[EXPENSES].create_index([("userId", 1), ("date", -1)])
    await db[EXPENSES].create_index([("updatedAt", -1)])

    # TRANSACTIONS
    await db[TRANSACTIONS].create_index([("userId", 1), ("date", -1)])
    await db[TRANSACTIONS].create_index([("userId", 1), ("type", 1), ("category", 1)])

    # TRANSACTION_HISTORY (mirror rows are found by transactionId)
    await db[TRANSACTION_HISTORY].create_index([("userId", 1), ("date", -1)])
    await db[TRANSACTION_HISTORY].create_index([("transactionId", 1)])

    # AUTO_EXPENSES
    await db[AUTO_EXPENSES].create_index([("userId", 1), ("detectedDate", -1)])
    await db[AUTO_EXPENSES].create_index([("userId", 1), ("status", 1)])

    # BUDGETS (one per user + month)
    await db[BUDGETS].create_index([("userId", 1), ("month", 1), ("year", 1)], unique=True)

    # CATEGORIES
    await db[CATEGORIES].create_index("name", unique=True)

    # Intake forms
    await db[MANAGE_EXPENSES].create_index([("submittedAt", -1)])
    await db[INCOME_TAX_HELP].create_index([("submittedAt", -1)])

    # SESSIONS (TTL removes sessions 30 days after creation)
    await db[SESSIONS].create_index("sessionId", unique=True)
    await db[SESSIONS].create_index([("userId", 1), ("isActive", 1)])
    await db[SESSIONS].create_index([("lastActivity", 1)])
    await db[SESSIONS].create_index("createdAt", expireAfterSeconds=SESSION_TTL_SECONDS)

    # REVOKED_TOKENS (gone once the token would have expired anyway)
    await db[REVOKED_TOKENS].create_index("token", unique=True)
    await db[REVOKED_TOKENS].create_index("expiresAt", expireAfterSeconds=0)

    client.close()


def main() -> None:
    try:
        asyncio.run(ensure_indexes())
        print("✅ Indexes ensured.")
    except Exception as e:
        print(f"❌ Failed to create indexes: {e}")
        raise


if __name__ == "__main__":
    main()
