# expense_tracker/mongo_collections.py

USERS = "users"
PROFILES = "profiles"
EXPENSES = "expenses"
TRANSACTIONS = "transactions"
TRANSACTION_HISTORY = "transaction_history"
AUTO_EXPENSES = "auto_expenses"
BUDGETS = "budgets"
CATEGORIES = "categories"
MANAGE_EXPENSES = "manage_expenses"
INCOME_TAX_HELP = "income_tax_help"
SESSIONS = "sessions"
REVOKED_TOKENS = "revoked_tokens"

# Notes:
# - Every per-user doc stores userId as an ObjectId.
# - transaction_history rows carry transactionId when written from a transaction.
# - sessions expire 30 days after createdAt (TTL index); revoked_tokens at expiresAt.
