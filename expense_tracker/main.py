# expense_tracker/main.py
from contextlib import asynccontextmanager
from pathlib import Path
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from expense_tracker.settings import settings
from expense_tracker.db import connect_to_mongo, close_mongo_connection
from expense_tracker.errors import install_error_handlers
from expense_tracker.scheduler import Scheduler
from expense_tracker.services.serializers import to_json, utcnow

# routers
from expense_tracker.routes import (
    admin, auth, auto_expenses, budgets, categories, expenses, intake, profiles,
    transaction_history, transactions, users,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("expense_tracker")

ROUTES = {
    "auth": "/api/auth",
    "users": "/api/users",
    "profiles": "/api/profiles",
    "expenses": "/api/expenses",
    "transactions": "/api/transactions",
    "transactionHistory": "/api/transaction-history",
    "autoExpenses": "/api/auto-expenses",
    "budgets": "/api/budgets",
    "categories": "/api/categories",
    "manageExpense": "/api/manage-expense",
    "incomeTaxHelp": "/api/income-tax-help",
    "admin": "/api/admin",
    "uploads": "/uploads",
}


# ---------------- lifespan ----------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.mongodb = await connect_to_mongo()
    app.state.scheduler = Scheduler(app.state.mongodb)
    app.state.scheduler.start()
    log.info("Expense tracker API started (%s) on port %s", settings.app_env, settings.port)

    try:
        yield
    finally:
        app.state.scheduler.shutdown()
        await close_mongo_connection()


app = FastAPI(
    title="Expense Tracker API",
    version=settings.api_version,
    lifespan=lifespan,
)

app.add_middleware(SessionMiddleware, secret_key=settings.session_secret,
                   max_age=settings.session_timeout // 1000, same_site="lax",
                   https_only=settings.app_env == "production")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    log.info("%s %s", request.method, request.url.path)
    return await call_next(request)


install_error_handlers(app)

for module in (auth, users, profiles, expenses, transactions, transaction_history,
               auto_expenses, budgets, categories, admin):
    app.include_router(module.router)
app.include_router(intake.manage_expense_router)
app.include_router(intake.income_tax_router)

upload_root = Path(settings.upload_dir)
upload_root.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=upload_root, check_dir=False), name="uploads")


# ---------------- health ----------------

@app.get("/api/health")
async def health(request: Request):
    try:
        await request.app.state.mongodb.command("ping")
        db_status = "connected"
    except Exception as e:
        log.warning("Mongo health ping failed: %r", e)
        db_status = "disconnected"
    return to_json({
        "status": "OK",
        "environment": settings.app_env,
        "database": db_status,
        "version": settings.api_version,
        "timestamp": utcnow(),
        "baseUrl": str(request.base_url).rstrip("/"),
        "routes": ROUTES,
    })
