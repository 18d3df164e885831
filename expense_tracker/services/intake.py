"""
The two intake forms (manage-expense and income-tax-help). Both are the same
shape: a person, an annual figure, one uploaded document and a review status.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from expense_tracker.errors import ApiError
from expense_tracker.mongo_collections import INCOME_TAX_HELP, MANAGE_EXPENSES, USERS
from expense_tracker.services import uploads
from expense_tracker.services.serializers import utcnow

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntakeForm:
    collection: str
    amount_field: str
    file_field: str
    statuses: tuple[str, ...]
    upload: uploads.UploadKind


MANAGE_EXPENSE = IntakeForm(
    MANAGE_EXPENSES, "annualExpense", "expenseProof", ("pending", "approved", "rejected"), uploads.EXPENSE_PROOF
)
INCOME_TAX = IntakeForm(
    INCOME_TAX_HELP, "annualIncome", "incomeStatement", ("pending", "in-progress", "completed"), uploads.INCOME_STATEMENT
)


def _err(status: int, message: str) -> ApiError:
    return ApiError(status, message, body={"error": message})


async def submit(
    db: AsyncIOMotorDatabase,
    form: IntakeForm,
    full_name: str,
    amount: float,
    file_path: str,
    user_id: ObjectId | None = None,
    extra: Dict[str, Any] | None = None,
) -> Dict[str, Any]:
    now = utcnow()
    doc = {
        "fullName": full_name.strip(),
        form.amount_field: float(amount),
        form.file_field: file_path,
        "userId": user_id,
        "status": "pending",
        "submittedAt": now,
        "createdAt": now,
        "updatedAt": now,
        **{k: v for k, v in (extra or {}).items() if v},
    }
    try:
        result = await db[form.collection].insert_one(doc)
    except Exception:
        uploads.remove_upload(file_path)
        raise
    doc["_id"] = result.inserted_id
    log.info("%s submission %s stored", form.collection, doc["_id"])
    return doc


async def list_submissions(db: AsyncIOMotorDatabase, form: IntakeForm) -> List[Dict[str, Any]]:
    rows = [r async for r in db[form.collection].find().sort("submittedAt", -1)]
    user_ids = list({r["userId"] for r in rows if isinstance(r.get("userId"), ObjectId)})
    users = {}
    if user_ids:
        async for u in db[USERS].find({"_id": {"$in": user_ids}}, {"name": 1, "email": 1}):
            users[u["_id"]] = u
    return [{**r, "userId": users.get(r.get("userId"), r.get("userId"))} for r in rows]


async def get_submission(db: AsyncIOMotorDatabase, form: IntakeForm, sub_id: ObjectId) -> Dict[str, Any]:
    doc = await db[form.collection].find_one({"_id": sub_id})
    if not doc:
        raise _err(404, "Submission not found")
    return doc


async def set_status(db: AsyncIOMotorDatabase, form: IntakeForm, sub_id: ObjectId, status: str) -> Dict[str, Any]:
    if status not in form.statuses:
        raise _err(400, "Invalid status")
    doc = await db[form.collection].find_one_and_update(
        {"_id": sub_id},
        {"$set": {"status": status, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise _err(404, "Submission not found")
    return doc


async def delete_submission(db: AsyncIOMotorDatabase, form: IntakeForm, sub_id: ObjectId) -> Dict[str, Any]:
    doc = await db[form.collection].find_one_and_delete({"_id": sub_id})
    if not doc:
        raise _err(404, "Submission not found")
    uploads.remove_upload(doc.get(form.file_field))
    return doc
