# expense_tracker/routes/intake.py
"""
/api/manage-expense and /api/income-tax-help: a public multipart submit plus
the admin review endpoints. Both forms share the handlers below.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase

from expense_tracker.db import get_db
from expense_tracker.errors import ApiError
from expense_tracker.schemas import IncomeTaxStatusReq, ManageExpenseStatusReq
from expense_tracker.security import get_optional_user, require_admin
from expense_tracker.services import intake, uploads
from expense_tracker.services.serializers import parse_object_id, to_json

manage_expense_router = APIRouter(prefix="/api/manage-expense", tags=["manage-expense"])
income_tax_router = APIRouter(prefix="/api/income-tax-help", tags=["income-tax-help"])


def _missing(field: str) -> ApiError:
    message = f"{field} is required"
    return ApiError(400, message, body={"error": message})


async def _submit(db, form: intake.IntakeForm, full_name: str, amount: float,
                  file: Optional[UploadFile], user, extra=None):
    if file is None or not file.filename:
        raise _missing(form.file_field)
    path = await uploads.save_upload(form.upload, file)
    return await intake.submit(
        db, form, full_name, amount, path, user_id=user["_id"] if user else None, extra=extra
    )


# ---------------- manage-expense ----------------

@manage_expense_router.post("", status_code=201)
async def submit_manage_expense(
    fullName: str = Form(..., min_length=1),
    annualExpense: float = Form(..., ge=0),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    expenseProof: Optional[UploadFile] = File(None),
    user=Depends(get_optional_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    doc = await _submit(
        db, intake.MANAGE_EXPENSE, fullName, annualExpense, expenseProof, user,
        extra={"email": email, "phone": phone},
    )
    return to_json({"success": True, "message": "Expense details submitted successfully", "data": doc})


@manage_expense_router.get("")
async def list_manage_expense(_admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    rows = await intake.list_submissions(db, intake.MANAGE_EXPENSE)
    return to_json({"success": True, "count": len(rows), "data": rows})


@manage_expense_router.get("/{sub_id}")
async def get_manage_expense(sub_id: str, _admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    doc = await intake.get_submission(db, intake.MANAGE_EXPENSE, parse_object_id(sub_id, "submission", key="error"))
    return to_json({"success": True, "data": doc})


@manage_expense_router.patch("/{sub_id}/status")
async def manage_expense_status(
    sub_id: str, body: ManageExpenseStatusReq, _admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)
):
    doc = await intake.set_status(
        db, intake.MANAGE_EXPENSE, parse_object_id(sub_id, "submission", key="error"), body.status
    )
    return to_json({"success": True, "message": "Status updated successfully", "data": doc})


@manage_expense_router.delete("/{sub_id}")
async def delete_manage_expense(sub_id: str, _admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await intake.delete_submission(db, intake.MANAGE_EXPENSE, parse_object_id(sub_id, "submission", key="error"))
    return {"success": True, "message": "Submission deleted successfully"}


# ---------------- income-tax-help ----------------

@income_tax_router.post("/submit", status_code=201)
async def submit_income_tax(
    fullName: str = Form(..., min_length=1),
    annualIncome: float = Form(..., ge=0),
    incomeStatement: Optional[UploadFile] = File(None),
    user=Depends(get_optional_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    doc = await _submit(db, intake.INCOME_TAX, fullName, annualIncome, incomeStatement, user)
    return to_json({"success": True, "message": "Income tax help request submitted successfully", "data": doc})


@income_tax_router.get("/all")
async def list_income_tax(_admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    rows = await intake.list_submissions(db, intake.INCOME_TAX)
    return to_json({"success": True, "count": len(rows), "data": rows})


@income_tax_router.get("/{sub_id}")
async def get_income_tax(sub_id: str, _admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    doc = await intake.get_submission(db, intake.INCOME_TAX, parse_object_id(sub_id, "submission", key="error"))
    return to_json({"success": True, "data": doc})


@income_tax_router.patch("/{sub_id}/status")
async def income_tax_status(
    sub_id: str, body: IncomeTaxStatusReq, _admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)
):
    doc = await intake.set_status(
        db, intake.INCOME_TAX, parse_object_id(sub_id, "submission", key="error"), body.status
    )
    return to_json({"success": True, "message": "Status updated successfully", "data": doc})


@income_tax_router.delete("/{sub_id}")
async def delete_income_tax(sub_id: str, _admin=Depends(require_admin), db: AsyncIOMotorDatabase = Depends(get_db)):
    await intake.delete_submission(db, intake.INCOME_TAX, parse_object_id(sub_id, "submission", key="error"))
    return {"success": True, "message": "Submission deleted successfully"}
