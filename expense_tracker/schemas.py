# expense_tracker/schemas.py
import re
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from expense_tracker.services.serializers import utcnow

CURRENCIES = (
    "INR", "USD", "EUR", "GBP", "JPY", "AUD", "CAD", "CNY", "CHF", "NZD", "ZAR",
    "SGD", "HKD", "SEK", "NOK", "MXN", "BRL", "RUB", "KRW", "TRY", "IDR", "SAR",
    "AED", "PLN", "THB", "VND", "PHP", "HUF", "CZK", "DKK", "MYR", "ILS",
)

NAME_RE = re.compile(r"^[a-zA-Z\s]+$")
PHONE_10_RE = re.compile(r"^[0-9]{10}$")
PROFILE_EMAIL_RE = re.compile(r"^\w+([\.-]?\w+)*@\w+([\.-]?\w+)*(\.\w{2,3})+$")
PROFILE_PHONE_RE = re.compile(r"^[+]?[\d\s\-()]{10,15}$")
STRONG_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")

Gender = Literal["male", "female", "other"]
TxType = Literal["income", "expense"]
PaymentMethod = Literal["cash", "card", "bank_transfer", "digital_wallet", "upi"]
AutoStatus = Literal["Detected", "Saved", "Dismissed"]
AutoSource = Literal["SMS", "Email", "Bank_Statement", "Receipt_Scan"]


def check_strong_password(value: str) -> str:
    if len(value) < 6:
        raise ValueError("Password must be at least 6 characters long")
    if not STRONG_PASSWORD_RE.match(value):
        raise ValueError(
            "Password must contain at least one lowercase letter, one uppercase letter, and one number"
        )
    return value


# ---------------- auth ----------------

class SignupReq(BaseModel):
    name: str
    email: EmailStr
    password: str
    phone: Optional[str] = None
    gender: Optional[str] = None
    currency: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Full name is required")
        if not 2 <= len(v) <= 50:
            raise ValueError("Name must be between 2 and 50 characters")
        if not NAME_RE.match(v):
            raise ValueError("Name can only contain letters and spaces")
        return v

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_strong_password(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: Optional[str]) -> Optional[str]:
        if v and not PHONE_10_RE.match(v):
            raise ValueError("Phone number must be exactly 10 digits")
        return v or None

    @field_validator("gender")
    @classmethod
    def _gender(cls, v: Optional[str]) -> Optional[str]:
        if v and v not in ("male", "female", "other"):
            raise ValueError("Gender must be male, female, or other")
        return v or None

    @field_validator("currency")
    @classmethod
    def _currency(cls, v: Optional[str]) -> Optional[str]:
        if v and v not in CURRENCIES:
            raise ValueError("Please select a valid currency")
        return v or None


class LoginReq(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return v.lower()


class ForgotPasswordReq(BaseModel):
    email: EmailStr


class ResetPasswordReq(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_strong_password(v)


class ChangePasswordReq(BaseModel):
    currentPassword: str
    newPassword: str = Field(min_length=6)


# ---------------- users ----------------

class UserUpdateReq(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3)
    # older clients send the display name as `username`
    username: Optional[str] = Field(default=None, min_length=3)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    currency: Optional[str] = None
    role: Optional[Literal["user", "admin"]] = None
    isActive: Optional[bool] = None


class AdminUserCreateReq(BaseModel):
    name: str = Field(min_length=3)
    email: EmailStr
    password: str = Field(min_length=6)
    role: Literal["user", "admin"] = "user"
    phone: Optional[str] = None


# ---------------- profiles ----------------

class ProfileCreateReq(BaseModel):
    name: str = Field(min_length=2)
    email: str
    phone: str
    profilePic: Optional[str] = None
    referredBy: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        v = v.strip().lower()
        if not PROFILE_EMAIL_RE.match(v):
            raise ValueError("Please enter a valid email")
        return v

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        if not PROFILE_PHONE_RE.match(v):
            raise ValueError("Please enter a valid phone number")
        return v


class ProfileUpdateReq(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2)
    email: Optional[str] = None
    phone: Optional[str] = None
    profilePic: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if not PROFILE_EMAIL_RE.match(v):
            raise ValueError("Please enter a valid email")
        return v

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not PROFILE_PHONE_RE.match(v):
            raise ValueError("Please enter a valid phone number")
        return v


# ---------------- expenses ----------------

class ExpenseReq(BaseModel):
    title: str = Field(min_length=1)
    amount: float = Field(gt=0)
    date: datetime
    category: Optional[str] = None


class ExpenseUpdateReq(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[float] = Field(default=None, ge=0)
    date: Optional[datetime] = None
    category: Optional[str] = None


# ---------------- transaction history ----------------

class HistoryCreateReq(BaseModel):
    userId: str
    title: str = Field(min_length=1)
    amount: float = Field(gt=0)
    type: TxType
    category: str = Field(min_length=1)
    date: Optional[datetime] = None
    icon: Optional[str] = None
    note: Optional[str] = None
    paymentMethod: Optional[PaymentMethod] = None
    status: Optional[str] = None


class HistoryUpdateReq(BaseModel):
    title: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    type: Optional[TxType] = None
    category: Optional[str] = None
    icon: Optional[str] = None
    note: Optional[str] = None
    date: Optional[datetime] = None
    paymentMethod: Optional[PaymentMethod] = None
    status: Optional[str] = None


# ---------------- auto expenses ----------------

class AutoExpenseReq(BaseModel):
    detectedAmount: float
    detectedTitle: str = Field(min_length=1, max_length=200)
    originalDate: datetime
    source: AutoSource
    category: str = "Uncategorized"
    confidence: int = Field(default=80, ge=0, le=100)
    detectedDate: Optional[datetime] = None

    @field_validator("detectedAmount")
    @classmethod
    def _amount(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Detected amount must be greater than 0")
        return round(v, 2)

    @field_validator("originalDate")
    @classmethod
    def _not_future(cls, v: datetime) -> datetime:
        naive = v if v.tzinfo is None else (v - v.utcoffset()).replace(tzinfo=None)
        if naive > utcnow():
            raise ValueError("Original date cannot be in the future")
        return naive


class AutoExpenseStatusReq(BaseModel):
    status: AutoStatus


class AutoExpenseSaveReq(BaseModel):
    expenseId: Optional[str] = None


class AdminAutoExpenseUpdateReq(BaseModel):
    detectedAmount: Optional[float] = Field(default=None, gt=0)
    detectedTitle: Optional[str] = Field(default=None, max_length=200)
    status: Optional[AutoStatus] = None
    category: Optional[str] = None
    source: Optional[AutoSource] = None
    confidence: Optional[int] = Field(default=None, ge=0, le=100)


# ---------------- budgets ----------------

class BudgetCategoryReq(BaseModel):
    name: str = Field(min_length=1)
    amount: float = Field(ge=0)
    spent: float = Field(default=0, ge=0)
    icon: str = "wallet"
    color: str = "#4CAF50"


class BudgetReq(BaseModel):
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1970)
    totalBudget: float = Field(ge=0)
    categories: Optional[List[BudgetCategoryReq]] = None
    currency: Optional[str] = None
    notes: Optional[str] = None


class BudgetSpentReq(BaseModel):
    spent: float = Field(ge=0)


class AdminBudgetUpdateReq(BaseModel):
    totalBudget: Optional[float] = Field(default=None, ge=0)
    categories: Optional[List[BudgetCategoryReq]] = None
    currency: Optional[str] = None
    notes: Optional[str] = None


# ---------------- categories ----------------

class CategoryReq(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    type: TxType = "expense"


class CategoryUpdateReq(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    type: Optional[TxType] = None


# ---------------- intake forms ----------------

class ManageExpenseStatusReq(BaseModel):
    status: Literal["pending", "approved", "rejected"]


class IncomeTaxStatusReq(BaseModel):
    status: Literal["pending", "in-progress", "completed"]


# ---------------- admin ----------------

class AdminLoginReq(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AdminTransactionUpdateReq(BaseModel):
    type: Optional[TxType] = None
    category: Optional[str] = None
    item: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    date: Optional[datetime] = None
    paymentMethod: Optional[str] = None
    status: Optional[Literal["pending", "completed", "cancelled"]] = None
