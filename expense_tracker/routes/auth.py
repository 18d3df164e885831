# expense_tracker/routes/auth.py
import logging

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials
from jwt import InvalidTokenError
from motor.motor_asyncio import AsyncIOMotorDatabase

from expense_tracker.db import get_db
from expense_tracker.errors import ApiError
from expense_tracker.schemas import ForgotPasswordReq, LoginReq, ResetPasswordReq, SignupReq
from expense_tracker.security import (
    bearer_scheme, create_user_token, decode_user_token, get_current_user, revoke_token, token_expiry,
)
from expense_tracker.services import mailer, users
from expense_tracker.services.serializers import to_json
from expense_tracker.settings import settings

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _auth_payload(user, message: str):
    return to_json({
        "success": True,
        "message": message,
        "data": {"user": users.public_user(user), "token": create_user_token(user["_id"])},
    })


@router.post("/signup", status_code=201)
async def signup(body: SignupReq, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await users.create_user(
        db, body.name, body.email, body.password,
        phone=body.phone, gender=body.gender, currency=body.currency,
    )
    return _auth_payload(user, "User registered successfully")


@router.post("/login")
async def login(body: LoginReq, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await users.authenticate(db, body.email, body.password)
    return _auth_payload(user, "Login successful")


@router.post("/logout")
async def logout(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if credentials is None:
        raise ApiError(400, "No token provided")
    token = credentials.credentials
    try:
        payload = decode_user_token(token)
    except InvalidTokenError:
        raise ApiError(401, "Invalid token")
    await revoke_token(db, token, token_expiry(payload))
    return {"success": True, "message": "Logged out successfully"}


@router.post("/forgot-password")
async def forgot_password(body: ForgotPasswordReq, db: AsyncIOMotorDatabase = Depends(get_db)):
    user, token = await users.start_password_reset(db, body.email)
    reset_url = f"{settings.frontend_url.rstrip('/')}/reset-password/{token}"
    try:
        await mailer.send_password_reset(user["email"], reset_url)
    except Exception as e:
        log.error("Password reset mail to %s failed: %s", user["email"], e)
        await users.clear_password_reset(db, user["_id"])
        raise ApiError(500, "Email could not be sent")
    return {"success": True, "message": "Password reset email sent"}


@router.put("/reset-password/{token}")
async def reset_password(token: str, body: ResetPasswordReq, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await users.complete_password_reset(db, token, body.password)
    return _auth_payload(user, "Password reset successful")


@router.get("/me")
async def me(user=Depends(get_current_user)):
    return to_json({"success": True, "data": users.public_user(user)})


@router.get("/user-data")
async def user_data(user=Depends(get_current_user)):
    return to_json({
        "success": True,
        "data": {
            "name": user.get("name"),
            "email": user.get("email"),
            "phone": user.get("phone"),
            "gender": user.get("gender"),
            "currency": user.get("currency"),
        },
    })
