"""
app/api/auth.py

Purpose: Account endpoints

- Register (creator or caller), login, current user
- Forgot and reset password
"""

from datetime import datetime, timedelta
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.deps import get_current_user, get_user_service
from app.core.config import settings
from app.core.exceptions import AuthenticationError, ResourceNotFoundError, ValidationError
from app.core.logging import get_logger
from app.core.security import (
    create_access_token,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)
from app.flow.states import UserRole
from app.models.user import public_user
from app.services.user_service import UserService

logger = get_logger(__name__)
router = APIRouter()


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.CREATOR


class LoginRequest(BaseModel):
    email: str
    password: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=6)


def _token_response(user: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "success": True,
        "token": create_access_token(str(user["_id"]), user["role"]),
        "user": public_user(user),
    }


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, users: UserService = Depends(get_user_service)):
    if body.role == UserRole.ADMIN:
        raise ValidationError("Admin accounts cannot be self-registered")

    user = await users.create_user(
        name=body.name,
        email=body.email,
        password_hash=hash_password(body.password),
        role=body.role,
    )
    return _token_response(user)


@router.post("/login")
async def login(body: LoginRequest, users: UserService = Depends(get_user_service)):
    user = await users.get_user_by_email(body.email)
    if not user or not verify_password(body.password, user.get("password_hash")):
        logger.warning("Failed login attempt")
        raise AuthenticationError("Invalid credentials")
    return _token_response(user)


@router.get("/me")
async def me(user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "data": public_user(user)}


@router.post("/forgotpassword")
async def forgot_password(body: ForgotPasswordRequest, users: UserService = Depends(get_user_service)):
    """
    Issues a password reset token valid for PASSWORD_RESET_EXPIRE_MINUTES.

    No mailer is wired up; with EXPOSE_RESET_TOKEN the token is returned
    in the response instead.
    """
    user = await users.get_user_by_email(body.email)
    if not user:
        raise ResourceNotFoundError("No user found with that email")

    token, token_hash = generate_reset_token()
    expires_at = datetime.utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    await users.set_reset_token(user["_id"], token_hash, expires_at)

    response = {"success": True, "message": "Password reset email sent"}
    if settings.EXPOSE_RESET_TOKEN:
        response["reset_token"] = token
    return response


@router.put("/resetpassword/{token}")
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    users: UserService = Depends(get_user_service),
):
    user = await users.reset_password(hash_reset_token(token), hash_password(body.password))
    if not user:
        raise ValidationError("Invalid or expired token")
    return _token_response(user)
