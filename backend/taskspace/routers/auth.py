"""
Authentication endpoints.

Signup, login, password reset, me.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskspace.core.database import get_db
from taskspace.core.dependencies import get_current_user
from taskspace.models.user import User
from taskspace.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    TokenResponse,
    UserResponse,
)
from taskspace.schemas.common import ApiResponse, ok
from taskspace.services.auth_service import AuthService

router = APIRouter()


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    """Dependency that constructs AuthService."""
    return AuthService(db=db)


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------

@router.post(
    "/signup",
    response_model=ApiResponse[TokenResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a new account",
)
async def signup(
    data: SignupRequest,
    service: AuthService = Depends(get_auth_service),
) -> dict:
    """
    Create a new user account.

    - Email must be globally unique
    - Password must be min 8 chars and contain at least 1 number
    - Returns a JWT access token on success
    """
    return ok(await service.signup(data), "Account created successfully")


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

@router.post(
    "/login",
    response_model=ApiResponse[TokenResponse],
    summary="Log in with email and password",
)
async def login(
    data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> dict:
    return ok(await service.login(data), "Logged in successfully")


# ---------------------------------------------------------------------------
# Me
# ---------------------------------------------------------------------------

@router.get("/me", response_model=ApiResponse[UserResponse], summary="Current user")
async def me(
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> dict:
    return ok(await service.get_me(current_user))


# ---------------------------------------------------------------------------
# Password Reset
# ---------------------------------------------------------------------------

@router.post(
    "/forgot-password",
    response_model=ApiResponse[None],
    summary="Request a password reset email",
)
async def forgot_password(
    data: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> dict:
    """Always succeeds, whether or not the email is registered."""
    await service.forgot_password(data.email)
    return ok(message="If that email is registered, a reset link has been sent")


@router.post(
    "/reset-password",
    response_model=ApiResponse[None],
    summary="Set a new password with a reset token",
)
async def reset_password(
    data: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> dict:
    await service.reset_password(data.token, data.new_password)
    return ok(message="Password has been reset")
