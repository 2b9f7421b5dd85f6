"""
Authentication business logic.

Handles signup, login, password reset.
All business logic lives here; routers only handle HTTP concerns.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskspace.core.config import settings
from taskspace.core.exceptions import Conflict, Forbidden, Unauthenticated, ValidationFailed
from taskspace.core.security import (
    create_access_token,
    create_password_reset_token,
    hash_password,
    verify_password,
)
from taskspace.models.user import User
from taskspace.schemas.auth import (
    LoginRequest,
    SignupRequest,
    TokenResponse,
    UserResponse,
)
from taskspace.services.pipeline import commit_primary

logger = logging.getLogger(__name__)


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class AuthService:
    """Handles all authentication operations."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # -----------------------------------------------------------------------
    # Signup
    # -----------------------------------------------------------------------

    async def signup(self, data: SignupRequest) -> TokenResponse:
        """
        Register a new user.

        - Validates email uniqueness
        - Hashes password
        - Creates user record
        - Issues a JWT access token
        """
        existing = await self.db.execute(select(User).where(User.email == data.email))
        if existing.scalar_one_or_none() is not None:
            raise Conflict("Email is already registered", code="EMAIL_TAKEN")

        user = User(
            email=data.email,
            password_hash=hash_password(data.password),
            display_name=data.display_name.strip(),
            is_active=True,
        )
        self.db.add(user)
        await commit_primary(
            self.db,
            "user",
            conflict=Conflict("Email is already registered", code="EMAIL_TAKEN"),
        )
        logger.info("User signed up: user_id=%s", user.id)

        return self._issue_token(user)

    # -----------------------------------------------------------------------
    # Login
    # -----------------------------------------------------------------------

    async def login(self, data: LoginRequest) -> TokenResponse:
        """
        Authenticate user with email + password.

        Raises 401 for invalid credentials (never reveals which field is wrong).
        """
        result = await self.db.execute(select(User).where(User.email == data.email))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(data.password, user.password_hash):
            raise Unauthenticated("Invalid email or password", code="INVALID_CREDENTIALS")

        if not user.is_active:
            raise Forbidden("Account is disabled", code="ACCOUNT_DISABLED")

        return self._issue_token(user)

    # -----------------------------------------------------------------------
    # Forgot Password
    # -----------------------------------------------------------------------

    async def forgot_password(self, email: str) -> None:
        """
        Initiate password reset flow.

        Always returns successfully to prevent user enumeration.
        Queues email via Celery if user exists.
        """
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()

        if user is None:
            # Silent success, no user enumeration
            return

        token = create_password_reset_token()
        user.reset_token = token
        user.reset_token_expires_at = datetime.now(UTC) + timedelta(
            minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES
        )
        await commit_primary(self.db, "password reset token")

        # Queue email task
        from taskspace.workers.email_tasks import send_password_reset_email

        try:
            send_password_reset_email.delay(
                to_email=user.email,
                reset_token=token,
                frontend_url=settings.FRONTEND_URL,
            )
        except Exception:
            logger.exception("Failed to queue password reset email for user_id=%s", user.id)

    # -----------------------------------------------------------------------
    # Reset Password
    # -----------------------------------------------------------------------

    async def reset_password(self, token: str, new_password: str) -> None:
        """
        Complete password reset.

        The token is single-use: it is cleared together with the password change.
        """
        result = await self.db.execute(select(User).where(User.reset_token == token))
        user = result.scalar_one_or_none()

        if (
            user is None
            or user.reset_token_expires_at is None
            or _as_aware(user.reset_token_expires_at) < datetime.now(UTC)
        ):
            raise ValidationFailed("Reset token is invalid or expired", code="INVALID_TOKEN")

        user.password_hash = hash_password(new_password)
        user.reset_token = None
        user.reset_token_expires_at = None
        await commit_primary(self.db, "password")
        logger.info("Password reset for user_id=%s", user.id)

    # -----------------------------------------------------------------------
    # Get current user (me)
    # -----------------------------------------------------------------------

    async def get_me(self, user: User) -> UserResponse:
        """Return current user profile."""
        return UserResponse.model_validate(user)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _issue_token(self, user: User) -> TokenResponse:
        return TokenResponse(
            access_token=create_access_token(str(user.id)),
            expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserResponse.model_validate(user),
        )
