"""
FastAPI dependency injection functions.

Provides the current user, the broadcaster, file storage and the service
factories used by the routers.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskspace.core.database import get_db
from taskspace.core.exceptions import Unauthenticated
from taskspace.core.security import decode_access_token
from taskspace.core.storage import LocalFileStorage
from taskspace.core.websocket import Broadcaster, NullBroadcaster
from taskspace.models.user import User

# ---------------------------------------------------------------------------
# HTTP Bearer scheme (auto_error=False so we can return custom 401)
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

async def resolve_user(token: str, db: AsyncSession) -> User:
    """
    Turn a bearer token into an active User.

    Shared by the HTTP dependency and the WebSocket endpoint.
    """
    try:
        payload = decode_access_token(token)
        user_id = UUID(payload["sub"])
    except (JWTError, ValueError):
        raise Unauthenticated("Token is invalid or expired", code="INVALID_TOKEN")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise Unauthenticated("User not found or inactive", code="USER_NOT_FOUND")

    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Validate Bearer JWT and return the authenticated User.

    Raises 401 if:
    - No token provided
    - Token is invalid or expired
    - User does not exist or is inactive
    """
    if credentials is None:
        raise Unauthenticated("Authorization header required", code="MISSING_TOKEN")
    return await resolve_user(credentials.credentials, db)


# ---------------------------------------------------------------------------
# Real-time and storage capabilities
# ---------------------------------------------------------------------------

def get_broadcaster(request: Request) -> Broadcaster:
    """The application's connection manager, or a no-op when none is attached."""
    return getattr(request.app.state, "connections", None) or NullBroadcaster()


def get_file_storage() -> LocalFileStorage:
    return LocalFileStorage()
