"""
Notification endpoints.

GET    /notifications               : list user notifications
PATCH  /notifications/{id}/read     : mark single notification as read
POST   /notifications/mark-all-read : mark all notifications as read
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskspace.core.database import get_db
from taskspace.core.dependencies import get_current_user
from taskspace.models.user import User
from taskspace.schemas.common import ApiResponse, ok
from taskspace.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from taskspace.services.notification_service import NotificationService

router = APIRouter()


def get_notification_service(
    db: AsyncSession = Depends(get_db),
) -> NotificationService:
    return NotificationService(db=db)


# ---------------------------------------------------------------------------
# GET /notifications
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=ApiResponse[NotificationListResponse],
    summary="List notifications for current user",
)
async def list_notifications(
    unread: bool = Query(default=False, description="Filter to unread only"),
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> dict:
    return ok(await service.list_notifications(user_id=current_user.id, unread_only=unread))


# ---------------------------------------------------------------------------
# PATCH /notifications/{id}/read
# ---------------------------------------------------------------------------

@router.patch(
    "/{notification_id}/read",
    response_model=ApiResponse[NotificationResponse],
    summary="Mark a notification as read",
)
async def mark_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> dict:
    return ok(await service.mark_read(notification_id=notification_id, user_id=current_user.id))


# ---------------------------------------------------------------------------
# POST /notifications/mark-all-read
# ---------------------------------------------------------------------------

@router.post(
    "/mark-all-read",
    response_model=ApiResponse[MarkAllReadResponse],
    summary="Mark all notifications as read",
)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> dict:
    return ok(await service.mark_all_read(user_id=current_user.id))
