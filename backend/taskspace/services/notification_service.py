"""
Business logic for notifications.
Handles creation and read-state management.
All queries scoped by user_id.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskspace.core.exceptions import NotFound
from taskspace.models.notification import Notification
from taskspace.schemas.notification import (
    MarkAllReadResponse,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
)

NOTIFICATION_LIST_LIMIT = 50


class NotificationService:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Create notification records in the DB
    # Called from the mutation pipeline only
    # ------------------------------------------------------------------

    async def create_many(self, items: list[NotificationCreate]) -> list[NotificationResponse]:
        """
        Insert notification rows in one commit.
        Does NOT push over WebSocket; the pipeline does that after this returns.
        """
        notifications = [
            Notification(
                user_id=item.user_id,
                workspace_id=item.workspace_id,
                task_id=item.task_id,
                type=item.type,
                message=item.message,
                is_read=False,
            )
            for item in items
        ]
        self._db.add_all(notifications)
        await self._db.commit()
        return [NotificationResponse.model_validate(n) for n in notifications]

    # ------------------------------------------------------------------
    # GET /notifications
    # ------------------------------------------------------------------

    async def list_notifications(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = NOTIFICATION_LIST_LIMIT,
    ) -> NotificationListResponse:
        """
        List notifications for the current user, newest first.
        Optionally filter to unread only.
        """
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))

        # Unread count (always, regardless of filter)
        unread_count = await self._db.scalar(
            select(func.count()).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        ) or 0

        result = await self._db.execute(
            stmt.order_by(Notification.created_at.desc()).limit(limit)
        )
        return NotificationListResponse(
            items=[NotificationResponse.model_validate(n) for n in result.scalars().all()],
            unread_count=unread_count,
        )

    # ------------------------------------------------------------------
    # PATCH /notifications/{id}/read
    # ------------------------------------------------------------------

    async def mark_read(
        self,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> NotificationResponse:
        """
        Mark a single notification as read.
        Scoped to user_id to prevent cross-user updates.
        """
        notification = await self._db.scalar(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        if not notification:
            raise NotFound("Notification not found", code="NOTIFICATION_NOT_FOUND")

        notification.is_read = True
        await self._db.flush()
        return NotificationResponse.model_validate(notification)

    # ------------------------------------------------------------------
    # POST /notifications/mark-all-read
    # ------------------------------------------------------------------

    async def mark_all_read(self, user_id: uuid.UUID) -> MarkAllReadResponse:
        """Mark all unread notifications as read. Returns count of updated rows."""
        result = await self._db.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True)
        )
        return MarkAllReadResponse(updated=result.rowcount)
