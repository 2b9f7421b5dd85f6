"""
Post-commit side effects of a mutation.

Order: the primary change is committed first, then activity is recorded,
then notifications are stored, then events are broadcast. Every step after
the commit is isolated: its failure is logged and the next step still runs.
Callers hand over plain ids and already-serialized payloads because a
rollback inside a step expires every object loaded in the session.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskspace.core.exceptions import AppError, ExternalDependencyFailure
from taskspace.core.websocket import Broadcaster, NullBroadcaster, user_room, workspace_room
from taskspace.schemas.notification import NotificationCreate, NotificationResponse
from taskspace.services.activity_service import ActivityService
from taskspace.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


async def commit_primary(
    db: AsyncSession,
    what: str,
    *,
    conflict: AppError | None = None,
) -> None:
    """
    Commit the main mutation; store failures surface as ExternalDependencyFailure.

    When ``conflict`` is given, a unique-constraint violation raises it instead.
    """
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if conflict is None:
            logger.exception("Failed to commit %s", what)
            raise ExternalDependencyFailure(f"Could not save {what}") from exc
        logger.info("Conflict while saving %s: %s", what, conflict.code)
        raise conflict from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to commit %s", what)
        raise ExternalDependencyFailure(f"Could not save {what}") from exc


class SideEffects:
    def __init__(self, db: AsyncSession, broadcaster: Broadcaster | None = None) -> None:
        self.db = db
        self.broadcaster = broadcaster or NullBroadcaster()
        self.activity = ActivityService(db)
        self.notifications = NotificationService(db)

    async def record(
        self,
        *,
        workspace_id: UUID,
        task_id: UUID,
        actor_id: UUID,
        action: str,
        details: str | None = None,
    ) -> bool:
        return await self.activity.record(
            workspace_id=workspace_id,
            task_id=task_id,
            actor_id=actor_id,
            action=action,
            details=details,
        )

    async def notify(self, items: list[NotificationCreate]) -> list[NotificationResponse]:
        """Store notifications, then push each one to its recipient's user room."""
        if not items:
            return []
        try:
            created = await self.notifications.create_many(items)
        except Exception:
            await self.db.rollback()
            logger.exception("Failed to store %d notification(s)", len(items))
            return []

        for notification in created:
            await self.emit(
                user_room(notification.user_id),
                "notification",
                notification.model_dump(mode="json"),
            )
        return created

    async def emit(self, room: str, event: str, data: dict[str, Any]) -> None:
        try:
            await self.broadcaster.emit(room, event, data)
        except Exception:
            logger.exception("Broadcast of %s to %s failed", event, room)

    async def emit_to_workspace(
        self,
        workspace_id: UUID,
        event: str,
        actor_id: UUID,
        **data: Any,
    ) -> None:
        """Workspace events carry the acting user and workspace alongside the entity."""
        payload = {**data, "user_id": str(actor_id), "workspace_id": str(workspace_id)}
        await self.emit(workspace_room(workspace_id), event, payload)
