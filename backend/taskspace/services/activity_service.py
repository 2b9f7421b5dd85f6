"""
Activity log writes and reads.

Entries are append-only. Writing is best-effort: a failed write is rolled
back and logged, never raised to the caller.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskspace.core.exceptions import NotFound
from taskspace.models.activity_log import ActivityLog
from taskspace.models.task import Task
from taskspace.schemas.activity import ActivityResponse
from taskspace.services.access import authorize, load_workspace

logger = logging.getLogger(__name__)

ACTIVITY_LIST_LIMIT = 100


class ActivityService:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def record(
        self,
        *,
        workspace_id: UUID,
        task_id: UUID,
        actor_id: UUID,
        action: str,
        details: str | None = None,
    ) -> bool:
        """Append one entry in its own commit. Returns False if it could not be stored."""
        try:
            await self._write(
                ActivityLog(
                    workspace_id=workspace_id,
                    task_id=task_id,
                    actor_id=actor_id,
                    action=action,
                    details=details,
                )
            )
        except Exception:
            await self._db.rollback()
            logger.exception("Failed to record activity %r for task %s", action, task_id)
            return False
        return True

    async def _write(self, entry: ActivityLog) -> None:
        self._db.add(entry)
        await self._db.commit()

    # ------------------------------------------------------------------
    # GET /activity/task/{task_id}
    # ------------------------------------------------------------------

    async def list_for_task(self, task_id: UUID, actor_id: UUID) -> list[ActivityResponse]:
        """
        Newest entries first.

        Membership is checked against the task's workspace, falling back to
        the workspace recorded on the log when the task has been deleted.
        """
        workspace_id = await self._db.scalar(select(Task.workspace_id).where(Task.id == task_id))
        if workspace_id is None:
            workspace_id = await self._db.scalar(
                select(ActivityLog.workspace_id).where(ActivityLog.task_id == task_id).limit(1)
            )
        if workspace_id is None:
            raise NotFound("Task not found", code="TASK_NOT_FOUND")

        workspace = await load_workspace(self._db, workspace_id)
        authorize(workspace, actor_id)

        result = await self._db.execute(
            select(ActivityLog)
            .where(ActivityLog.task_id == task_id)
            .order_by(ActivityLog.created_at.desc())
            .limit(ACTIVITY_LIST_LIMIT)
        )
        return [ActivityResponse.model_validate(entry) for entry in result.scalars().all()]
