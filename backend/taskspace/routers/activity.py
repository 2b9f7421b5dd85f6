"""
Activity log endpoint.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskspace.core.database import get_db
from taskspace.core.dependencies import get_current_user
from taskspace.models.user import User
from taskspace.schemas.activity import ActivityResponse
from taskspace.schemas.common import ApiResponse, ok
from taskspace.services.activity_service import ActivityService

router = APIRouter()


def get_activity_service(db: AsyncSession = Depends(get_db)) -> ActivityService:
    return ActivityService(db=db)


@router.get(
    "/task/{task_id}",
    response_model=ApiResponse[list[ActivityResponse]],
    summary="Activity for a task, newest first",
)
async def task_activity(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
) -> dict:
    """Still readable after the task is deleted."""
    return ok(await service.list_for_task(task_id, current_user.id))
