"""
Task management endpoints.

CRUD operations for tasks, comments and attachments.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskspace.core.database import get_db
from taskspace.core.dependencies import get_broadcaster, get_current_user, get_file_storage
from taskspace.core.storage import LocalFileStorage
from taskspace.core.websocket import Broadcaster
from taskspace.models.user import User
from taskspace.schemas.common import ApiResponse, ok
from taskspace.schemas.task import (
    CommentCreateRequest,
    CommentResponse,
    TaskCreateRequest,
    TaskResponse,
    TaskUpdateRequest,
)
from taskspace.services.task_service import TaskService

router = APIRouter()


def get_task_service(
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    storage: LocalFileStorage = Depends(get_file_storage),
) -> TaskService:
    return TaskService(db=db, broadcaster=broadcaster, storage=storage)


# ---------------------------------------------------------------------------
# List Tasks
# ---------------------------------------------------------------------------

@router.get(
    "/workspace/{workspace_id}",
    response_model=ApiResponse[list[TaskResponse]],
    summary="List tasks in a workspace",
)
async def list_tasks(
    workspace_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> dict:
    return ok(await service.list_by_workspace(workspace_id, current_user))


# ---------------------------------------------------------------------------
# Create Task
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ApiResponse[TaskResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a new task",
)
async def create_task(
    data: TaskCreateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> dict:
    return ok(await service.create(data, current_user), "Task created successfully")


# ---------------------------------------------------------------------------
# Get / Update / Delete Task
# ---------------------------------------------------------------------------

@router.get("/{task_id}", response_model=ApiResponse[TaskResponse], summary="Get task detail")
async def get_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> dict:
    """Non-members get 403 without any task fields."""
    return ok(await service.get(task_id, current_user))


@router.patch("/{task_id}", response_model=ApiResponse[TaskResponse], summary="Update a task")
async def update_task(
    task_id: UUID,
    data: TaskUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> dict:
    return ok(await service.update(task_id, data, current_user), "Task updated successfully")


@router.delete("/{task_id}", response_model=ApiResponse[None], summary="Delete a task")
async def delete_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> dict:
    await service.delete(task_id, current_user)
    return ok(message="Task deleted successfully")


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

@router.post(
    "/{task_id}/comments",
    response_model=ApiResponse[CommentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment",
)
async def add_comment(
    task_id: UUID,
    data: CommentCreateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> dict:
    return ok(await service.add_comment(task_id, data.content, current_user), "Comment added successfully")


@router.delete(
    "/{task_id}/comments/{comment_id}",
    response_model=ApiResponse[None],
    summary="Delete your own comment",
)
async def delete_comment(
    task_id: UUID,
    comment_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> dict:
    await service.delete_comment(task_id, comment_id, current_user)
    return ok(message="Comment deleted successfully")


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------

@router.post(
    "/{task_id}/attachments",
    response_model=ApiResponse[TaskResponse],
    summary="Upload attachments (multipart field 'files')",
)
async def upload_attachments(
    task_id: UUID,
    files: list[UploadFile] | None = File(default=None),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> dict:
    task = await service.upload_attachments(task_id, files or [], current_user)
    return ok(task, "Files uploaded successfully")


@router.delete(
    "/{task_id}/attachments/{filename}",
    response_model=ApiResponse[TaskResponse],
    summary="Delete an attachment",
)
async def delete_attachment(
    task_id: UUID,
    filename: str,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> dict:
    task = await service.delete_attachment(task_id, filename, current_user)
    return ok(task, "Attachment deleted successfully")
