"""
Task schemas.

Request/response models for task CRUD, comments and attachments.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from taskspace.models.task import TaskPriority, TaskStatus


def _strip_title(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Title cannot be blank")
    return v


# ---------------------------------------------------------------------------
# Embedded values
# ---------------------------------------------------------------------------

class SubtaskItem(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    completed: bool = False


class TagItem(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    color: str = Field(min_length=1, max_length=32)


# ---------------------------------------------------------------------------
# Task Create
# ---------------------------------------------------------------------------

class TaskCreateRequest(BaseModel):
    """Request body for POST /tasks."""

    workspace_id: UUID
    title: str = Field(min_length=1, max_length=500)
    description: str | None = None
    assignees: list[UUID] = Field(default_factory=list)
    due_date: date | None = None
    priority: TaskPriority = TaskPriority.medium
    status: TaskStatus = TaskStatus.todo
    subtasks: list[SubtaskItem] = Field(default_factory=list)
    tags: list[TagItem] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return _strip_title(v)


# ---------------------------------------------------------------------------
# Task Update
# ---------------------------------------------------------------------------

class TaskUpdateRequest(BaseModel):
    """
    Request body for PATCH /tasks/{task_id}.

    Shallow merge: only fields present in the body are applied. ``null``
    clears description and due_date and is ignored for the other fields.
    """

    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    assignees: list[UUID] | None = None
    due_date: date | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    subtasks: list[SubtaskItem] | None = None
    tags: list[TagItem] | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str | None) -> str | None:
        return _strip_title(v)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

class CommentCreateRequest(BaseModel):
    """Request body for POST /tasks/{task_id}/comments."""

    content: str = Field(max_length=5000)


# ---------------------------------------------------------------------------
# Nested response objects
# ---------------------------------------------------------------------------

class UserSummaryResponse(BaseModel):
    """Compact user info embedded in task responses."""

    id: UUID
    display_name: str
    avatar_url: str | None
    email: str

    model_config = {"from_attributes": True}


class CommentResponse(BaseModel):
    id: UUID
    task_id: UUID
    content: str
    author: UserSummaryResponse
    created_at: datetime

    model_config = {"from_attributes": True}


class AttachmentResponse(BaseModel):
    id: UUID
    filename: str
    original_name: str
    mime_type: str
    size: int
    path: str
    uploaded_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------

class TaskResponse(BaseModel):
    """Full task document with comments and attachments."""

    id: UUID
    workspace_id: UUID
    title: str
    description: str | None
    assignees: list[UserSummaryResponse]
    due_date: date | None
    priority: TaskPriority
    status: TaskStatus
    subtasks: list[SubtaskItem]
    tags: list[TagItem]
    comments: list[CommentResponse]
    attachments: list[AttachmentResponse]
    created_by: UUID
    creator: UserSummaryResponse
    created_at: datetime

    model_config = {"from_attributes": True}
