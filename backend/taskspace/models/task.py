"""
Task ORM model.
"""

from __future__ import annotations

import enum
from datetime import date, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, String, Table, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskspace.models.base import Base, JSONType, UUIDMixin, utcnow

if TYPE_CHECKING:
    from taskspace.models.attachment import TaskAttachment
    from taskspace.models.comment import TaskComment
    from taskspace.models.user import User


class TaskPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class TaskStatus(str, enum.Enum):
    """Advisory ordering only: any transition is accepted on update."""

    todo = "todo"
    in_progress = "in-progress"
    done = "done"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


task_assignees = Table(
    "task_assignees",
    Base.metadata,
    Column("task_id", ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Task(Base, UUIDMixin):
    """A work item owned by exactly one workspace."""

    __tablename__ = "tasks"

    # Plain reference: tasks are queried on their own and may outlive the workspace
    workspace_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    priority: Mapped[TaskPriority] = mapped_column(
        Enum(TaskPriority, name="task_priority", values_callable=_enum_values),
        nullable=False,
        default=TaskPriority.medium,
    )
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, name="task_status", values_callable=_enum_values),
        nullable=False,
        default=TaskStatus.todo,
    )
    # Embedded value lists: [{"title", "completed"}] and [{"name", "color"}]
    subtasks: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    tags: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    created_by: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True
    )

    # Relationships
    creator: Mapped[User] = relationship("User", foreign_keys=[created_by], lazy="selectin")
    assignees: Mapped[list[User]] = relationship(
        "User", secondary=task_assignees, lazy="selectin"
    )
    comments: Mapped[list[TaskComment]] = relationship(
        "TaskComment",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="TaskComment.created_at",
        lazy="selectin",
    )
    attachments: Mapped[list[TaskAttachment]] = relationship(
        "TaskAttachment",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="TaskAttachment.uploaded_at",
        lazy="selectin",
    )

    @property
    def assignee_ids(self) -> list[UUID]:
        return [user.id for user in self.assignees]

    def __repr__(self) -> str:
        return f"<Task id={self.id} workspace_id={self.workspace_id} title={self.title!r}>"
