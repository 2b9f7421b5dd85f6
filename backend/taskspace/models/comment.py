"""
TaskComment ORM model.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskspace.models.base import Base, UUIDMixin, utcnow

if TYPE_CHECKING:
    from taskspace.models.task import Task
    from taskspace.models.user import User


class TaskComment(Base, UUIDMixin):
    """A comment on a task. Only its author may delete it."""

    __tablename__ = "task_comments"

    task_id: Mapped[UUID] = mapped_column(
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    task: Mapped[Task] = relationship("Task", back_populates="comments")
    author: Mapped[User] = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        return f"<TaskComment id={self.id} task_id={self.task_id} author_id={self.author_id}>"
