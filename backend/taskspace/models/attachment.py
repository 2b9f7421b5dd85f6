"""
TaskAttachment ORM model.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskspace.models.base import Base, UUIDMixin, utcnow

if TYPE_CHECKING:
    from taskspace.models.task import Task


class TaskAttachment(Base, UUIDMixin):
    """Metadata for a file stored through the file-storage backend."""

    __tablename__ = "task_attachments"

    task_id: Mapped[UUID] = mapped_column(
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    path: Mapped[str] = mapped_column(String(1024), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    task: Mapped[Task] = relationship("Task", back_populates="attachments")

    def __repr__(self) -> str:
        return f"<TaskAttachment id={self.id} task_id={self.task_id} filename={self.filename!r}>"
