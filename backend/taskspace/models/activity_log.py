"""
ActivityLog ORM model.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskspace.models.base import Base, UUIDMixin, utcnow

if TYPE_CHECKING:
    from taskspace.models.user import User


class ActivityLog(Base, UUIDMixin):
    """Append-only audit log for task changes."""

    __tablename__ = "activity_log"

    # Plain ids so entries outlive the task they describe
    workspace_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    task_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    actor_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    actor: Mapped[User] = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        return f"<ActivityLog id={self.id} action={self.action!r} task_id={self.task_id}>"
