"""
ORM model for notifications table.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskspace.models.base import Base, UUIDMixin, utcnow

if TYPE_CHECKING:
    from taskspace.models.user import User


class NotificationType(str, enum.Enum):
    assignment = "assignment"
    mention = "mention"
    update = "update"
    completion = "completion"


class Notification(Base, UUIDMixin):
    __tablename__ = "notifications"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Plain ids: notifications are kept after the task or workspace is deleted
    workspace_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    task_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type"),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped[User] = relationship("User")

    def __repr__(self) -> str:
        return f"<Notification id={self.id} user_id={self.user_id} type={self.type}>"
