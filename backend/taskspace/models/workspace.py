"""
Workspace ORM model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskspace.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from taskspace.models.member import WorkspaceMember
    from taskspace.models.user import User


class Workspace(Base, UUIDMixin, TimestampMixin):
    """A team boundary containing members and tasks."""

    __tablename__ = "workspaces"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    # Unique across all workspaces; NULL allowed (and not compared) before generation
    invite_code: Mapped[str | None] = mapped_column(
        String(64), nullable=True, unique=True, index=True
    )

    # Settings
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_invites: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    owner: Mapped[User] = relationship("User", lazy="selectin")
    members: Mapped[list[WorkspaceMember]] = relationship(
        "WorkspaceMember",
        back_populates="workspace",
        cascade="all, delete-orphan",
        order_by="WorkspaceMember.joined_at",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Workspace id={self.id} name={self.name!r}>"
