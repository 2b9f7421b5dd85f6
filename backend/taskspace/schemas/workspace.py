"""
Workspace schemas.

Request/response models for workspace and member management endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from taskspace.models.member import WorkspaceRole


def _strip_name(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Name cannot be blank")
    return v


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------

class WorkspaceCreateRequest(BaseModel):
    """Request body for POST /workspaces."""

    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return _strip_name(v)


class WorkspaceSettingsUpdateRequest(BaseModel):
    """Request body for PATCH /workspaces/{id}/settings. Unset fields are ignored."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_public: bool | None = None
    allow_invites: bool | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str | None:
        return _strip_name(v)


class WorkspaceSettings(BaseModel):
    is_public: bool
    allow_invites: bool


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

class MemberResponse(BaseModel):
    """Single workspace member with user info and role."""

    user_id: UUID
    email: str
    display_name: str
    avatar_url: str | None
    role: WorkspaceRole
    joined_at: datetime


class MemberRoleUpdateRequest(BaseModel):
    """Request body for PATCH /workspaces/{id}/members/{user_id}."""

    role: WorkspaceRole


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

class WorkspaceResponse(BaseModel):
    """
    Workspace detail as seen by one member.

    ``invite_code`` is only filled in for admins.
    """

    id: UUID
    name: str
    description: str | None
    owner_id: UUID
    invite_code: str | None
    settings: WorkspaceSettings
    members: list[MemberResponse]
    role: WorkspaceRole
    is_owner: bool
    created_at: datetime
    updated_at: datetime


class WorkspaceSummary(BaseModel):
    """Entry in GET /workspaces/mine."""

    id: UUID
    name: str
    description: str | None
    role: WorkspaceRole
    is_owner: bool
    member_count: int
    created_at: datetime


class InviteCodeResponse(BaseModel):
    invite_code: str
