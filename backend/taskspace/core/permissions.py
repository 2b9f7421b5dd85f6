"""
Workspace authorization decisions.

Pure functions over a loaded workspace and its member list. They never
raise and never build HTTP errors; services turn ``False`` into
``Forbidden``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from taskspace.models.member import ROLE_RANK, WorkspaceRole

if TYPE_CHECKING:
    from taskspace.models.workspace import Workspace


def _same_id(left: UUID | str, right: UUID | str) -> bool:
    return str(left) == str(right)


def role_of(workspace: Workspace | None, user_id: UUID | str | None) -> WorkspaceRole | None:
    """Return the user's role in the workspace, or None for non-members."""
    if workspace is None or user_id is None:
        return None
    for member in workspace.members:
        if _same_id(member.user_id, user_id):
            return WorkspaceRole(member.role)
    return None


def is_member(workspace: Workspace | None, user_id: UUID | str | None) -> bool:
    return role_of(workspace, user_id) is not None


def has_permission(
    workspace: Workspace | None,
    user_id: UUID | str | None,
    required_role: WorkspaceRole,
) -> bool:
    """True iff the user holds ``required_role`` or a higher-ranked one."""
    role = role_of(workspace, user_id)
    if role is None:
        return False
    return ROLE_RANK[role] >= ROLE_RANK[WorkspaceRole(required_role)]


def is_owner(workspace: Workspace | None, user_id: UUID | str | None) -> bool:
    if workspace is None or user_id is None:
        return False
    return _same_id(workspace.owner_id, user_id)
