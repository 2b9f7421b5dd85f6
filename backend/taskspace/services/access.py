"""
Workspace loading and role enforcement shared by the services.

The decisions themselves live in ``taskspace.core.permissions``; this
module turns a negative decision into ``Forbidden``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskspace.core.exceptions import Forbidden, NotFound
from taskspace.core.permissions import has_permission, role_of
from taskspace.models.member import WorkspaceRole
from taskspace.models.workspace import Workspace


async def load_workspace(db: AsyncSession, workspace_id: UUID) -> Workspace:
    result = await db.execute(
        select(Workspace)
        .where(Workspace.id == workspace_id)
        .execution_options(populate_existing=True)
    )
    workspace = result.scalar_one_or_none()
    if workspace is None:
        raise NotFound("Workspace not found", code="WORKSPACE_NOT_FOUND")
    return workspace


def authorize(
    workspace: Workspace,
    user_id: UUID,
    required: WorkspaceRole = WorkspaceRole.viewer,
) -> WorkspaceRole:
    """Return the actor's role or raise Forbidden."""
    role = role_of(workspace, user_id)
    if role is None:
        raise Forbidden("You are not a member of this workspace", code="NOT_A_MEMBER")
    if not has_permission(workspace, user_id, required):
        raise Forbidden(
            f"This action requires the {required.value} role",
            code="INSUFFICIENT_ROLE",
        )
    return role
