"""
Workspace endpoints.

Workspace CRUD, invite codes and member management.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskspace.core.database import get_db
from taskspace.core.dependencies import get_broadcaster, get_current_user, get_file_storage
from taskspace.core.storage import LocalFileStorage
from taskspace.core.websocket import Broadcaster
from taskspace.models.user import User
from taskspace.schemas.common import ApiResponse, ok
from taskspace.schemas.workspace import (
    InviteCodeResponse,
    MemberRoleUpdateRequest,
    WorkspaceCreateRequest,
    WorkspaceResponse,
    WorkspaceSettingsUpdateRequest,
    WorkspaceSummary,
)
from taskspace.services.workspace_service import WorkspaceService

router = APIRouter()


def get_workspace_service(
    db: AsyncSession = Depends(get_db),
    storage: LocalFileStorage = Depends(get_file_storage),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> WorkspaceService:
    return WorkspaceService(db=db, storage=storage, broadcaster=broadcaster)


# ---------------------------------------------------------------------------
# Create / list / join
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ApiResponse[WorkspaceResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a workspace",
)
async def create_workspace(
    data: WorkspaceCreateRequest,
    current_user: User = Depends(get_current_user),
    service: WorkspaceService = Depends(get_workspace_service),
) -> dict:
    return ok(await service.create(data, current_user), "Workspace created successfully")


@router.get(
    "/mine",
    response_model=ApiResponse[list[WorkspaceSummary]],
    summary="Workspaces the current user belongs to",
)
async def my_workspaces(
    current_user: User = Depends(get_current_user),
    service: WorkspaceService = Depends(get_workspace_service),
) -> dict:
    return ok(await service.list_for_user(current_user))


@router.post(
    "/join/{invite_code}",
    response_model=ApiResponse[WorkspaceResponse],
    summary="Join a workspace with its invite code",
)
async def join_workspace(
    invite_code: str,
    current_user: User = Depends(get_current_user),
    service: WorkspaceService = Depends(get_workspace_service),
) -> dict:
    return ok(await service.join(invite_code, current_user), "Joined workspace successfully")


# ---------------------------------------------------------------------------
# Detail / settings / delete
# ---------------------------------------------------------------------------

@router.get(
    "/{workspace_id}",
    response_model=ApiResponse[WorkspaceResponse],
    summary="Get workspace detail",
)
async def get_workspace(
    workspace_id: UUID,
    current_user: User = Depends(get_current_user),
    service: WorkspaceService = Depends(get_workspace_service),
) -> dict:
    return ok(await service.get_view(workspace_id, current_user))


@router.patch(
    "/{workspace_id}/settings",
    response_model=ApiResponse[WorkspaceResponse],
    summary="Update workspace name, description or settings (admin)",
)
async def update_settings(
    workspace_id: UUID,
    data: WorkspaceSettingsUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: WorkspaceService = Depends(get_workspace_service),
) -> dict:
    return ok(
        await service.update_settings(workspace_id, data, current_user),
        "Workspace updated successfully",
    )


@router.post(
    "/{workspace_id}/regenerate-code",
    response_model=ApiResponse[InviteCodeResponse],
    summary="Regenerate the invite code (admin)",
)
async def regenerate_code(
    workspace_id: UUID,
    current_user: User = Depends(get_current_user),
    service: WorkspaceService = Depends(get_workspace_service),
) -> dict:
    code = await service.regenerate_invite_code(workspace_id, current_user)
    return ok(InviteCodeResponse(invite_code=code), "Invite code regenerated")


@router.delete(
    "/{workspace_id}",
    response_model=ApiResponse[None],
    summary="Delete a workspace (owner)",
)
async def delete_workspace(
    workspace_id: UUID,
    current_user: User = Depends(get_current_user),
    service: WorkspaceService = Depends(get_workspace_service),
) -> dict:
    await service.delete(workspace_id, current_user)
    return ok(message="Workspace deleted successfully")


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.patch(
    "/{workspace_id}/members/{user_id}",
    response_model=ApiResponse[WorkspaceResponse],
    summary="Change a member's role (admin)",
)
async def update_member_role(
    workspace_id: UUID,
    user_id: UUID,
    data: MemberRoleUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: WorkspaceService = Depends(get_workspace_service),
) -> dict:
    return ok(
        await service.update_member_role(workspace_id, user_id, data.role, current_user),
        "Member role updated",
    )


@router.delete(
    "/{workspace_id}/members/{user_id}",
    response_model=ApiResponse[None],
    summary="Remove a member (admin) or leave the workspace",
)
async def remove_member(
    workspace_id: UUID,
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: WorkspaceService = Depends(get_workspace_service),
) -> dict:
    await service.remove_member(workspace_id, user_id, current_user)
    return ok(message="Member removed")
