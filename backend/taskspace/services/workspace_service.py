"""
Workspace business logic.

Handles workspace CRUD, invite codes and member management. Membership is
stored only in ``workspace_members``; a workspace and its owner's admin
membership are written in the same transaction.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from taskspace.core.config import settings
from taskspace.core.exceptions import Conflict, ExternalDependencyFailure, Forbidden, NotFound
from taskspace.core.permissions import is_member, is_owner
from taskspace.core.security import generate_invite_code
from taskspace.core.storage import LocalFileStorage
from taskspace.core.websocket import Broadcaster, NullBroadcaster, workspace_room
from taskspace.models.activity_log import ActivityLog
from taskspace.models.member import WorkspaceMember, WorkspaceRole
from taskspace.models.notification import Notification
from taskspace.models.task import Task
from taskspace.models.user import User
from taskspace.models.workspace import Workspace
from taskspace.schemas.workspace import (
    MemberResponse,
    WorkspaceCreateRequest,
    WorkspaceResponse,
    WorkspaceSettings,
    WorkspaceSettingsUpdateRequest,
    WorkspaceSummary,
)
from taskspace.services.access import authorize, load_workspace
from taskspace.services.pipeline import commit_primary

logger = logging.getLogger(__name__)


def _already_member() -> Conflict:
    return Conflict("You are already a member of this workspace", code="ALREADY_MEMBER")


def _invite_code_taken() -> Conflict:
    return Conflict("Invite code already in use", code="INVITE_CODE_TAKEN")


def _invite_codes_exhausted() -> ExternalDependencyFailure:
    return ExternalDependencyFailure(
        "Could not generate a unique invite code", code="INVITE_CODE_EXHAUSTED"
    )


class WorkspaceService:
    """Handles workspace and membership operations."""

    def __init__(
        self,
        db: AsyncSession,
        storage: LocalFileStorage | None = None,
        broadcaster: Broadcaster | None = None,
    ) -> None:
        self.db = db
        self.storage = storage or LocalFileStorage()
        self.broadcaster = broadcaster or NullBroadcaster()

    # -----------------------------------------------------------------------
    # Create
    # -----------------------------------------------------------------------

    async def create(self, data: WorkspaceCreateRequest, owner: User) -> WorkspaceResponse:
        """
        Create a workspace with the owner as its only admin.

        If another request commits the same invite code first, the unique
        index rejects ours; a new code is drawn and the insert retried.
        """
        owner_id = owner.id

        for attempt in range(settings.INVITE_CODE_MAX_ATTEMPTS):
            if attempt:
                # The rollback expired the owner
                await self.db.refresh(owner)

            workspace = Workspace(
                name=data.name,
                description=data.description,
                owner_id=owner_id,
                owner=owner,
                invite_code=await self._generate_unique_invite_code(),
                is_public=False,
                allow_invites=True,
                members=[
                    WorkspaceMember(user_id=owner_id, user=owner, role=WorkspaceRole.admin),
                ],
            )
            self.db.add(workspace)
            try:
                await commit_primary(self.db, "workspace", conflict=_invite_code_taken())
            except Conflict:
                logger.warning("Invite code taken at commit, drawing again")
                continue

            logger.info("Workspace created: id=%s owner_id=%s", workspace.id, owner_id)
            return self._to_view(workspace, owner_id)

        raise _invite_codes_exhausted()

    # -----------------------------------------------------------------------
    # My workspaces
    # -----------------------------------------------------------------------

    async def list_for_user(self, user: User) -> list[WorkspaceSummary]:
        counted = aliased(WorkspaceMember)
        member_count = (
            select(func.count(counted.id))
            .where(counted.workspace_id == Workspace.id)
            .correlate(Workspace)
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(Workspace, WorkspaceMember.role, member_count)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(WorkspaceMember.user_id == user.id)
            .order_by(WorkspaceMember.joined_at)
        )
        return [
            WorkspaceSummary(
                id=workspace.id,
                name=workspace.name,
                description=workspace.description,
                role=role,
                is_owner=workspace.owner_id == user.id,
                member_count=count,
                created_at=workspace.created_at,
            )
            for workspace, role, count in result.all()
        ]

    # -----------------------------------------------------------------------
    # Join by invite code
    # -----------------------------------------------------------------------

    async def join(self, invite_code: str, user: User) -> WorkspaceResponse:
        result = await self.db.execute(
            select(Workspace).where(Workspace.invite_code == invite_code)
        )
        workspace = result.scalar_one_or_none()
        if workspace is None:
            raise NotFound("Invalid invite code", code="INVALID_INVITE_CODE")

        if is_member(workspace, user.id):
            raise _already_member()
        if not workspace.allow_invites:
            raise Forbidden("This workspace is not accepting new members", code="INVITES_DISABLED")

        workspace.members.append(
            WorkspaceMember(workspace_id=workspace.id, user_id=user.id, user=user, role=WorkspaceRole.member)
        )
        # A concurrent join by the same user trips the membership unique constraint
        await commit_primary(self.db, "membership", conflict=_already_member())

        logger.info("User %s joined workspace %s", user.id, workspace.id)
        return self._to_view(workspace, user.id)

    # -----------------------------------------------------------------------
    # Detail
    # -----------------------------------------------------------------------

    async def get_view(self, workspace_id: UUID, user: User) -> WorkspaceResponse:
        workspace = await load_workspace(self.db, workspace_id)
        authorize(workspace, user.id)
        return self._to_view(workspace, user.id)

    # -----------------------------------------------------------------------
    # Settings
    # -----------------------------------------------------------------------

    async def update_settings(
        self,
        workspace_id: UUID,
        data: WorkspaceSettingsUpdateRequest,
        user: User,
    ) -> WorkspaceResponse:
        """Partial update. ``description`` may be cleared with null; other nulls are ignored."""
        workspace = await load_workspace(self.db, workspace_id)
        authorize(workspace, user.id, WorkspaceRole.admin)

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field != "description":
                continue
            setattr(workspace, field, value)

        await commit_primary(self.db, "workspace settings")
        return self._to_view(workspace, user.id)

    async def regenerate_invite_code(self, workspace_id: UUID, user: User) -> str:
        """Replace the invite code. The previous code stops resolving at once."""
        user_id = user.id

        for _ in range(settings.INVITE_CODE_MAX_ATTEMPTS):
            workspace = await load_workspace(self.db, workspace_id)
            authorize(workspace, user_id, WorkspaceRole.admin)

            code = await self._generate_unique_invite_code()
            workspace.invite_code = code
            try:
                await commit_primary(self.db, "invite code", conflict=_invite_code_taken())
            except Conflict:
                logger.warning("Invite code taken at commit, drawing again")
                continue

            logger.info("Invite code regenerated for workspace %s", workspace_id)
            return code

        raise _invite_codes_exhausted()

    # -----------------------------------------------------------------------
    # Delete
    # -----------------------------------------------------------------------

    async def delete(self, workspace_id: UUID, user: User) -> None:
        """
        Owner only. Memberships always go with the workspace.

        Tasks, notifications and activity are kept unless
        CASCADE_DELETE_WORKSPACE_CONTENT is set.
        """
        workspace = await load_workspace(self.db, workspace_id)
        if not is_owner(workspace, user.id):
            raise Forbidden("Only the workspace owner can delete it", code="NOT_OWNER")

        member_ids = [member.user_id for member in workspace.members]
        filenames: list[str] = []
        if settings.CASCADE_DELETE_WORKSPACE_CONTENT:
            result = await self.db.execute(select(Task).where(Task.workspace_id == workspace_id))
            for task in result.scalars().all():
                filenames.extend(attachment.filename for attachment in task.attachments)
                await self.db.delete(task)
            await self.db.execute(
                delete(Notification).where(Notification.workspace_id == workspace_id)
            )
            await self.db.execute(
                delete(ActivityLog).where(ActivityLog.workspace_id == workspace_id)
            )

        await self.db.delete(workspace)
        await commit_primary(self.db, "workspace deletion")
        logger.info("Workspace deleted: id=%s by user_id=%s", workspace_id, user.id)

        for filename in filenames:
            self.storage.delete(filename)
        for member_id in member_ids:
            self._evict(member_id, workspace_id)

    # -----------------------------------------------------------------------
    # Members
    # -----------------------------------------------------------------------

    async def update_member_role(
        self,
        workspace_id: UUID,
        member_user_id: UUID,
        role: WorkspaceRole,
        user: User,
    ) -> WorkspaceResponse:
        workspace = await load_workspace(self.db, workspace_id)
        authorize(workspace, user.id, WorkspaceRole.admin)

        member = self._find_member(workspace, member_user_id)
        if is_owner(workspace, member_user_id):
            raise Forbidden("The owner's role cannot be changed", code="OWNER_ROLE_IMMUTABLE")

        member.role = role
        await commit_primary(self.db, "member role")
        return self._to_view(workspace, user.id)

    async def remove_member(self, workspace_id: UUID, member_user_id: UUID, user: User) -> None:
        """Admins remove others; any member may remove themselves. The owner stays."""
        workspace = await load_workspace(self.db, workspace_id)
        if member_user_id != user.id:
            authorize(workspace, user.id, WorkspaceRole.admin)
        else:
            authorize(workspace, user.id)

        member = self._find_member(workspace, member_user_id)
        if is_owner(workspace, member_user_id):
            raise Forbidden("The owner cannot be removed", code="OWNER_NOT_REMOVABLE")

        workspace.members.remove(member)
        await commit_primary(self.db, "member removal")
        logger.info("User %s removed from workspace %s", member_user_id, workspace_id)

        self._evict(member_user_id, workspace_id)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _generate_unique_invite_code(self) -> str:
        """
        Draw codes until one is unused.

        The unique index on ``invite_code`` backs this check.
        """
        for _ in range(settings.INVITE_CODE_MAX_ATTEMPTS):
            code = generate_invite_code()
            taken = await self.db.scalar(select(Workspace.id).where(Workspace.invite_code == code))
            if taken is None:
                return code
            logger.warning("Invite code collision, drawing again")
        raise _invite_codes_exhausted()

    def _evict(self, user_id: UUID, workspace_id: UUID) -> None:
        """Drop the user's live connections from the workspace room."""
        try:
            evicted = self.broadcaster.leave_user(user_id, workspace_room(workspace_id))
        except Exception:
            logger.exception(
                "Failed to evict user %s from workspace room %s", user_id, workspace_id
            )
            return
        if evicted:
            logger.info(
                "Evicted %d connection(s) of user %s from workspace %s",
                evicted, user_id, workspace_id,
            )

    @staticmethod
    def _find_member(workspace: Workspace, user_id: UUID) -> WorkspaceMember:
        for member in workspace.members:
            if member.user_id == user_id:
                return member
        raise NotFound("Member not found", code="MEMBER_NOT_FOUND")

    @staticmethod
    def _to_view(workspace: Workspace, viewer_id: UUID) -> WorkspaceResponse:
        role = next(WorkspaceRole(m.role) for m in workspace.members if m.user_id == viewer_id)
        return WorkspaceResponse(
            id=workspace.id,
            name=workspace.name,
            description=workspace.description,
            owner_id=workspace.owner_id,
            invite_code=workspace.invite_code if role == WorkspaceRole.admin else None,
            settings=WorkspaceSettings(
                is_public=workspace.is_public,
                allow_invites=workspace.allow_invites,
            ),
            members=[
                MemberResponse(
                    user_id=member.user_id,
                    email=member.user.email,
                    display_name=member.user.display_name,
                    avatar_url=member.user.avatar_url,
                    role=member.role,
                    joined_at=member.joined_at,
                )
                for member in workspace.members
            ],
            role=role,
            is_owner=workspace.owner_id == viewer_id,
            created_at=workspace.created_at,
            updated_at=workspace.updated_at,
        )
