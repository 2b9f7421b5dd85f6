"""
Task business logic.

Handles task CRUD, comments and attachments. Every mutation runs the same
sequence: load workspace, check role, change and commit, then hand the
serialized result to the side-effect pipeline.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskspace.core.config import settings
from taskspace.core.exceptions import Forbidden, NotFound, ValidationFailed
from taskspace.core.permissions import is_member
from taskspace.core.storage import LocalFileStorage, StoredFile
from taskspace.core.websocket import Broadcaster
from taskspace.models.activity_log import ActivityLog
from taskspace.models.attachment import TaskAttachment
from taskspace.models.comment import TaskComment
from taskspace.models.member import WorkspaceRole
from taskspace.models.notification import Notification, NotificationType
from taskspace.models.task import Task, TaskStatus
from taskspace.models.user import User
from taskspace.models.workspace import Workspace
from taskspace.schemas.notification import NotificationCreate
from taskspace.schemas.task import (
    CommentResponse,
    TaskCreateRequest,
    TaskResponse,
    TaskUpdateRequest,
)
from taskspace.services.access import authorize, load_workspace
from taskspace.services.pipeline import SideEffects, commit_primary

logger = logging.getLogger(__name__)

# Fields that accept an explicit null on update; for the rest null means "leave as is"
_CLEARABLE_FIELDS = frozenset({"description", "due_date"})


class TaskService:
    """Handles all task operations."""

    def __init__(
        self,
        db: AsyncSession,
        broadcaster: Broadcaster | None = None,
        storage: LocalFileStorage | None = None,
    ) -> None:
        self.db = db
        self.storage = storage or LocalFileStorage()
        self.effects = SideEffects(db, broadcaster)

    # -----------------------------------------------------------------------
    # List Tasks
    # -----------------------------------------------------------------------

    async def list_by_workspace(self, workspace_id: UUID, actor: User) -> list[TaskResponse]:
        """All tasks of a workspace, newest first."""
        workspace = await load_workspace(self.db, workspace_id)
        authorize(workspace, actor.id)

        result = await self.db.execute(
            select(Task)
            .where(Task.workspace_id == workspace_id)
            .order_by(Task.created_at.desc())
        )
        return [TaskResponse.model_validate(task) for task in result.scalars().all()]

    # -----------------------------------------------------------------------
    # Get Task Detail
    # -----------------------------------------------------------------------

    async def get(self, task_id: UUID, actor: User) -> TaskResponse:
        task = await self._get_task(task_id)
        workspace = await load_workspace(self.db, task.workspace_id)
        authorize(workspace, actor.id)
        return TaskResponse.model_validate(task)

    # -----------------------------------------------------------------------
    # Create Task
    # -----------------------------------------------------------------------

    async def create(self, data: TaskCreateRequest, actor: User) -> TaskResponse:
        """
        Create a task in a workspace.

        Each assignee gets an ``assignment`` notification in their user room;
        the workspace room gets ``taskCreated``.
        """
        actor_id = actor.id
        workspace = await load_workspace(self.db, data.workspace_id)
        authorize(workspace, actor_id, WorkspaceRole.member)

        assignees = await self._load_assignees(workspace, data.assignees)

        task = Task(
            workspace_id=workspace.id,
            title=data.title,
            description=data.description,
            due_date=data.due_date,
            priority=data.priority,
            status=data.status,
            subtasks=[item.model_dump() for item in data.subtasks],
            tags=[item.model_dump() for item in data.tags],
            created_by=actor_id,
            creator=actor,
            assignees=assignees,
            comments=[],
            attachments=[],
        )
        self.db.add(task)
        await commit_primary(self.db, "task")

        payload = await self._serialize(task.id)
        logger.info("Task created: task_id=%s workspace_id=%s", payload.id, payload.workspace_id)

        await self.effects.record(
            workspace_id=payload.workspace_id,
            task_id=payload.id,
            actor_id=actor_id,
            action="created",
            details=f'Task "{payload.title}" was created',
        )
        await self.effects.notify(
            [
                NotificationCreate(
                    user_id=assignee.id,
                    workspace_id=payload.workspace_id,
                    task_id=payload.id,
                    type=NotificationType.assignment,
                    message=f'You have been assigned a new task: "{payload.title}"',
                )
                for assignee in payload.assignees
            ]
        )
        await self.effects.emit_to_workspace(
            payload.workspace_id, "taskCreated", actor_id, task=payload.model_dump(mode="json")
        )
        return payload

    # -----------------------------------------------------------------------
    # Update Task
    # -----------------------------------------------------------------------

    async def update(self, task_id: UUID, data: TaskUpdateRequest, actor: User) -> TaskResponse:
        """
        Shallow merge of the fields present in the request.

        Any status transition is accepted. Newly added assignees get an
        ``assignment`` notification; moving to done sends ``completion`` to
        the creator and assignees other than the actor.
        """
        actor_id = actor.id
        task = await self._get_task(task_id)
        workspace = await load_workspace(self.db, task.workspace_id)
        authorize(workspace, actor_id, WorkspaceRole.member)

        previous_assignees = set(task.assignee_ids)
        previous_status = task.status

        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if value is None and field not in _CLEARABLE_FIELDS:
                continue
            if field == "assignees":
                task.assignees = await self._load_assignees(workspace, value)
            else:
                setattr(task, field, value)

        await commit_primary(self.db, "task")
        payload = await self._serialize(task_id)

        await self.effects.record(
            workspace_id=payload.workspace_id,
            task_id=payload.id,
            actor_id=actor_id,
            action="updated",
            details=f'Task "{payload.title}" was updated',
        )

        notifications = [
            NotificationCreate(
                user_id=assignee.id,
                workspace_id=payload.workspace_id,
                task_id=payload.id,
                type=NotificationType.assignment,
                message=f'You have been assigned to task: "{payload.title}"',
            )
            for assignee in payload.assignees
            if assignee.id not in previous_assignees and assignee.id != actor_id
        ]
        if payload.status == TaskStatus.done and previous_status != TaskStatus.done:
            watchers = {assignee.id for assignee in payload.assignees} | {payload.created_by}
            watchers.discard(actor_id)
            notifications.extend(
                NotificationCreate(
                    user_id=user_id,
                    workspace_id=payload.workspace_id,
                    task_id=payload.id,
                    type=NotificationType.completion,
                    message=f'Task "{payload.title}" was marked as done',
                )
                for user_id in sorted(watchers, key=str)
            )
        await self.effects.notify(notifications)

        await self.effects.emit_to_workspace(
            payload.workspace_id, "taskUpdated", actor_id, task=payload.model_dump(mode="json")
        )
        return payload

    # -----------------------------------------------------------------------
    # Delete Task
    # -----------------------------------------------------------------------

    async def delete(self, task_id: UUID, actor: User) -> None:
        """
        Delete a task with its comments and attachments.

        The ``deleted`` entry is written before the task is removed. Stored
        files are removed afterwards, best-effort.
        """
        actor_id = actor.id
        task = await self._get_task(task_id)
        workspace_id = task.workspace_id
        workspace = await load_workspace(self.db, workspace_id)
        authorize(workspace, actor_id, WorkspaceRole.member)
        title = task.title

        await self.effects.record(
            workspace_id=workspace_id,
            task_id=task_id,
            actor_id=actor_id,
            action="deleted",
            details=f'Task "{title}" was deleted',
        )

        # Reload: a failed activity write rolls the session back
        task = await self._get_task(task_id)
        filenames = [attachment.filename for attachment in task.attachments]
        await self.db.delete(task)
        if settings.CASCADE_DELETE_TASK_HISTORY:
            await self.db.execute(delete(Notification).where(Notification.task_id == task_id))
            await self.db.execute(delete(ActivityLog).where(ActivityLog.task_id == task_id))
        await commit_primary(self.db, "task deletion")
        logger.info("Task deleted: task_id=%s workspace_id=%s", task_id, workspace_id)

        for filename in filenames:
            self._discard_file(filename)

        await self.effects.emit_to_workspace(
            workspace_id, "taskDeleted", actor_id, task_id=str(task_id)
        )

    # -----------------------------------------------------------------------
    # Comments
    # -----------------------------------------------------------------------

    async def add_comment(self, task_id: UUID, content: str, actor: User) -> CommentResponse:
        actor_id = actor.id
        content = content.strip()
        if not content:
            raise ValidationFailed("Comment content is required", fields={"content": "Must not be empty"})

        task = await self._get_task(task_id)
        workspace = await load_workspace(self.db, task.workspace_id)
        authorize(workspace, actor_id, WorkspaceRole.member)

        comment = TaskComment(task_id=task.id, author_id=actor_id, author=actor, content=content)
        task.comments.append(comment)
        await commit_primary(self.db, "comment")

        result = CommentResponse.model_validate(comment)
        workspace_id = task.workspace_id
        title = task.title

        await self.effects.record(
            workspace_id=workspace_id,
            task_id=task_id,
            actor_id=actor_id,
            action="commented",
            details=f'Comment added on task "{title}".',
        )
        await self.effects.emit_to_workspace(
            workspace_id,
            "commentAdded",
            actor_id,
            task_id=str(task_id),
            comment=result.model_dump(mode="json"),
        )
        return result

    async def delete_comment(self, task_id: UUID, comment_id: UUID, actor: User) -> None:
        """Only the comment's author may delete it, admins included."""
        actor_id = actor.id
        task = await self._get_task(task_id)
        workspace = await load_workspace(self.db, task.workspace_id)
        authorize(workspace, actor_id)

        comment = next((c for c in task.comments if c.id == comment_id), None)
        if comment is None:
            raise NotFound("Comment not found", code="COMMENT_NOT_FOUND")
        if comment.author_id != actor_id:
            raise Forbidden("You can only delete your own comments", code="NOT_COMMENT_AUTHOR")

        workspace_id = task.workspace_id
        title = task.title
        task.comments.remove(comment)
        await commit_primary(self.db, "comment deletion")

        await self.effects.record(
            workspace_id=workspace_id,
            task_id=task_id,
            actor_id=actor_id,
            action="comment deleted",
            details=f'Comment deleted on task "{title}".',
        )
        await self.effects.emit_to_workspace(
            workspace_id,
            "commentDeleted",
            actor_id,
            task_id=str(task_id),
            comment_id=str(comment_id),
        )

    # -----------------------------------------------------------------------
    # Attachments
    # -----------------------------------------------------------------------

    async def upload_attachments(
        self, task_id: UUID, files: list[UploadFile], actor: User
    ) -> TaskResponse:
        """Store 1..MAX_UPLOAD_FILES files and attach them to the task."""
        actor_id = actor.id
        if not files:
            raise ValidationFailed("No files uploaded", code="NO_FILES")
        if len(files) > settings.MAX_UPLOAD_FILES:
            raise ValidationFailed(
                f"At most {settings.MAX_UPLOAD_FILES} files can be uploaded at once",
                code="TOO_MANY_FILES",
            )

        task = await self._get_task(task_id)
        workspace = await load_workspace(self.db, task.workspace_id)
        authorize(workspace, actor_id, WorkspaceRole.member)

        stored: list[StoredFile] = []
        try:
            for upload in files:
                stored.append(await self.storage.save(upload))
            for item in stored:
                task.attachments.append(
                    TaskAttachment(
                        task_id=task.id,
                        filename=item.filename,
                        original_name=item.original_name,
                        mime_type=item.mime_type,
                        size=item.size,
                        path=item.path,
                    )
                )
            await commit_primary(self.db, "attachments")
        except Exception:
            for item in stored:
                self._discard_file(item.filename)
            raise

        payload = await self._serialize(task_id)
        await self.effects.record(
            workspace_id=payload.workspace_id,
            task_id=task_id,
            actor_id=actor_id,
            action="attached",
            details=f'{len(stored)} file(s) attached to task "{payload.title}"',
        )
        await self.effects.emit_to_workspace(
            payload.workspace_id, "taskUpdated", actor_id, task=payload.model_dump(mode="json")
        )
        return payload

    async def delete_attachment(self, task_id: UUID, filename: str, actor: User) -> TaskResponse:
        actor_id = actor.id
        task = await self._get_task(task_id)
        workspace = await load_workspace(self.db, task.workspace_id)
        authorize(workspace, actor_id, WorkspaceRole.member)

        attachment = next((a for a in task.attachments if a.filename == filename), None)
        if attachment is None:
            raise NotFound("Attachment not found", code="ATTACHMENT_NOT_FOUND")

        original_name = attachment.original_name
        task.attachments.remove(attachment)
        await commit_primary(self.db, "attachment deletion")
        self._discard_file(filename)

        payload = await self._serialize(task_id)
        await self.effects.record(
            workspace_id=payload.workspace_id,
            task_id=task_id,
            actor_id=actor_id,
            action="attachment deleted",
            details=f'Attachment "{original_name}" removed from task "{payload.title}"',
        )
        await self.effects.emit_to_workspace(
            payload.workspace_id, "taskUpdated", actor_id, task=payload.model_dump(mode="json")
        )
        return payload

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _get_task(self, task_id: UUID) -> Task:
        result = await self.db.execute(
            select(Task).where(Task.id == task_id).execution_options(populate_existing=True)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFound("Task not found", code="TASK_NOT_FOUND")
        return task

    async def _serialize(self, task_id: UUID) -> TaskResponse:
        """Reload the committed task and freeze it into a response model."""
        return TaskResponse.model_validate(await self._get_task(task_id))

    async def _load_assignees(self, workspace: Workspace, user_ids: list[Any]) -> list[User]:
        """Resolve assignee ids, keeping request order. Each must be a workspace member."""
        ordered: list[UUID] = []
        for raw in user_ids:
            user_id = UUID(str(raw))
            if user_id not in ordered:
                ordered.append(user_id)
        if not ordered:
            return []

        outsiders = [str(user_id) for user_id in ordered if not is_member(workspace, user_id)]
        if outsiders:
            raise ValidationFailed(
                "Assignees must be members of the workspace",
                code="ASSIGNEE_NOT_MEMBER",
                fields={"assignees": ", ".join(outsiders)},
            )

        result = await self.db.execute(select(User).where(User.id.in_(ordered)))
        users = {user.id: user for user in result.scalars().all()}
        return [users[user_id] for user_id in ordered if user_id in users]

    def _discard_file(self, filename: str) -> None:
        try:
            self.storage.delete(filename)
        except Exception:
            logger.exception("Failed to remove stored file %s", filename)
