"""
SQLAlchemy ORM models.

All models imported here to ensure they are registered with Base.metadata.
Import order matters: base models before dependent models.
"""

from taskspace.models.base import Base, JSONType, TimestampMixin, UUIDMixin
from taskspace.models.user import User
from taskspace.models.member import ROLE_RANK, WorkspaceMember, WorkspaceRole
from taskspace.models.workspace import Workspace
from taskspace.models.task import Task, TaskPriority, TaskStatus, task_assignees
from taskspace.models.comment import TaskComment
from taskspace.models.attachment import TaskAttachment
from taskspace.models.notification import Notification, NotificationType
from taskspace.models.activity_log import ActivityLog

__all__ = [
    "Base",
    "JSONType",
    "TimestampMixin",
    "UUIDMixin",
    "User",
    "WorkspaceMember",
    "WorkspaceRole",
    "ROLE_RANK",
    "Workspace",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "task_assignees",
    "TaskComment",
    "TaskAttachment",
    "Notification",
    "NotificationType",
    "ActivityLog",
]
