"""
Pydantic schemas for notifications.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from taskspace.models.notification import NotificationType


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------

class NotificationResponse(BaseModel):
    """Single notification response."""
    id: uuid.UUID
    user_id: uuid.UUID
    workspace_id: uuid.UUID
    task_id: uuid.UUID | None
    type: NotificationType
    message: str
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    """Payload of GET /notifications."""
    items: list[NotificationResponse]
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int


# ---------------------------------------------------------------------------
# Internal schema used by notification_service to create notifications
# ---------------------------------------------------------------------------

class NotificationCreate(BaseModel):
    """Internal schema for creating a notification (not exposed via API)."""
    user_id: uuid.UUID
    workspace_id: uuid.UUID
    task_id: uuid.UUID | None = None
    type: NotificationType
    message: str
