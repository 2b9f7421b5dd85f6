"""
Activity log schemas.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from taskspace.schemas.task import UserSummaryResponse


class ActivityResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    task_id: UUID
    actor: UserSummaryResponse
    action: str
    details: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
