"""
Response envelope shared by every endpoint.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Tagged outcome: ``success`` is always True here; errors use the handlers."""

    success: bool = True
    message: str = "OK"
    data: T | None = None


def ok(data: object = None, message: str = "OK") -> dict[str, object]:
    return {"success": True, "message": message, "data": data}
