"""
WebSocket endpoint.
Real-time task events and notifications for authenticated users.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskspace.core.config import settings
from taskspace.core.database import get_session_factory
from taskspace.core.dependencies import resolve_user
from taskspace.core.exceptions import NotFound, Unauthenticated
from taskspace.core.permissions import is_member
from taskspace.core.websocket import ConnectionManager, workspace_room
from taskspace.services.access import load_workspace

logger = logging.getLogger(__name__)

router = APIRouter()

JOIN_WORKSPACE = "joinWorkspace"
LEAVE_WORKSPACE = "leaveWorkspace"


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(default="", description="JWT access token"),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> None:
    """
    WebSocket endpoint authenticated via JWT query param.
    Connect: WS /api/v1/ws?token={access_token}

    On connect:
    - Validate JWT, close with 4001 when invalid
    - Register connection and place it in the user's room
    - Answer joinWorkspace / leaveWorkspace frames

    On disconnect:
    - Drop the connection from every room
    """
    async with session_factory() as db:
        try:
            user = await resolve_user(token, db)
        except Unauthenticated:
            await websocket.close(code=4001)
            return
        user_id = user.id

    manager: ConnectionManager = websocket.app.state.connections
    connection_id = await manager.connect(websocket, user_id)

    try:
        await websocket.send_json({"type": "connected", "user_id": str(user_id)})

        while True:
            raw = await websocket.receive_text()
            reply = await _handle_frame(manager, connection_id, user_id, raw, session_factory)
            await websocket.send_json(reply)

    except WebSocketDisconnect:
        pass
    except Exception as exc:
        logger.warning("WebSocket error for user_id=%s: %s", user_id, exc)
    finally:
        manager.disconnect(connection_id)


def _error(message: str, code: str) -> dict[str, Any]:
    return {"type": "error", "data": {"code": code, "message": message}}


async def _handle_frame(
    manager: ConnectionManager,
    connection_id: str,
    user_id: UUID,
    raw: str,
    session_factory: async_sessionmaker[AsyncSession],
) -> dict[str, Any]:
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        return _error("Frames must be JSON objects", "INVALID_FRAME")
    if not isinstance(frame, dict):
        return _error("Frames must be JSON objects", "INVALID_FRAME")

    kind = frame.get("type")
    if kind not in (JOIN_WORKSPACE, LEAVE_WORKSPACE):
        return _error(f"Unknown message type: {kind!r}", "UNKNOWN_TYPE")

    try:
        workspace_id = UUID(str(frame.get("workspace_id")))
    except ValueError:
        return _error("workspace_id must be a UUID", "INVALID_WORKSPACE_ID")

    room = workspace_room(workspace_id)

    if kind == LEAVE_WORKSPACE:
        manager.leave(connection_id, room)
        logger.info("user_id=%s left room %s", user_id, room)
        return {"type": "leftWorkspace", "data": {"workspace_id": str(workspace_id)}}

    if settings.WS_REQUIRE_MEMBERSHIP_TO_JOIN:
        async with session_factory() as db:
            try:
                workspace = await load_workspace(db, workspace_id)
            except NotFound:
                return _error("Workspace not found", "WORKSPACE_NOT_FOUND")
            if not is_member(workspace, user_id):
                return _error("You are not a member of this workspace", "NOT_A_MEMBER")

    manager.join(connection_id, room)
    logger.info("user_id=%s joined room %s", user_id, room)
    return {"type": "joinedWorkspace", "data": {"workspace_id": str(workspace_id)}}
