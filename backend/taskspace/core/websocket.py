"""
WebSocket connection manager and broadcast rooms.

In-memory registry of active connections, single server only. Every
connection sits in its user room from the moment it connects and joins or
leaves workspace rooms on request.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol
from uuid import UUID

from fastapi import WebSocket

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Room naming
# ---------------------------------------------------------------------------

def workspace_room(workspace_id: UUID | str) -> str:
    return f"workspace:{workspace_id}"


def user_room(user_id: UUID | str) -> str:
    return f"user:{user_id}"


# ---------------------------------------------------------------------------
# Broadcaster capability
# ---------------------------------------------------------------------------

class Broadcaster(Protocol):
    async def emit(self, room: str, event: str, data: dict[str, Any]) -> None: ...

    def leave_user(self, user_id: UUID | str, room: str) -> int: ...


class NullBroadcaster:
    """Used when no real-time channel is wired up. Emission is a no-op."""

    async def emit(self, room: str, event: str, data: dict[str, Any]) -> None:
        return None

    def leave_user(self, user_id: UUID | str, room: str) -> int:
        return 0


# ---------------------------------------------------------------------------
# Connection manager
# ---------------------------------------------------------------------------

class ConnectionManager:
    """
    Maps connection_id → WebSocket and room → connection ids.

    A user may hold several connections (tabs); each is tracked separately
    and receives its own copy of every event addressed to its rooms.
    """

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}
        self._users: dict[str, str] = {}
        self._rooms: dict[str, set[str]] = {}
        self._joined: dict[str, set[str]] = {}

    async def connect(self, websocket: WebSocket, user_id: UUID | str) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self._connections[connection_id] = websocket
        self._users[connection_id] = str(user_id)
        self._joined[connection_id] = set()
        self.join(connection_id, user_room(user_id))
        logger.info("WebSocket connected: user_id=%s connection_id=%s", user_id, connection_id)
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        if connection_id not in self._connections:
            return
        for room in self._joined.pop(connection_id, set()):
            members = self._rooms.get(room)
            if members is None:
                continue
            members.discard(connection_id)
            if not members:
                del self._rooms[room]
        self._connections.pop(connection_id, None)
        user_id = self._users.pop(connection_id, None)
        logger.info("WebSocket disconnected: user_id=%s connection_id=%s", user_id, connection_id)

    def join(self, connection_id: str, room: str) -> None:
        if connection_id not in self._connections:
            return
        self._rooms.setdefault(room, set()).add(connection_id)
        self._joined[connection_id].add(room)

    def leave(self, connection_id: str, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self._rooms[room]
        joined = self._joined.get(connection_id)
        if joined is not None:
            joined.discard(room)

    def leave_user(self, user_id: UUID | str, room: str) -> int:
        """Remove every connection of ``user_id`` from ``room``; returns how many."""
        owned = [cid for cid in self.connections_in(room) if self._users.get(cid) == str(user_id)]
        for connection_id in owned:
            self.leave(connection_id, room)
        return len(owned)

    def rooms_of(self, connection_id: str) -> set[str]:
        return set(self._joined.get(connection_id, set()))

    def connections_in(self, room: str) -> set[str]:
        return set(self._rooms.get(room, set()))

    def user_of(self, connection_id: str) -> str | None:
        return self._users.get(connection_id)

    async def send(self, connection_id: str, message: dict[str, Any]) -> None:
        """
        Send a JSON message to one connection.

        Silently removes the stale connection on any send error.
        """
        websocket = self._connections.get(connection_id)
        if websocket is None:
            return
        try:
            await websocket.send_json(message)
        except Exception as exc:
            logger.warning(
                "Failed to send to connection_id=%s, removing connection: %s",
                connection_id,
                exc,
            )
            self.disconnect(connection_id)

    async def emit(self, room: str, event: str, data: dict[str, Any]) -> None:
        """Send ``{"type": event, "data": data}`` to every connection in ``room``."""
        message = {"type": event, "data": data}
        for connection_id in self.connections_in(room):
            await self.send(connection_id, message)

    @property
    def connection_count(self) -> int:
        return len(self._connections)
