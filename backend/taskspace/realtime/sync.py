"""
Client-side real-time helpers.

``RoomSubscription`` tracks the one workspace room a client follows and
produces the control frames to send. ``TaskBoard`` folds server events into
a local task map; replaying an event the board already reflects is a no-op.
Both are transport-agnostic: callers send the frames and feed in the
messages received from ``/api/v1/ws``.
"""

from __future__ import annotations

import copy
import enum
from collections.abc import Iterable
from typing import Any


class RoomState(str, enum.Enum):
    not_joined = "not-joined"
    joined = "joined"


class RoomSubscription:
    """
    State machine with two states. Transitions happen only through
    ``join`` and ``leave``; joining another room leaves the current one first.
    """

    def __init__(self) -> None:
        self.current: str | None = None

    @property
    def state(self) -> RoomState:
        return RoomState.joined if self.current is not None else RoomState.not_joined

    def join(self, workspace_id: str) -> list[dict[str, str]]:
        workspace_id = str(workspace_id)
        if workspace_id == self.current:
            return []
        frames = []
        if self.current is not None:
            frames.append({"type": "leaveWorkspace", "workspace_id": self.current})
        frames.append({"type": "joinWorkspace", "workspace_id": workspace_id})
        self.current = workspace_id
        return frames

    def leave(self, workspace_id: str | None = None) -> list[dict[str, str]]:
        """Leave the current room. A different ``workspace_id`` is ignored."""
        if self.current is None:
            return []
        if workspace_id is not None and str(workspace_id) != self.current:
            return []
        frame = {"type": "leaveWorkspace", "workspace_id": self.current}
        self.current = None
        return [frame]


class TaskBoard:
    """Local view of one workspace's tasks, keyed by task id."""

    def __init__(self, workspace_id: str | None = None) -> None:
        self.workspace_id = str(workspace_id) if workspace_id is not None else None
        self.tasks: dict[str, dict[str, Any]] = {}

    def load(self, tasks: Iterable[dict[str, Any]]) -> None:
        self.tasks = {str(task["id"]): copy.deepcopy(task) for task in tasks}

    def ordered(self) -> list[dict[str, Any]]:
        """Newest first, the order the list endpoint uses."""
        return sorted(self.tasks.values(), key=lambda t: t.get("created_at", ""), reverse=True)

    def apply(self, message: dict[str, Any]) -> bool:
        """Apply one server event. Returns True when the board changed."""
        event = message.get("type")
        data = message.get("data") or {}
        if self.workspace_id is not None and str(data.get("workspace_id")) != self.workspace_id:
            return False

        if event in ("taskCreated", "taskUpdated"):
            return self._put(data["task"])
        if event == "taskDeleted":
            return self.tasks.pop(str(data["task_id"]), None) is not None
        if event == "commentAdded":
            return self._add_comment(str(data["task_id"]), data["comment"])
        if event == "commentDeleted":
            return self._remove_comment(str(data["task_id"]), str(data["comment_id"]))
        return False

    def _put(self, task: dict[str, Any]) -> bool:
        task_id = str(task["id"])
        if self.tasks.get(task_id) == task:
            return False
        self.tasks[task_id] = copy.deepcopy(task)
        return True

    def _add_comment(self, task_id: str, comment: dict[str, Any]) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        comments = task.setdefault("comments", [])
        if any(str(c.get("id")) == str(comment.get("id")) for c in comments):
            return False
        comments.append(copy.deepcopy(comment))
        return True

    def _remove_comment(self, task_id: str, comment_id: str) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        comments = task.get("comments", [])
        kept = [c for c in comments if str(c.get("id")) != comment_id]
        if len(kept) == len(comments):
            return False
        task["comments"] = kept
        return True
