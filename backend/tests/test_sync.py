"""
Client-side room tracking and board reconciliation.
"""

import pytest

from taskspace.realtime.sync import RoomState, RoomSubscription, TaskBoard

WS = "ws-1"


def task(task_id="t1", title="Write docs", created_at="2026-10-01T10:00:00", **extra):
    return {"id": task_id, "title": title, "created_at": created_at, "comments": [], **extra}


def event(kind, **data):
    return {"type": kind, "data": {"workspace_id": WS, "user_id": "u1", **data}}


class TestRoomSubscription:
    def test_starts_not_joined(self):
        assert RoomSubscription().state == RoomState.not_joined

    def test_join_then_leave(self):
        sub = RoomSubscription()
        assert sub.join("a") == [{"type": "joinWorkspace", "workspace_id": "a"}]
        assert sub.state == RoomState.joined

        assert sub.leave() == [{"type": "leaveWorkspace", "workspace_id": "a"}]
        assert sub.state == RoomState.not_joined
        assert sub.leave() == []

    def test_switching_rooms_leaves_previous_first(self):
        sub = RoomSubscription()
        sub.join("a")
        assert sub.join("b") == [
            {"type": "leaveWorkspace", "workspace_id": "a"},
            {"type": "joinWorkspace", "workspace_id": "b"},
        ]
        assert sub.current == "b"

    def test_rejoining_same_room_is_noop(self):
        sub = RoomSubscription()
        sub.join("a")
        assert sub.join("a") == []

    def test_leaving_other_room_is_ignored(self):
        sub = RoomSubscription()
        sub.join("a")
        assert sub.leave("b") == []
        assert sub.current == "a"


class TestTaskBoard:
    @pytest.fixture
    def board(self):
        board = TaskBoard(WS)
        board.load([task()])
        return board

    def test_created_event_adds_once(self, board):
        created = event("taskCreated", task=task("t2", created_at="2026-10-02T10:00:00"))
        assert board.apply(created) is True
        assert board.apply(created) is False
        assert [t["id"] for t in board.ordered()] == ["t2", "t1"]

    def test_update_replaces_and_repeat_is_noop(self, board):
        updated = event("taskUpdated", task=task(title="Write better docs"))
        assert board.apply(updated) is True
        assert board.tasks["t1"]["title"] == "Write better docs"
        assert board.apply(updated) is False

    def test_delete_twice(self, board):
        deleted = event("taskDeleted", task_id="t1")
        assert board.apply(deleted) is True
        assert board.apply(deleted) is False
        assert board.tasks == {}

    def test_comment_events_are_idempotent(self, board):
        added = event("commentAdded", task_id="t1", comment={"id": "c1", "content": "hi"})
        assert board.apply(added) is True
        assert board.apply(added) is False
        assert [c["id"] for c in board.tasks["t1"]["comments"]] == ["c1"]

        removed = event("commentDeleted", task_id="t1", comment_id="c1")
        assert board.apply(removed) is True
        assert board.apply(removed) is False
        assert board.tasks["t1"]["comments"] == []

    def test_comment_on_unknown_task_is_ignored(self, board):
        added = event("commentAdded", task_id="missing", comment={"id": "c1"})
        assert board.apply(added) is False

    def test_other_workspace_events_are_ignored(self, board):
        foreign = {"type": "taskDeleted", "data": {"workspace_id": "ws-2", "task_id": "t1"}}
        assert board.apply(foreign) is False
        assert "t1" in board.tasks

    def test_unknown_event_is_ignored(self, board):
        assert board.apply({"type": "notification", "data": {"workspace_id": WS}}) is False

    def test_board_keeps_its_own_copy(self, board):
        payload = task("t3")
        board.apply(event("taskCreated", task=payload))
        payload["title"] = "mutated elsewhere"
        assert board.tasks["t3"]["title"] == "Write docs"
