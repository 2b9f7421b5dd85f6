"""
Real-time channel: the connection registry and the /ws endpoint.
"""

import uuid

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from conftest import API, PASSWORD, unique_email
from taskspace.core.config import settings
from taskspace.core.websocket import ConnectionManager, user_room, workspace_room


class FakeSocket:
    def __init__(self, fail: bool = False) -> None:
        self.accepted = False
        self.sent: list[dict] = []
        self.fail = fail

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, message: dict) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


# ---------------------------------------------------------------------------
# ConnectionManager
# ---------------------------------------------------------------------------

class TestConnectionManager:
    async def test_connect_joins_user_room(self):
        manager = ConnectionManager()
        socket = FakeSocket()
        user_id = uuid.uuid4()

        connection_id = await manager.connect(socket, user_id)

        assert socket.accepted
        assert manager.rooms_of(connection_id) == {user_room(user_id)}
        assert manager.user_of(connection_id) == str(user_id)
        assert manager.connection_count == 1

    async def test_emit_reaches_only_room_members(self):
        manager = ConnectionManager()
        inside, outside = FakeSocket(), FakeSocket()
        first = await manager.connect(inside, uuid.uuid4())
        await manager.connect(outside, uuid.uuid4())
        room = workspace_room(uuid.uuid4())
        manager.join(first, room)

        await manager.emit(room, "taskDeleted", {"task_id": "t1"})

        assert inside.sent == [{"type": "taskDeleted", "data": {"task_id": "t1"}}]
        assert outside.sent == []

    async def test_every_connection_of_a_user_gets_a_copy(self):
        manager = ConnectionManager()
        user_id = uuid.uuid4()
        tabs = [FakeSocket(), FakeSocket()]
        for tab in tabs:
            await manager.connect(tab, user_id)

        await manager.emit(user_room(user_id), "notification", {"id": "n1"})

        assert all(len(tab.sent) == 1 for tab in tabs)

    async def test_leave_and_disconnect_clean_up_rooms(self):
        manager = ConnectionManager()
        user_id = uuid.uuid4()
        connection_id = await manager.connect(FakeSocket(), user_id)
        room = workspace_room(uuid.uuid4())
        manager.join(connection_id, room)

        manager.leave(connection_id, room)
        assert manager.connections_in(room) == set()

        manager.disconnect(connection_id)
        assert manager.connections_in(user_room(user_id)) == set()
        assert manager.connection_count == 0
        # Repeated disconnects are harmless
        manager.disconnect(connection_id)

    async def test_leave_user_drops_only_that_users_connections(self):
        manager = ConnectionManager()
        user_id, other_id = uuid.uuid4(), uuid.uuid4()
        tabs = [await manager.connect(FakeSocket(), user_id) for _ in range(2)]
        bystander = await manager.connect(FakeSocket(), other_id)
        room = workspace_room(uuid.uuid4())
        for connection_id in [*tabs, bystander]:
            manager.join(connection_id, room)

        assert manager.leave_user(user_id, room) == 2

        assert manager.connections_in(room) == {bystander}
        for connection_id in tabs:
            assert manager.rooms_of(connection_id) == {user_room(user_id)}
        assert manager.leave_user(user_id, room) == 0

    async def test_failed_send_drops_connection(self):
        manager = ConnectionManager()
        user_id = uuid.uuid4()
        await manager.connect(FakeSocket(fail=True), user_id)

        await manager.emit(user_room(user_id), "notification", {})

        assert manager.connection_count == 0


# ---------------------------------------------------------------------------
# /ws endpoint
# ---------------------------------------------------------------------------

def signup(client: TestClient, name: str) -> dict:
    email = unique_email(name)
    resp = client.post(
        f"{API}/auth/signup",
        json={"email": email, "password": PASSWORD, "display_name": name.title()},
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    return {"id": data["user"]["id"], "token": data["access_token"]}


def headers(user: dict) -> dict:
    return {"Authorization": f"Bearer {user['token']}"}


def create_workspace(client: TestClient, owner: dict) -> dict:
    resp = client.post(f"{API}/workspaces", json={"name": "Live"}, headers=headers(owner))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def connect(client: TestClient, user: dict):
    return client.websocket_connect(f"{API}/ws?token={user['token']}")


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def test_invalid_token_is_rejected(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"{API}/ws?token=not-a-jwt") as ws:
            ws.receive_json()
    assert exc_info.value.code == 4001


def test_missing_token_is_rejected(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"{API}/ws") as ws:
            ws.receive_json()
    assert exc_info.value.code == 4001


def test_connected_greeting(client):
    user = signup(client, "alice")
    with connect(client, user) as ws:
        assert ws.receive_json() == {"type": "connected", "user_id": user["id"]}


def test_join_and_receive_task_events(client, app):
    owner = signup(client, "owner")
    workspace = create_workspace(client, owner)

    with connect(client, owner) as ws:
        ws.receive_json()
        ws.send_json({"type": "joinWorkspace", "workspace_id": workspace["id"]})
        assert ws.receive_json() == {
            "type": "joinedWorkspace",
            "data": {"workspace_id": workspace["id"]},
        }

        resp = client.post(
            f"{API}/tasks",
            json={"workspace_id": workspace["id"], "title": "Live task"},
            headers=headers(owner),
        )
        assert resp.status_code == 201

        event = ws.receive_json()
        assert event["type"] == "taskCreated"
        assert event["data"]["task"]["title"] == "Live task"
        assert event["data"]["workspace_id"] == workspace["id"]
        assert event["data"]["user_id"] == owner["id"]

        ws.send_json({"type": "leaveWorkspace", "workspace_id": workspace["id"]})
        assert ws.receive_json()["type"] == "leftWorkspace"
        manager = app.state.connections
        assert manager.connections_in(workspace_room(workspace["id"])) == set()


def test_assignee_receives_notification_in_user_room(client):
    owner = signup(client, "owner")
    member = signup(client, "member")
    workspace = create_workspace(client, owner)
    resp = client.post(
        f"{API}/workspaces/join/{workspace['invite_code']}", headers=headers(member)
    )
    assert resp.status_code == 200

    with connect(client, member) as ws:
        ws.receive_json()
        client.post(
            f"{API}/tasks",
            json={"workspace_id": workspace["id"], "title": "For you", "assignees": [member["id"]]},
            headers=headers(owner),
        )
        event = ws.receive_json()
        assert event["type"] == "notification"
        assert event["data"]["type"] == "assignment"
        assert event["data"]["user_id"] == member["id"]


def test_non_member_cannot_join(client, app):
    owner = signup(client, "owner")
    outsider = signup(client, "outsider")
    workspace = create_workspace(client, owner)

    with connect(client, outsider) as ws:
        ws.receive_json()
        ws.send_json({"type": "joinWorkspace", "workspace_id": workspace["id"]})
        reply = ws.receive_json()
        assert reply["type"] == "error"
        assert reply["data"]["code"] == "NOT_A_MEMBER"
        assert app.state.connections.connections_in(workspace_room(workspace["id"])) == set()


def test_membership_check_can_be_disabled(client, monkeypatch):
    monkeypatch.setattr(settings, "WS_REQUIRE_MEMBERSHIP_TO_JOIN", False)
    owner = signup(client, "owner")
    outsider = signup(client, "outsider")
    workspace = create_workspace(client, owner)

    with connect(client, outsider) as ws:
        ws.receive_json()
        ws.send_json({"type": "joinWorkspace", "workspace_id": workspace["id"]})
        assert ws.receive_json()["type"] == "joinedWorkspace"


@pytest.mark.parametrize(
    "frame, code",
    [
        ("not json", "INVALID_FRAME"),
        ("[1, 2]", "INVALID_FRAME"),
        ('{"type": "dance"}', "UNKNOWN_TYPE"),
        ('{"type": "joinWorkspace", "workspace_id": "nope"}', "INVALID_WORKSPACE_ID"),
        (f'{{"type": "joinWorkspace", "workspace_id": "{uuid.uuid4()}"}}', "WORKSPACE_NOT_FOUND"),
    ],
)
def test_bad_frames_get_error_replies(client, frame, code):
    user = signup(client, "alice")
    with connect(client, user) as ws:
        ws.receive_json()
        ws.send_text(frame)
        reply = ws.receive_json()
        assert reply == {"type": "error", "data": {"code": code, "message": reply["data"]["message"]}}
        # The connection stays usable after an error
        ws.send_text('{"type": "dance"}')
        assert ws.receive_json()["data"]["code"] == "UNKNOWN_TYPE"


def test_removed_member_stops_receiving_workspace_events(client, app):
    owner = signup(client, "owner")
    member = signup(client, "member")
    workspace = create_workspace(client, owner)
    resp = client.post(
        f"{API}/workspaces/join/{workspace['invite_code']}", headers=headers(member)
    )
    assert resp.status_code == 200
    room = workspace_room(workspace["id"])

    with connect(client, member) as ws:
        ws.receive_json()
        ws.send_json({"type": "joinWorkspace", "workspace_id": workspace["id"]})
        assert ws.receive_json()["type"] == "joinedWorkspace"
        assert len(app.state.connections.connections_in(room)) == 1

        resp = client.delete(
            f"{API}/workspaces/{workspace['id']}/members/{member['id']}", headers=headers(owner)
        )
        assert resp.status_code == 200
        assert app.state.connections.connections_in(room) == set()

        client.post(
            f"{API}/tasks",
            json={"workspace_id": workspace["id"], "title": "After removal"},
            headers=headers(owner),
        )
        # The next frame is the reply to this one, not a taskCreated event
        ws.send_text('{"type": "dance"}')
        assert ws.receive_json()["data"]["code"] == "UNKNOWN_TYPE"
