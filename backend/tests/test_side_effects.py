"""
Failures after the primary commit must not undo it or block later steps.
"""

import uuid

import pytest
from sqlalchemy import func, select

from conftest import API, auth, create_task, create_workspace, join_workspace, signup
from taskspace.core.dependencies import get_broadcaster
from taskspace.core.exceptions import Conflict, ExternalDependencyFailure
from taskspace.core.security import hash_password
from taskspace.models import ActivityLog, Notification, Task, User
from taskspace.services.activity_service import ActivityService
from taskspace.services.notification_service import NotificationService
from taskspace.services.pipeline import commit_primary


class ExplodingBroadcaster:
    def __init__(self) -> None:
        self.attempts = 0

    async def emit(self, room, event, data):
        self.attempts += 1
        raise ConnectionError("channel down")

    def leave_user(self, user_id, room):
        self.attempts += 1
        raise ConnectionError("channel down")


@pytest.fixture
def exploding(app):
    broadcaster = ExplodingBroadcaster()
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    return broadcaster


async def count(session_factory, model, **filters):
    async with session_factory() as db:
        stmt = select(func.count()).select_from(model)
        for name, value in filters.items():
            stmt = stmt.where(getattr(model, name) == value)
        return await db.scalar(stmt)


async def test_broadcast_failure_keeps_mutation(client, session_factory, exploding):
    owner = await signup(client, "owner")
    member = await signup(client, "member")
    workspace = await create_workspace(client, owner)
    await join_workspace(client, workspace, member)

    task = await create_task(client, workspace, owner, assignees=[member["id"]])

    # One notification push and one workspace event were attempted
    assert exploding.attempts == 2
    task_id = uuid.UUID(task["id"])
    assert await count(session_factory, Task, id=task_id) == 1
    assert await count(session_factory, ActivityLog, task_id=task_id) == 1
    assert await count(session_factory, Notification, task_id=task_id) == 1


async def test_activity_failure_keeps_task_and_notifications(
    client, session_factory, broadcaster, monkeypatch
):
    owner = await signup(client, "owner")
    member = await signup(client, "member")
    workspace = await create_workspace(client, owner)
    await join_workspace(client, workspace, member)

    async def broken_write(self, entry):
        raise RuntimeError("activity store down")

    monkeypatch.setattr(ActivityService, "_write", broken_write)

    resp = await client.post(
        f"{API}/tasks",
        json={"workspace_id": workspace["id"], "title": "Survives", "assignees": [member["id"]]},
        headers=auth(owner),
    )
    assert resp.status_code == 201
    task_id = uuid.UUID(resp.json()["data"]["id"])

    async with session_factory() as db:
        stored = await db.get(Task, task_id)
        assert stored is not None
        assert stored.title == "Survives"
    assert await count(session_factory, ActivityLog, task_id=task_id) == 0
    assert await count(session_factory, Notification, task_id=task_id) == 1
    assert [name for _, name, _ in broadcaster.events] == ["notification", "taskCreated"]


async def test_activity_failure_does_not_block_delete(client, session_factory, monkeypatch):
    owner = await signup(client, "owner")
    workspace = await create_workspace(client, owner)
    task = await create_task(client, workspace, owner)

    async def broken_write(self, entry):
        raise RuntimeError("activity store down")

    monkeypatch.setattr(ActivityService, "_write", broken_write)

    resp = await client.delete(f"{API}/tasks/{task['id']}", headers=auth(owner))
    assert resp.status_code == 200
    assert await count(session_factory, Task, id=uuid.UUID(task["id"])) == 0


async def test_notification_failure_still_broadcasts(client, session_factory, broadcaster, monkeypatch):
    owner = await signup(client, "owner")
    member = await signup(client, "member")
    workspace = await create_workspace(client, owner)
    await join_workspace(client, workspace, member)

    async def broken_create(self, items):
        raise RuntimeError("notification store down")

    monkeypatch.setattr(NotificationService, "create_many", broken_create)

    task = await create_task(client, workspace, owner, assignees=[member["id"]])

    task_id = uuid.UUID(task["id"])
    assert await count(session_factory, Task, id=task_id) == 1
    assert await count(session_factory, ActivityLog, task_id=task_id) == 1
    assert [name for _, name, _ in broadcaster.events] == ["taskCreated"]


async def test_eviction_failure_keeps_removal(client, session_factory, exploding):
    owner = await signup(client, "owner")
    member = await signup(client, "member")
    workspace = await create_workspace(client, owner)
    await join_workspace(client, workspace, member)

    resp = await client.delete(
        f"{API}/workspaces/{workspace['id']}/members/{member['id']}", headers=auth(owner)
    )

    assert resp.status_code == 200
    assert exploding.attempts == 1
    resp = await client.get(f"{API}/workspaces/{workspace['id']}", headers=auth(member))
    assert resp.status_code == 403


class TestCommitPrimary:
    @staticmethod
    def duplicate_of(email):
        return User(email=email, password_hash=hash_password("secret-pass1"), display_name="Dup")

    async def test_unique_violation_raises_given_conflict(self, client, session_factory):
        user = await signup(client)
        async with session_factory() as db:
            db.add(self.duplicate_of(user["email"]))
            with pytest.raises(Conflict) as exc_info:
                await commit_primary(
                    db, "user", conflict=Conflict("taken", code="EMAIL_TAKEN")
                )
        assert exc_info.value.code == "EMAIL_TAKEN"
        assert await count(session_factory, User, email=user["email"]) == 1

    async def test_unique_violation_without_conflict_is_store_failure(
        self, client, session_factory
    ):
        user = await signup(client)
        async with session_factory() as db:
            db.add(self.duplicate_of(user["email"]))
            with pytest.raises(ExternalDependencyFailure):
                await commit_primary(db, "user")
