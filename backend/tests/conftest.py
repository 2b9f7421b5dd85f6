"""
Pytest configuration for TaskSpace backend tests.

Each test gets a fresh SQLite database file, an application built by
``create_app()`` whose session factory and file storage point at that
test's temporary directory, and an httpx client speaking ASGI directly.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["RESEND_API_KEY"] = ""

import uuid
from typing import Any

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from taskspace.core.database import get_session_factory
from taskspace.core.dependencies import get_broadcaster, get_file_storage
from taskspace.core.storage import LocalFileStorage
from taskspace.main import create_app
from taskspace.models import Base

API = "/api/v1"
PASSWORD = "password123"


class RecordingBroadcaster:
    """Keeps every emitted event instead of sending it."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []
        self.left: list[tuple[str, str]] = []

    async def emit(self, room: str, event: str, data: dict[str, Any]) -> None:
        self.events.append((room, event, data))

    def leave_user(self, user_id, room: str) -> int:
        self.left.append((str(user_id), room))
        return 0

    def named(self, event: str) -> list[tuple[str, dict[str, Any]]]:
        return [(room, data) for room, name, data in self.events if name == event]


# ---------------------------------------------------------------------------
# Database and application
# ---------------------------------------------------------------------------

@pytest.fixture
def database_url(tmp_path) -> str:
    path = tmp_path / "taskspace.db"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    engine.dispose()
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture
def session_factory(database_url) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(database_url, poolclass=NullPool)
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def storage(tmp_path) -> LocalFileStorage:
    return LocalFileStorage(root=tmp_path / "uploads")


@pytest.fixture
def app(session_factory, storage):
    application = create_app()
    application.dependency_overrides[get_session_factory] = lambda: session_factory
    application.dependency_overrides[get_file_storage] = lambda: storage
    return application


@pytest.fixture
def broadcaster(app) -> RecordingBroadcaster:
    recorder = RecordingBroadcaster()
    app.dependency_overrides[get_broadcaster] = lambda: recorder
    return recorder


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def unique_email(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}@example.com"


def auth(user: dict[str, Any]) -> dict[str, str]:
    return {"Authorization": f"Bearer {user['token']}"}


async def signup(client: httpx.AsyncClient, name: str = "user") -> dict[str, Any]:
    """Register a user and return ``{"id", "email", "token"}``."""
    email = unique_email(name)
    resp = await client.post(
        f"{API}/auth/signup",
        json={"email": email, "password": PASSWORD, "display_name": name.title()},
    )
    assert resp.status_code == 201, f"Signup failed: {resp.text}"
    data = resp.json()["data"]
    return {"id": data["user"]["id"], "email": email, "token": data["access_token"]}


async def create_workspace(
    client: httpx.AsyncClient, owner: dict[str, Any], name: str = "Team"
) -> dict[str, Any]:
    resp = await client.post(f"{API}/workspaces", json={"name": name}, headers=auth(owner))
    assert resp.status_code == 201, f"Create workspace failed: {resp.text}"
    return resp.json()["data"]


async def join_workspace(
    client: httpx.AsyncClient, workspace: dict[str, Any], user: dict[str, Any]
) -> dict[str, Any]:
    resp = await client.post(
        f"{API}/workspaces/join/{workspace['invite_code']}", headers=auth(user)
    )
    assert resp.status_code == 200, f"Join failed: {resp.text}"
    return resp.json()["data"]


async def set_role(
    client: httpx.AsyncClient,
    workspace: dict[str, Any],
    admin: dict[str, Any],
    user: dict[str, Any],
    role: str,
) -> None:
    resp = await client.patch(
        f"{API}/workspaces/{workspace['id']}/members/{user['id']}",
        json={"role": role},
        headers=auth(admin),
    )
    assert resp.status_code == 200, f"Role change failed: {resp.text}"


async def create_task(
    client: httpx.AsyncClient,
    workspace: dict[str, Any],
    user: dict[str, Any],
    **fields: Any,
) -> dict[str, Any]:
    body = {"workspace_id": workspace["id"], "title": "Write tests", **fields}
    resp = await client.post(f"{API}/tasks", json=body, headers=auth(user))
    assert resp.status_code == 201, f"Create task failed: {resp.text}"
    return resp.json()["data"]
