"""
Notification listing and read state.
"""

import uuid

from conftest import API, auth, create_task, create_workspace, join_workspace, signup


async def assigned_member(client, tasks=2):
    owner = await signup(client, "owner")
    member = await signup(client, "member")
    workspace = await create_workspace(client, owner)
    await join_workspace(client, workspace, member)
    for i in range(tasks):
        await create_task(client, workspace, owner, title=f"Task {i}", assignees=[member["id"]])
    return owner, member


async def test_list_newest_first_with_unread_count(client):
    _, member = await assigned_member(client)

    resp = await client.get(f"{API}/notifications", headers=auth(member))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["unread_count"] == 2
    assert ['"Task 1"' in n["message"] for n in data["items"]] == [True, False]


async def test_mark_one_read(client):
    _, member = await assigned_member(client)
    items = (await client.get(f"{API}/notifications", headers=auth(member))).json()["data"]["items"]

    resp = await client.patch(f"{API}/notifications/{items[0]['id']}/read", headers=auth(member))
    assert resp.status_code == 200
    assert resp.json()["data"]["is_read"] is True

    resp = await client.get(f"{API}/notifications?unread=true", headers=auth(member))
    data = resp.json()["data"]
    assert data["unread_count"] == 1
    assert [n["id"] for n in data["items"]] == [items[1]["id"]]


async def test_cannot_mark_someone_elses_notification(client):
    owner, member = await assigned_member(client, tasks=1)
    items = (await client.get(f"{API}/notifications", headers=auth(member))).json()["data"]["items"]

    resp = await client.patch(f"{API}/notifications/{items[0]['id']}/read", headers=auth(owner))
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "NOTIFICATION_NOT_FOUND"


async def test_mark_unknown_notification(client):
    user = await signup(client)
    resp = await client.patch(f"{API}/notifications/{uuid.uuid4()}/read", headers=auth(user))
    assert resp.status_code == 404


async def test_mark_all_read(client):
    _, member = await assigned_member(client)

    resp = await client.post(f"{API}/notifications/mark-all-read", headers=auth(member))
    assert resp.status_code == 200
    assert resp.json()["data"]["updated"] == 2

    resp = await client.get(f"{API}/notifications", headers=auth(member))
    assert resp.json()["data"]["unread_count"] == 0

    resp = await client.post(f"{API}/notifications/mark-all-read", headers=auth(member))
    assert resp.json()["data"]["updated"] == 0
