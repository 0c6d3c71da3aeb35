# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""End-to-end tests through the FastAPI app."""
import uuid

import pytest

from buildtrack.repositories import ChallengeRepository
from buildtrack.services.realtime import notifications_channel
from conftest import register


async def _me(client, headers) -> str:
    response = await client.get("/api/auth/me", headers=headers)
    assert response.status_code == 200
    return response.json()["id"]


async def _project(client, headers, name="Launch") -> str:
    response = await client.post("/api/projects", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def _session(client, headers, project_id, note="shipped it", duration=900) -> str:
    response = await client.post(
        "/api/sessions",
        json={"project_id": project_id, "duration": duration, "note": note, "mood": 4},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def test_health(app_client):
    response = await app_client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_requires_token(app_client):
    assert (await app_client.get("/api/feed")).status_code == 401
    bad = {"Authorization": "Bearer not-a-token"}
    assert (await app_client.get("/api/timer", headers=bad)).status_code == 401


async def test_register_login_and_profile(app_client):
    headers = await register(app_client, "alice", handle="alice")

    response = await app_client.post("/api/auth/login", json={"username": "alice", "password": "secret123"})
    assert response.status_code == 200
    response = await app_client.post("/api/auth/login", json={"username": "alice", "password": "wrong!!"})
    assert response.status_code == 401

    profile = await app_client.get("/api/profiles/alice", headers=headers)
    assert profile.status_code == 200
    assert profile.json()["handle"] == "alice"

    duplicate = await app_client.post(
        "/api/auth/register",
        json={"email": "alice@example.com", "username": "other", "password": "secret123"},
    )
    assert duplicate.status_code == 400


async def test_handle_conflict(app_client):
    await register(app_client, "alice", handle="alice")
    headers = await register(app_client, "bob")
    response = await app_client.put("/api/profiles/me", json={"handle": "alice"}, headers=headers)
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"


async def test_timer_to_feed(app_client, clock):
    headers = await register(app_client, "alice", handle="alice")
    project_id = await _project(app_client, headers)

    response = await app_client.post("/api/timer/start", json={"project_id": None}, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Select a project first"

    response = await app_client.post("/api/timer/start", json={"project_id": project_id}, headers=headers)
    assert response.json()["state"] == "running"
    clock.advance(125)
    await app_client.put("/api/timer/details", json={"note": "timer done", "mood": 5}, headers=headers)
    await app_client.post("/api/timer/end", headers=headers)

    result = (await app_client.post("/api/timer/confirm", headers=headers)).json()
    assert result["saved"] is True
    assert result["session"]["duration"] == 125
    assert result["timer"]["state"] == "idle"

    feed = (await app_client.get("/api/feed", params={"scope": "mine"}, headers=headers)).json()
    assert [item["duration"] for item in feed["items"]] == [125]
    assert feed["items"][0]["profile"]["handle"] == "alice"
    assert feed["has_more"] is False


async def test_unknown_feed_scope(app_client):
    headers = await register(app_client, "alice")
    response = await app_client.get("/api/feed", params={"scope": "everyone"}, headers=headers)
    assert response.status_code in (400, 422)


async def test_feed_cursor_pages(app_client):
    headers = await register(app_client, "alice", handle="alice")
    project_id = await _project(app_client, headers)
    for i in range(3):
        await _session(app_client, headers, project_id, note=f"day {i}")

    first = (await app_client.get("/api/feed", params={"limit": 2}, headers=headers)).json()
    assert first["has_more"] is True
    second = (
        await app_client.get(
            "/api/feed", params={"limit": 2, "cursor": first["next_cursor"]}, headers=headers
        )
    ).json()
    ids = [item["id"] for item in first["items"] + second["items"]]
    assert len(ids) == len(set(ids)) == 3


async def test_follow_kudos_and_comments(app_client):
    alice = await register(app_client, "alice", handle="alice")
    bob = await register(app_client, "bob", handle="bob")
    alice_id = await _me(app_client, alice)
    session_id = await _session(app_client, alice, await _project(app_client, alice))

    assert (await app_client.post(f"/api/profiles/{alice_id}/follow", headers=bob)).status_code == 204
    following = (await app_client.get("/api/feed", params={"scope": "following"}, headers=bob)).json()
    assert [item["id"] for item in following["items"]] == [session_id]

    liked = (await app_client.post(f"/api/sessions/{session_id}/kudos", headers=bob)).json()
    assert liked == {"session_id": session_id, "kudos_count": 1, "liked": True}
    again = (await app_client.post(f"/api/sessions/{session_id}/kudos", headers=bob)).json()
    assert again["kudos_count"] == 1

    comment = await app_client.post(
        f"/api/sessions/{session_id}/comments", json={"content": "  nice work  "}, headers=bob
    )
    assert comment.status_code == 201
    assert comment.json()["content"] == "nice work"

    unread = (await app_client.get("/api/notifications/unread-count", headers=alice)).json()
    assert unread["unread"] == 3
    types = {n["type"] for n in (await app_client.get("/api/notifications", headers=alice)).json()}
    assert types == {"follow", "kudos", "comment"}
    assert (await app_client.post("/api/notifications/read", headers=alice)).json()["unread"] == 0

    unliked = (await app_client.delete(f"/api/sessions/{session_id}/kudos", headers=bob)).json()
    assert unliked["kudos_count"] == 0
    assert unliked["liked"] is False


async def test_self_follow_rejected(app_client):
    headers = await register(app_client, "alice")
    user_id = await _me(app_client, headers)
    response = await app_client.post(f"/api/profiles/{user_id}/follow", headers=headers)
    assert response.status_code == 400


async def test_session_owner_only(app_client):
    alice = await register(app_client, "alice")
    bob = await register(app_client, "bob")
    session_id = await _session(app_client, alice, await _project(app_client, alice))

    response = await app_client.patch(f"/api/sessions/{session_id}", json={"note": "mine now"}, headers=bob)
    assert response.status_code in (403, 404)
    assert (await app_client.delete(f"/api/sessions/{session_id}", headers=alice)).status_code == 204
    assert (await app_client.get(f"/api/sessions/{session_id}", headers=alice)).status_code == 404


async def test_live_join_leave(app_client):
    streamer = await register(app_client, "alice", handle="alice")
    viewer = await register(app_client, "bob", handle="bob")
    streamer_id = await _me(app_client, streamer)
    project_id = await _project(app_client, streamer)

    state = (await app_client.post("/api/timer/live", json={"project_id": project_id}, headers=streamer)).json()
    assert state["is_live"] is True
    live_id = state["live_session_id"]

    live = (await app_client.get("/api/live", headers=viewer)).json()
    assert [row["id"] for row in live] == [live_id]

    joined = (await app_client.post(f"/api/live/{live_id}/join", headers=viewer)).json()
    assert joined["viewers_count"] == 1
    for _ in range(2):
        left = (await app_client.post(f"/api/live/{live_id}/leave", headers=viewer)).json()
        assert left["viewers_count"] == 0

    chat = await app_client.post(f"/api/live/{live_id}/comments", json={"message": "hello"}, headers=viewer)
    assert chat.status_code == 201
    overlay = (await app_client.get(f"/api/live/users/{streamer_id}/overlay", headers=viewer)).json()
    assert overlay["live_session"]["id"] == live_id
    assert [c["message"] for c in overlay["comments"]] == ["hello"]

    state = (await app_client.post("/api/timer/live", json={}, headers=streamer)).json()
    assert state["is_live"] is False
    response = await app_client.get(f"/api/live/users/{streamer_id}", headers=viewer)
    assert response.status_code == 404


async def test_banned_viewer_cannot_chat(app_client):
    streamer = await register(app_client, "alice")
    viewer = await register(app_client, "bob")
    viewer_id = await _me(app_client, viewer)
    project_id = await _project(app_client, streamer)
    live_id = (
        await app_client.post("/api/timer/live", json={"project_id": project_id}, headers=streamer)
    ).json()["live_session_id"]

    response = await app_client.post(
        f"/api/live/{live_id}/moderation",
        json={"target_user_id": viewer_id, "action_type": "ban", "reason": "spam"},
        headers=streamer,
    )
    assert response.status_code == 201
    chat = await app_client.post(f"/api/live/{live_id}/comments", json={"message": "hi"}, headers=viewer)
    assert chat.status_code == 403


async def test_challenges(app_client, session_factory):
    headers = await register(app_client, "alice")
    async with session_factory() as db:
        challenge = await ChallengeRepository(db).create("30 days of code", goal=30)
        await db.commit()
        challenge_id = str(challenge.id)

    joined = (await app_client.post(f"/api/challenges/{challenge_id}/join", headers=headers)).json()
    assert len(joined["participants"]) == 1
    mine = (await app_client.get("/api/challenges/mine", headers=headers)).json()
    assert [c["id"] for c in mine] == [challenge_id]
    assert (await app_client.delete(f"/api/challenges/{challenge_id}/join", headers=headers)).status_code == 204
    assert (await app_client.delete(f"/api/challenges/{challenge_id}/join", headers=headers)).status_code == 404


@pytest.mark.parametrize("path", ["/api/sessions/{id}", "/api/live/users/{id}", "/api/challenges/{id}"])
async def test_unknown_ids_are_404(app_client, path):
    headers = await register(app_client, "alice")
    response = await app_client.get(path.format(id=uuid.uuid4()), headers=headers)
    assert response.status_code == 404


async def test_github_requires_token(app_client):
    headers = await register(app_client, "alice")
    response = await app_client.get("/api/github/repos", headers=headers)
    assert response.status_code == 401


async def test_kudos_notification_pushed_after_commit(app_client, hub):
    alice = await register(app_client, "alice", handle="alice")
    bob = await register(app_client, "bob", handle="bob")
    alice_id = await _me(app_client, alice)
    session_id = await _session(app_client, alice, await _project(app_client, alice))

    async with hub.listen(notifications_channel(alice_id)) as queue:
        await app_client.post(f"/api/sessions/{session_id}/kudos", headers=bob)
        await app_client.post(f"/api/sessions/{session_id}/kudos", headers=bob)
        pushed = [queue.get_nowait() for _ in range(queue.qsize())]

    stored = (await app_client.get("/api/notifications", headers=alice)).json()
    assert [p["notification"]["id"] for p in pushed] == [n["id"] for n in stored]
    assert stored[0]["type"] == "kudos"


async def test_select_project_keeps_elapsed(app_client, clock):
    headers = await register(app_client, "alice")
    first = await _project(app_client, headers, name="First")
    second = await _project(app_client, headers, name="Second")

    await app_client.post("/api/timer/start", json={"project_id": first}, headers=headers)
    clock.advance(90)
    response = await app_client.put("/api/timer/project", json={"project_id": second}, headers=headers)
    assert response.status_code == 200
    assert response.json()["project_id"] == second
    assert response.json()["elapsed_seconds"] == 90

    other = await register(app_client, "bob")
    foreign = await _project(app_client, other)
    response = await app_client.put("/api/timer/project", json={"project_id": foreign}, headers=headers)
    assert response.status_code == 403

    result = (await app_client.post("/api/timer/confirm", headers=headers)).json()
    assert result["session"]["project_id"] == second
    assert result["session"]["duration"] == 90
