# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Tests for the API client and the client-side feed pager."""
import uuid
from datetime import datetime, timedelta, timezone

import httpx
import pytest_asyncio

from buildtrack.client import ApiResult, BuildTrackClient, FeedPager

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _row(minutes_ago: int, **fields) -> dict:
    created = (NOW - timedelta(minutes=minutes_ago)).isoformat()
    row = {
        "id": str(uuid.uuid4()),
        "user_id": str(uuid.uuid4()),
        "project_id": str(uuid.uuid4()),
        "duration": 600,
        "mood": 3,
        "created_at": created,
        "updated_at": created,
        "kudos_count": 0,
        "comments_count": 0,
        "liked": False,
    }
    row.update(fields)
    return row


class FakeApi:
    """Serves /api/feed from a fixed list and records kudos calls."""

    def __init__(self, rows, kudos_status=200):
        self.rows = rows
        self.kudos_status = kudos_status
        self.kudos_calls = []
        self.feed_params = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/feed":
            params = dict(request.url.params)
            self.feed_params.append(params)
            limit = int(params.get("limit", 20))
            rows = self.rows
            if "cursor" in params:
                cursor = datetime.fromisoformat(params["cursor"])
                rows = [r for r in rows if datetime.fromisoformat(r["created_at"]) < cursor]
            return httpx.Response(200, json={"items": rows[:limit], "has_more": len(rows) > limit})
        if request.url.path.endswith("/kudos"):
            self.kudos_calls.append(request.method)
            if self.kudos_status >= 400:
                return httpx.Response(self.kudos_status, json={"error": "Kudos unavailable"})
            return httpx.Response(200, json={"liked": request.method == "POST"})
        if request.url.path.endswith("/comments"):
            return httpx.Response(200, json=[])
        return httpx.Response(404, json={"detail": "Not Found"})


@pytest_asyncio.fixture
async def make_pager():
    clients = []

    def factory(api, page_size=2):
        client = BuildTrackClient("http://api.test", token="tok", transport=httpx.MockTransport(api))
        clients.append(client)
        return FeedPager(client, scope="global", page_size=page_size)

    yield factory
    for client in clients:
        await client.aclose()


class TestApiResult:
    def test_ok(self):
        assert ApiResult(data=1).ok
        assert not ApiResult(error="boom").ok


class TestClient:
    async def test_error_status_becomes_message(self):
        api = FakeApi([])
        async with BuildTrackClient("http://api.test", transport=httpx.MockTransport(api)) as client:
            result = await client.request("GET", "/api/unknown")
        assert result.error == "Not Found"
        assert result.data is None

    async def test_timeout_is_not_raised(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        async with BuildTrackClient("http://api.test", transport=httpx.MockTransport(handler)) as client:
            result = await client.timer_state()
        assert result.error == "Request timed out"

    async def test_login_keeps_token(self):
        seen = []

        def handler(request):
            seen.append(request.headers.get("Authorization"))
            if request.url.path == "/api/auth/login":
                return httpx.Response(200, json={"access_token": "abc", "token_type": "bearer"})
            return httpx.Response(204)

        async with BuildTrackClient("http://api.test", transport=httpx.MockTransport(handler)) as client:
            assert (await client.login("alice", "secret123")).ok
            result = await client.unfollow(uuid.uuid4())

        assert result == ApiResult(data=None)
        assert seen == [None, "Bearer abc"]


class TestFeedPager:
    async def test_pages_until_short_page(self, make_pager):
        rows = [_row(i) for i in range(5)]
        api = FakeApi(rows)
        pager = make_pager(api)

        await pager.load_first()
        assert len(pager.items) == 2
        assert pager.has_more
        await pager.load_more()
        await pager.load_more()
        assert [str(i.id) for i in pager.items] == [r["id"] for r in rows]
        assert not pager.has_more

        await pager.load_more()
        assert len(api.feed_params) == 3
        assert api.feed_params[1]["cursor"] == rows[1]["created_at"]

    async def test_duplicate_rows_are_not_appended(self, make_pager):
        rows = [_row(0), _row(1)]
        api = FakeApi(rows)
        pager = make_pager(api)
        await pager.load_first()

        # The server ignores the cursor and returns the same rows again
        api.rows = rows
        pager.cursor = None
        await pager.load_more()
        assert len(pager.items) == 2

    async def test_load_first_resets(self, make_pager):
        pager = make_pager(FakeApi([_row(i) for i in range(3)]))
        await pager.load_first()
        await pager.load_more()
        await pager.load_first()
        assert len(pager.items) == 2
        assert pager.has_more

    async def test_like_then_unlike_restores_count(self, make_pager):
        row = _row(0, kudos_count=4)
        api = FakeApi([row])
        pager = make_pager(api)
        await pager.load_first()

        await pager.toggle_kudos(row["id"])
        assert (pager.items[0].liked, pager.items[0].kudos_count) == (True, 5)
        await pager.toggle_kudos(row["id"])
        assert (pager.items[0].liked, pager.items[0].kudos_count) == (False, 4)
        assert api.kudos_calls == ["POST", "DELETE"]

    async def test_failed_toggle_rolls_back(self, make_pager):
        rows = [_row(0, kudos_count=2), _row(1)]
        pager = make_pager(FakeApi(rows, kudos_status=503))
        await pager.load_first()
        before = [item.model_dump() for item in pager.items]

        result = await pager.toggle_kudos(rows[0]["id"])
        assert result.error == "Kudos unavailable"
        assert pager.error == "Kudos unavailable"
        assert [item.model_dump() for item in pager.items] == before

    async def test_unlike_never_goes_below_zero(self, make_pager):
        row = _row(0, liked=True, kudos_count=0)
        pager = make_pager(FakeApi([row]))
        await pager.load_first()
        await pager.toggle_kudos(row["id"])
        assert pager.items[0].kudos_count == 0

    async def test_toggle_unknown_row(self, make_pager):
        pager = make_pager(FakeApi([]))
        await pager.load_first()
        assert (await pager.toggle_kudos(uuid.uuid4())).error == "Session not in feed"
        assert not pager.has_more
