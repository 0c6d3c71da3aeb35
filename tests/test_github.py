# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Tests for the GitHub integration, using httpx.MockTransport."""
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from buildtrack.errors import UpstreamError, ValidationFailed
from buildtrack.models.api import ImportedCommit
from buildtrack.services.github import GitHubService, summarize_commits


def _service(handler) -> GitHubService:
    return GitHubService(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:3000/auth/github/callback",
        transport=httpx.MockTransport(handler),
    )


def test_summarize_commits_mixes_dicts_and_models():
    commits = [
        {"sha": "a", "stats": {"additions": 3, "deletions": 1, "total": 4}, "files": [{}, {}]},
        {"sha": "b"},
        ImportedCommit(sha="c", repo="me/app", stats={"additions": 2, "deletions": 0, "total": 2}),
    ]
    assert summarize_commits(commits) == {
        "commits": 3,
        "additions": 5,
        "deletions": 1,
        "total_lines": 6,
        "files_changed": 2,
    }


def test_summarize_nothing():
    assert summarize_commits([])["commits"] == 0


def test_authorize_url():
    url, state = _service(lambda request: httpx.Response(500)).authorize_url(state="abc")
    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    assert parsed.path == "/login/oauth/authorize"
    assert query["client_id"] == ["client-id"]
    assert query["scope"] == ["repo user"]
    assert state == "abc"


async def test_exchange_code_success():
    def handler(request):
        assert request.url.path == "/login/oauth/access_token"
        return httpx.Response(200, json={"access_token": "gho_123", "token_type": "bearer"})

    data = await _service(handler).exchange_code("the-code")
    assert data["access_token"] == "gho_123"


async def test_exchange_code_error_payload():
    def handler(request):
        return httpx.Response(
            200, json={"error": "bad_verification_code", "error_description": "The code is incorrect"}
        )

    with pytest.raises(UpstreamError) as exc_info:
        await _service(handler).exchange_code("stale")
    assert exc_info.value.detail == "The code is incorrect"


async def test_exchange_code_requires_code():
    with pytest.raises(ValidationFailed):
        await _service(lambda request: httpx.Response(200)).exchange_code("")


async def test_exchange_code_unconfigured():
    service = GitHubService(client_id="", client_secret="", redirect_uri="")
    with pytest.raises(UpstreamError):
        await service.exchange_code("code")


async def test_commits_in_range_falls_back_to_summary():
    def handler(request):
        path = request.url.path
        if path == "/repos/me/app/commits":
            assert request.headers["Authorization"] == "Bearer tok"
            return httpx.Response(200, json=[{"sha": "good"}, {"sha": "broken"}])
        if path == "/repos/me/app/commits/good":
            return httpx.Response(200, json={"sha": "good", "stats": {"additions": 1, "deletions": 0, "total": 1}})
        return httpx.Response(502)

    since = datetime(2026, 10, 1, tzinfo=timezone.utc)
    until = datetime(2026, 10, 2, tzinfo=timezone.utc)
    commits = await _service(handler).commits_in_range("tok", "me/app", since, until)

    assert [c["sha"] for c in commits] == ["good", "broken"]
    assert commits[0]["stats"]["total"] == 1
    assert "stats" not in commits[1]


async def test_list_repos_http_error():
    with pytest.raises(UpstreamError):
        await _service(lambda request: httpx.Response(401)).list_repos("tok")
