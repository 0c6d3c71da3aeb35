# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""GitHub OAuth and REST API integration."""
import asyncio
import logging
import secrets
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from buildtrack.deps import Settings
from buildtrack.errors import UpstreamError, ValidationFailed

logger = logging.getLogger(__name__)

GITHUB_ACCEPT = "application/vnd.github.v3+json"
OAUTH_SCOPE = "repo user"


def _field(obj: Union[Dict[str, Any], BaseModel, None], name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, BaseModel):
        return getattr(obj, name, None)
    return obj.get(name)


def summarize_commits(commits: Iterable[Union[Dict[str, Any], BaseModel]]) -> Dict[str, int]:
    """
    Aggregate commit stats into session metrics.

    Args:
        commits: GitHub commit payloads (or ImportedCommit models) with
            optional ``stats`` and ``files``

    Returns:
        commits, additions, deletions, total_lines and files_changed
    """
    summary = {"commits": 0, "additions": 0, "deletions": 0, "total_lines": 0, "files_changed": 0}
    for commit in commits:
        stats = _field(commit, "stats")
        files = _field(commit, "files")
        summary["commits"] += 1
        summary["additions"] += _field(stats, "additions") or 0
        summary["deletions"] += _field(stats, "deletions") or 0
        summary["total_lines"] += _field(stats, "total") or 0
        summary["files_changed"] += len(files) if isinstance(files, list) else 0
    return summary


class GitHubService:
    """Thin async client for the parts of GitHub the timer needs."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        api_url: str = "https://api.github.com",
        oauth_url: str = "https://github.com/login/oauth",
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.api_url = api_url.rstrip("/")
        self.oauth_url = oauth_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "GitHubService":
        return cls(
            client_id=settings.github_client_id,
            client_secret=settings.github_client_secret,
            redirect_uri=settings.github_redirect_uri,
            api_url=settings.github_api_url,
            oauth_url=settings.github_oauth_url,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _headers(self, token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Accept": GITHUB_ACCEPT}

    def authorize_url(self, state: Optional[str] = None) -> Tuple[str, str]:
        """Build the OAuth authorize URL. Returns (url, state)."""
        state = state or secrets.token_urlsafe(16)
        params = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "scope": OAUTH_SCOPE,
                "state": state,
            }
        )
        return f"{self.oauth_url}/authorize?{params}", state

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """Trade an OAuth callback code for an access token."""
        if not code:
            raise ValidationFailed("Authorization code is required")
        if not self.is_configured:
            raise UpstreamError("GitHub OAuth is not configured")

        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.oauth_url}/access_token",
                    json={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                    },
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error(f"GitHub token exchange failed: {e}")
            raise UpstreamError("Failed to exchange code for token", detail=str(e))

        if not response.is_success:
            raise UpstreamError(
                "Failed to exchange code for token", detail=f"GitHub returned {response.status_code}"
            )
        data = response.json()
        if data.get("error") or not data.get("access_token"):
            raise UpstreamError(
                "Failed to exchange code for token",
                detail=data.get("error_description") or data.get("error") or "No access token returned",
            )
        return data

    async def _get(self, client: httpx.AsyncClient, token: str, path: str, **params) -> Any:
        try:
            response = await client.get(
                f"{self.api_url}{path}", headers=self._headers(token), params=params or None
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"GitHub request failed: {path}", detail=str(e))
        if not response.is_success:
            raise UpstreamError(
                f"GitHub request failed: {path}", detail=f"GitHub returned {response.status_code}"
            )
        return response.json()

    async def get_user(self, token: str) -> Dict[str, Any]:
        """The authenticated GitHub user."""
        async with self._client() as client:
            return await self._get(client, token, "/user")

    async def list_repos(self, token: str) -> List[Dict[str, Any]]:
        """Repositories of the authenticated user, most recently updated first."""
        async with self._client() as client:
            return await self._get(client, token, "/user/repos", sort="updated", per_page=100)

    async def commits_in_range(
        self, token: str, repo_full_name: str, since: datetime, until: datetime
    ) -> List[Dict[str, Any]]:
        """
        Commits to a repository between since and until, with per-commit stats.

        Each commit is re-fetched individually to get ``stats`` and ``files``;
        when that detail call fails the list entry is returned as is.
        """
        async with self._client() as client:
            commits = await self._get(
                client,
                token,
                f"/repos/{repo_full_name}/commits",
                since=since.isoformat(),
                until=until.isoformat(),
                per_page=100,
            )

            async def detail(commit: Dict[str, Any]) -> Dict[str, Any]:
                try:
                    return await self._get(
                        client, token, f"/repos/{repo_full_name}/commits/{commit['sha']}"
                    )
                except UpstreamError as e:
                    logger.warning(f"Using commit summary for {commit.get('sha')}: {e.detail}")
                    return commit

            return list(await asyncio.gather(*(detail(c) for c in commits)))
