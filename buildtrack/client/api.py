# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Async HTTP client for the BuildTrack API.

Every call returns an ``ApiResult``. Expected failures (an error status,
a network error, a timeout) come back in ``error`` and are never raised.
"""
import logging
from datetime import datetime
from typing import Any, Dict, NamedTuple, Optional, Union
from uuid import UUID

import httpx

logger = logging.getLogger(__name__)

IdLike = Union[str, UUID]


class ApiResult(NamedTuple):
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        detail = body.get("error") or body.get("detail")
        if isinstance(detail, str):
            return detail
        if detail:
            return str(detail)
    return f"HTTP {response.status_code}"


class BuildTrackClient:
    """Wraps an httpx.AsyncClient with typed, non-raising calls."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "BuildTrackClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> ApiResult:
        """Send a request and fold any expected failure into ApiResult.error."""
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            response = await self._http.request(method, path, json=json, params=params, headers=headers)
        except httpx.TimeoutException:
            logger.warning(f"{method} {path} timed out")
            return ApiResult(error="Request timed out")
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            return ApiResult(error=str(e) or e.__class__.__name__)

        if response.is_error:
            return ApiResult(error=_error_message(response))
        if response.status_code == 204 or not response.content:
            return ApiResult(data=None)
        return ApiResult(data=response.json())

    # Auth

    async def login(self, username: str, password: str) -> ApiResult:
        """Log in and keep the token for later calls."""
        result = await self.request("POST", "/api/auth/login", json={"username": username, "password": password})
        if result.ok:
            self.token = result.data["access_token"]
        return result

    async def register(self, email: str, username: str, password: str, name: Optional[str] = None) -> ApiResult:
        result = await self.request(
            "POST",
            "/api/auth/register",
            json={"email": email, "username": username, "password": password, "name": name},
        )
        if result.ok:
            self.token = result.data["access_token"]
        return result

    async def me(self) -> ApiResult:
        return await self.request("GET", "/api/auth/me")

    # Profiles and projects

    async def get_profile(self, handle: Optional[str] = None) -> ApiResult:
        return await self.request("GET", f"/api/profiles/{handle or 'me'}")

    async def update_profile(self, **fields) -> ApiResult:
        return await self.request("PUT", "/api/profiles/me", json=fields)

    async def follow(self, user_id: IdLike) -> ApiResult:
        return await self.request("POST", f"/api/profiles/{user_id}/follow")

    async def unfollow(self, user_id: IdLike) -> ApiResult:
        return await self.request("DELETE", f"/api/profiles/{user_id}/follow")

    async def list_projects(self) -> ApiResult:
        return await self.request("GET", "/api/projects")

    async def create_project(self, name: str, **fields) -> ApiResult:
        return await self.request("POST", "/api/projects", json={"name": name, **fields})

    # Feed and engagement

    async def get_feed(
        self,
        scope: str = "mine",
        cursor: Optional[Union[str, datetime]] = None,
        limit: Optional[int] = None,
    ) -> ApiResult:
        if isinstance(cursor, datetime):
            cursor = cursor.isoformat()
        return await self.request("GET", "/api/feed", params={"scope": scope, "cursor": cursor, "limit": limit})

    async def give_kudos(self, session_id: IdLike) -> ApiResult:
        return await self.request("POST", f"/api/sessions/{session_id}/kudos")

    async def remove_kudos(self, session_id: IdLike) -> ApiResult:
        return await self.request("DELETE", f"/api/sessions/{session_id}/kudos")

    async def list_comments(self, session_id: IdLike) -> ApiResult:
        return await self.request("GET", f"/api/sessions/{session_id}/comments")

    async def add_comment(self, session_id: IdLike, content: str) -> ApiResult:
        return await self.request("POST", f"/api/sessions/{session_id}/comments", json={"content": content})

    async def session_stats(self) -> ApiResult:
        return await self.request("GET", "/api/sessions/stats")

    # Timer

    async def timer_state(self) -> ApiResult:
        return await self.request("GET", "/api/timer")

    async def start_timer(self, project_id: Optional[IdLike]) -> ApiResult:
        return await self.request(
            "POST", "/api/timer/start", json={"project_id": str(project_id) if project_id else None}
        )

    async def pause_timer(self) -> ApiResult:
        return await self.request("POST", "/api/timer/pause")

    async def resume_timer(self) -> ApiResult:
        return await self.request("POST", "/api/timer/resume")

    async def end_timer(self) -> ApiResult:
        return await self.request("POST", "/api/timer/end")

    async def confirm_end(self) -> ApiResult:
        return await self.request("POST", "/api/timer/confirm")

    async def toggle_live(self, project_id: Optional[IdLike] = None) -> ApiResult:
        return await self.request(
            "POST", "/api/timer/live", json={"project_id": str(project_id) if project_id else None}
        )

    # Live and notifications

    async def live_sessions(self) -> ApiResult:
        return await self.request("GET", "/api/live")

    async def live_overlay(self, streamer_id: IdLike) -> ApiResult:
        return await self.request("GET", f"/api/live/users/{streamer_id}/overlay")

    async def send_chat(self, live_session_id: IdLike, message: str) -> ApiResult:
        return await self.request("POST", f"/api/live/{live_session_id}/comments", json={"message": message})

    async def notifications(self, limit: int = 20) -> ApiResult:
        return await self.request("GET", "/api/notifications", params={"limit": limit})

    async def mark_notifications_read(self) -> ApiResult:
        return await self.request("POST", "/api/notifications/read")

    async def challenges(self) -> ApiResult:
        return await self.request("GET", "/api/challenges")
