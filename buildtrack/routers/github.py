# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""GitHub integration router: OAuth and commit import for the timer."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel, Field

from buildtrack.deps import Settings, get_settings
from buildtrack.middleware.auth import get_current_active_user
from buildtrack.models.api import ImportedCommit, SessionMetrics
from buildtrack.models.database import User
from buildtrack.services.github import GitHubService, summarize_commits

router = APIRouter(prefix="/api/github", tags=["github"])
logger = logging.getLogger(__name__)


class AuthorizeUrlResponse(BaseModel):
    url: str
    state: str


class CodeExchange(BaseModel):
    code: str = Field(..., min_length=1)
    state: Optional[str] = None


class GitHubToken(BaseModel):
    access_token: str
    token_type: Optional[str] = "bearer"
    scope: Optional[str] = None


class CommitImport(BaseModel):
    """Commits in a time range plus their aggregate metrics."""

    repo: str
    commits: List[ImportedCommit]
    metrics: SessionMetrics


def get_github_service(settings: Settings = Depends(get_settings)) -> GitHubService:
    return GitHubService.from_settings(settings)


def get_github_token(
    x_github_token: Optional[str] = Header(None),
    token: Optional[str] = Query(None, description="GitHub access token"),
) -> str:
    """GitHub access token from the X-GitHub-Token header or the token query parameter."""
    github_token = x_github_token or token
    if not github_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="GitHub token required")
    return github_token


def _imported(repo: str, commit: Dict[str, Any]) -> ImportedCommit:
    return ImportedCommit(
        sha=commit["sha"],
        message=(commit.get("commit") or {}).get("message"),
        repo=repo,
        stats=commit.get("stats"),
        files=[
            {
                "filename": f.get("filename", ""),
                "additions": f.get("additions", 0),
                "deletions": f.get("deletions", 0),
                "changes": f.get("changes", 0),
            }
            for f in commit.get("files") or []
        ],
    )


@router.get("/authorize-url", response_model=AuthorizeUrlResponse)
async def get_authorize_url(
    github: GitHubService = Depends(get_github_service),
    current_user: User = Depends(get_current_active_user),
):
    """OAuth authorize URL with a fresh random state."""
    if not github.is_configured:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="GitHub is not configured")
    url, state = github.authorize_url()
    return AuthorizeUrlResponse(url=url, state=state)


@router.post("/callback", response_model=GitHubToken)
async def exchange_code(
    request: CodeExchange,
    github: GitHubService = Depends(get_github_service),
):
    """Exchange the OAuth callback code for an access token."""
    data = await github.exchange_code(request.code)
    return GitHubToken(
        access_token=data["access_token"],
        token_type=data.get("token_type", "bearer"),
        scope=data.get("scope"),
    )


@router.get("/user")
async def get_github_user(
    token: str = Depends(get_github_token),
    github: GitHubService = Depends(get_github_service),
    current_user: User = Depends(get_current_active_user),
):
    return await github.get_user(token)


@router.get("/repos")
async def list_repos(
    token: str = Depends(get_github_token),
    github: GitHubService = Depends(get_github_service),
    current_user: User = Depends(get_current_active_user),
):
    """Repositories of the GitHub user, most recently updated first."""
    return await github.list_repos(token)


@router.get("/repos/{owner}/{repo}/commits", response_model=CommitImport)
async def list_commits(
    owner: str,
    repo: str,
    since: datetime = Query(...),
    until: datetime = Query(...),
    token: str = Depends(get_github_token),
    github: GitHubService = Depends(get_github_service),
    current_user: User = Depends(get_current_active_user),
):
    """Commits made between since and until, with per-commit stats."""
    if since > until:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="since must be before until")

    full_name = f"{owner}/{repo}"
    raw = await github.commits_in_range(token, full_name, since, until)
    commits = [_imported(full_name, c) for c in raw]
    metrics = SessionMetrics(**summarize_commits(commits), repos=[full_name] if commits else [])
    logger.info(f"Imported {len(commits)} commits from {full_name} for {current_user.id}")
    return CommitImport(repo=full_name, commits=commits, metrics=metrics)
