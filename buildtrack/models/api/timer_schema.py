# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Pydantic schemas for the session timer."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from buildtrack.models.api.sessions_schema import SessionMetrics, SessionResponse


class TimerStart(BaseModel):
    project_id: Optional[str] = Field(None, description="Project to log the session against")


class TimerDetails(BaseModel):
    """Note and mood edited while the session runs or in the end dialog."""

    note: Optional[str] = None
    mood: Optional[int] = Field(None, ge=1, le=5)


class TimerProjectSelect(BaseModel):
    """Change the project of the current session without resetting its time."""

    project_id: str


class TimerLiveToggle(BaseModel):
    project_id: Optional[str] = None


class CommitStats(BaseModel):
    total: int = 0
    additions: int = 0
    deletions: int = 0


class CommitFile(BaseModel):
    filename: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0


class ImportedCommit(BaseModel):
    """A commit pulled from the code host to attach to the running session."""

    sha: str
    message: Optional[str] = None
    repo: Optional[str] = None
    stats: Optional[CommitStats] = None
    files: List[CommitFile] = Field(default_factory=list)


class TimerState(BaseModel):
    state: str
    project_id: Optional[UUID] = None
    elapsed_seconds: int
    started_at: Optional[datetime] = None
    is_paused: bool
    is_live: bool
    live_session_id: Optional[UUID] = None
    note: str = ""
    mood: int = 3
    commits_attached: int = 0


class TimerEndResult(BaseModel):
    """Outcome of confirming the end dialog."""

    saved: bool
    session: Optional[SessionResponse] = None
    metrics: Optional[SessionMetrics] = None
    error: Optional[str] = None
    timer: TimerState
