# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Pydantic schemas for sessions, feed rows, kudos and comments."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from buildtrack.models.api.profiles_schema import ProfileSummary
from buildtrack.models.api.projects_schema import ProjectSummary


class SessionMetrics(BaseModel):
    """Commit-derived metrics attached to a finished session."""

    commits: int = 0
    additions: int = 0
    deletions: int = 0
    total_lines: int = 0
    files_changed: int = 0
    repos: List[str] = Field(default_factory=list)


class SessionCreate(BaseModel):
    project_id: UUID
    duration: int = Field(..., ge=0, description="Duration in seconds")
    note: Optional[str] = None
    mood: int = Field(3, ge=1, le=5)


class SessionUpdate(BaseModel):
    note: Optional[str] = None
    mood: Optional[int] = Field(None, ge=1, le=5)


class SessionProjectSwitch(BaseModel):
    project_id: UUID


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    project_id: UUID
    duration: int
    note: Optional[str] = None
    mood: int
    metrics: Optional[dict] = None
    created_at: datetime
    updated_at: datetime


class FeedItem(SessionResponse):
    """Session row enriched for the activity feed."""

    profile: Optional[ProfileSummary] = None
    project: Optional[ProjectSummary] = None
    kudos_count: int = 0
    comments_count: int = 0
    liked: bool = False


class FeedPage(BaseModel):
    items: List[FeedItem]
    next_cursor: Optional[datetime] = Field(
        None, description="created_at of the last row; pass back as cursor for the next page"
    )
    has_more: bool


class SessionStats(BaseModel):
    """Aggregates over the last seven days."""

    total_seconds: int
    session_count: int
    average_mood: Optional[float] = None
    days_active: int


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: UUID
    user_id: UUID
    content: str
    created_at: datetime
    profile: Optional[ProfileSummary] = None


class KudosResponse(BaseModel):
    session_id: UUID
    kudos_count: int
    liked: bool


class ReportCreate(BaseModel):
    entity_type: str = Field(..., pattern=r"^(session|comment|profile|live_session)$")
    entity_id: UUID
    reason: str = Field(..., min_length=1, max_length=100)
    details: Optional[str] = None
