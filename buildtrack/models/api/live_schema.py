# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Pydantic schemas for live sessions and the viewer overlay."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from buildtrack.models.api.profiles_schema import ProfileSummary
from buildtrack.models.api.projects_schema import ProjectSummary


class LiveSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    project_id: Optional[UUID] = None
    started_at: datetime
    note: Optional[str] = None
    mood: Optional[int] = None
    viewers_count: int = 0


class LiveCommentCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=500)


class LiveCommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    live_session_id: UUID
    user_id: UUID
    message: str
    created_at: datetime
    profile: Optional[ProfileSummary] = None


class StreamAnalyticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    live_session_id: UUID
    peak_viewers: int = 0
    total_views: int = 0
    total_chat_messages: int = 0


class LiveViewerOverlay(BaseModel):
    """Everything the live viewer page renders around a live session."""

    live_session: LiveSessionResponse
    streamer: Optional[ProfileSummary] = None
    project: Optional[ProjectSummary] = None
    elapsed_seconds: int
    comments: List[LiveCommentResponse] = Field(default_factory=list)
    analytics: Optional[StreamAnalyticsResponse] = None
    is_following: bool = False
    channel_points: int = 0


class ViewerCountResponse(BaseModel):
    live_session_id: UUID
    viewers_count: int


class ModerationActionCreate(BaseModel):
    target_user_id: UUID
    action_type: str = Field(..., pattern=r"^(timeout|ban|warn)$")
    duration: Optional[int] = Field(None, ge=1, description="Timeout length in seconds")
    reason: Optional[str] = Field(None, max_length=500)


class ModerationActionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    live_session_id: UUID
    moderator_id: UUID
    target_user_id: UUID
    action_type: str
    duration: Optional[int] = None
    reason: str
    created_at: datetime


class CleanupResponse(BaseModel):
    deleted_count: int


class ChannelPointsResponse(BaseModel):
    streamer_id: UUID
    points: int


class RedeemRequest(BaseModel):
    reward_id: str = Field(..., min_length=1, max_length=50)
    cost: int = Field(..., ge=1)


class RedeemResponse(BaseModel):
    reward_id: str
    remaining_points: int
