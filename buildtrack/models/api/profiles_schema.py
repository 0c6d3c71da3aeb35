# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Pydantic schemas for builder profiles."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ProfileSummary(BaseModel):
    """Minimal profile attached to feed rows, comments and chat messages."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(..., validation_alias=AliasChoices("user_id", "id"))
    handle: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class ProfileResponse(ProfileSummary):
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    github_username: Optional[str] = None
    created_at: datetime
    followers: int = Field(0, description="Number of followers")
    following: int = Field(0, description="Number of users followed")
    is_following: bool = Field(False, description="Whether the caller follows this builder")


class ProfileUpdate(BaseModel):
    """Profile upsert request; only provided fields are written."""

    handle: Optional[str] = Field(None, min_length=2, max_length=50, pattern=r"^[A-Za-z0-9_]+$")
    name: Optional[str] = Field(None, max_length=255)
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    github_username: Optional[str] = None


class CommunityBuilder(ProfileSummary):
    """Profile card for the community page."""

    bio: Optional[str] = None
    location: str = ""
    is_following: bool = False
    followers: int = 0
    following: int = 0
    total_build_time: int = Field(0, description="Total seconds across non-deleted sessions")
    session_count: int = 0
    projects: int = 0
    last_active: datetime
