# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Pydantic schemas for projects."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from buildtrack.models.api.profiles_schema import ProfileSummary


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    emoji: str = Field("🚀", max_length=16)
    color: str = Field("bg-purple-500", max_length=50)
    description: Optional[str] = None
    is_public: bool = True
    github_repo: Optional[str] = None
    website: Optional[str] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    emoji: Optional[str] = Field(None, max_length=16)
    color: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    is_public: Optional[bool] = None
    github_repo: Optional[str] = None
    website: Optional[str] = None


class ProjectSummary(BaseModel):
    """Project fields joined onto session rows."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    emoji: str
    color: str
    is_public: bool = True


class ProjectResponse(ProjectSummary):
    user_id: UUID
    description: Optional[str] = None
    github_repo: Optional[str] = None
    website: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CommunityProject(ProjectSummary):
    """Public project card with activity metrics."""

    description: Optional[str] = None
    creator: Optional[ProfileSummary] = None
    total_time: int = 0
    sessions: int = 0
    activity_score: int = 0
    last_activity: datetime
