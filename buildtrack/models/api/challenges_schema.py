# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Pydantic schemas for challenges."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ParticipantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    challenge_id: UUID
    user_id: UUID
    progress: int
    score: int
    joined_at: datetime


class ChallengeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: Optional[str] = None
    emoji: str
    color: str
    duration: int
    goal: int
    is_active: bool
    created_at: datetime
    participants: List[ParticipantResponse] = Field(default_factory=list)


class ProgressUpdate(BaseModel):
    progress: int = Field(..., ge=0)
    score: Optional[int] = Field(None, ge=0)
