# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Challenges router."""
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.database import get_db
from buildtrack.middleware.auth import get_current_active_user
from buildtrack.models.api import ChallengeResponse, ParticipantResponse, ProgressUpdate
from buildtrack.models.database import User
from buildtrack.repositories import ChallengeRepository

router = APIRouter(prefix="/api/challenges", tags=["challenges"])
logger = logging.getLogger(__name__)


async def _get_active_challenge(repo: ChallengeRepository, challenge_id: UUID):
    challenge = await repo.get_by_id(challenge_id)
    if challenge is None or not challenge.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Challenge not found")
    return challenge


@router.get("", response_model=List[ChallengeResponse])
async def list_challenges(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Active challenges with their participants."""
    challenges = await ChallengeRepository(db).list_active()
    return [ChallengeResponse.model_validate(c) for c in challenges]


@router.get("/mine", response_model=List[ChallengeResponse])
async def list_my_challenges(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Challenges the caller has joined."""
    challenges = await ChallengeRepository(db).list_for_user(current_user.id)
    return [ChallengeResponse.model_validate(c) for c in challenges]


@router.get("/{challenge_id}", response_model=ChallengeResponse)
async def get_challenge(
    challenge_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    challenge = await ChallengeRepository(db).get_by_id(challenge_id)
    if challenge is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Challenge not found")
    return ChallengeResponse.model_validate(challenge)


@router.post("/{challenge_id}/join", response_model=ChallengeResponse)
async def join_challenge(
    challenge_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Join a challenge. Joining twice is a no-op."""
    repo = ChallengeRepository(db)
    await _get_active_challenge(repo, challenge_id)
    await repo.join(challenge_id, current_user.id)
    await db.commit()
    logger.info(f"{current_user.id} joined challenge {challenge_id}")
    return ChallengeResponse.model_validate(await repo.get_by_id(challenge_id))


@router.delete("/{challenge_id}/join", status_code=status.HTTP_204_NO_CONTENT)
async def leave_challenge(
    challenge_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Leave a challenge."""
    if not await ChallengeRepository(db).leave(challenge_id, current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not a participant")
    await db.commit()


@router.put("/{challenge_id}/progress", response_model=ParticipantResponse)
async def update_progress(
    challenge_id: UUID,
    request: ProgressUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Record the caller's progress in a joined challenge."""
    repo = ChallengeRepository(db)
    await _get_active_challenge(repo, challenge_id)
    if not await repo.is_participant(challenge_id, current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not a participant")
    participant = await repo.update_progress(
        challenge_id, current_user.id, request.progress, request.score
    )
    await db.commit()
    return ParticipantResponse.model_validate(participant)
