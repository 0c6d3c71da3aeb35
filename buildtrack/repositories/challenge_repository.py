# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Repository for Challenge operations."""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, delete, desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from buildtrack.models import database as db_models


class ChallengeRepository:
    """Repository for Challenge and ChallengeParticipant operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, name: str, **fields) -> db_models.Challenge:
        """Create a new challenge."""
        challenge = db_models.Challenge(name=name, **fields)
        self.db.add(challenge)
        await self.db.flush()
        return challenge

    async def list_active(self) -> List[db_models.Challenge]:
        """Active challenges with their participants, newest first."""
        result = await self.db.execute(
            select(db_models.Challenge)
            .options(selectinload(db_models.Challenge.participants))
            .where(db_models.Challenge.is_active.is_(True))
            .order_by(desc(db_models.Challenge.created_at))
        )
        return list(result.scalars().all())

    async def get_by_id(self, challenge_id: UUID) -> Optional[db_models.Challenge]:
        """Get challenge by ID."""
        result = await self.db.execute(
            select(db_models.Challenge)
            .options(selectinload(db_models.Challenge.participants))
            .where(db_models.Challenge.id == challenge_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_participant(
        self, challenge_id: UUID, user_id: UUID
    ) -> Optional[db_models.ChallengeParticipant]:
        result = await self.db.execute(
            select(db_models.ChallengeParticipant).where(
                and_(
                    db_models.ChallengeParticipant.challenge_id == challenge_id,
                    db_models.ChallengeParticipant.user_id == user_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def is_participant(self, challenge_id: UUID, user_id: UUID) -> bool:
        return await self.get_participant(challenge_id, user_id) is not None

    async def join(self, challenge_id: UUID, user_id: UUID) -> db_models.ChallengeParticipant:
        """Join a challenge. Joining twice returns the existing row."""
        existing = await self.get_participant(challenge_id, user_id)
        if existing is not None:
            return existing
        participant = db_models.ChallengeParticipant(challenge_id=challenge_id, user_id=user_id)
        try:
            async with self.db.begin_nested():
                self.db.add(participant)
        except IntegrityError:
            return await self.get_participant(challenge_id, user_id)
        return participant

    async def leave(self, challenge_id: UUID, user_id: UUID) -> bool:
        result = await self.db.execute(
            delete(db_models.ChallengeParticipant).where(
                and_(
                    db_models.ChallengeParticipant.challenge_id == challenge_id,
                    db_models.ChallengeParticipant.user_id == user_id,
                )
            )
        )
        await self.db.flush()
        return (result.rowcount or 0) > 0

    async def list_for_user(self, user_id: UUID) -> List[db_models.Challenge]:
        """Challenges the user has joined."""
        result = await self.db.execute(
            select(db_models.Challenge)
            .options(selectinload(db_models.Challenge.participants))
            .join(
                db_models.ChallengeParticipant,
                db_models.ChallengeParticipant.challenge_id == db_models.Challenge.id,
            )
            .where(db_models.ChallengeParticipant.user_id == user_id)
            .order_by(desc(db_models.ChallengeParticipant.joined_at))
        )
        return list(result.scalars().unique().all())

    async def update_progress(
        self, challenge_id: UUID, user_id: UUID, progress: int, score: Optional[int] = None
    ) -> Optional[db_models.ChallengeParticipant]:
        """Record a participant's progress (and optionally score)."""
        participant = await self.get_participant(challenge_id, user_id)
        if participant is None:
            return None
        participant.progress = progress
        if score is not None:
            participant.score = score
        await self.db.flush()
        return participant
