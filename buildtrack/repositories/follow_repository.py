# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Repository for Follow operations."""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, delete, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.models import database as db_models


class FollowRepository:
    """Repository for Follow operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def follow(self, follower_id: UUID, following_id: UUID) -> Optional[db_models.Follow]:
        """Create a follow edge. Returns None if it already exists."""
        if await self.is_following(follower_id, following_id):
            return None
        follow = db_models.Follow(follower_id=follower_id, following_id=following_id)
        try:
            async with self.db.begin_nested():
                self.db.add(follow)
        except IntegrityError:
            return None
        return follow

    async def unfollow(self, follower_id: UUID, following_id: UUID) -> bool:
        """Remove a follow edge."""
        result = await self.db.execute(
            delete(db_models.Follow).where(
                and_(
                    db_models.Follow.follower_id == follower_id,
                    db_models.Follow.following_id == following_id,
                )
            )
        )
        await self.db.flush()
        return (result.rowcount or 0) > 0

    async def get(self, follower_id: UUID, following_id: UUID) -> Optional[db_models.Follow]:
        """Get the follow edge between two users."""
        result = await self.db.execute(
            select(db_models.Follow).where(
                and_(
                    db_models.Follow.follower_id == follower_id,
                    db_models.Follow.following_id == following_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def is_following(self, follower_id: UUID, following_id: UUID) -> bool:
        return await self.get(follower_id, following_id) is not None

    async def followers_count(self, user_id: UUID) -> int:
        """Number of users following user_id."""
        result = await self.db.execute(
            select(func.count(db_models.Follow.id)).where(db_models.Follow.following_id == user_id)
        )
        return result.scalar_one() or 0

    async def following_count(self, user_id: UUID) -> int:
        """Number of users user_id follows."""
        result = await self.db.execute(
            select(func.count(db_models.Follow.id)).where(db_models.Follow.follower_id == user_id)
        )
        return result.scalar_one() or 0

    async def following_ids(self, user_id: UUID) -> List[UUID]:
        """Ids of everyone user_id follows."""
        result = await self.db.execute(
            select(db_models.Follow.following_id).where(db_models.Follow.follower_id == user_id)
        )
        return list(result.scalars().all())

    async def follower_ids(self, user_id: UUID) -> List[UUID]:
        """Ids of everyone following user_id."""
        result = await self.db.execute(
            select(db_models.Follow.follower_id).where(db_models.Follow.following_id == user_id)
        )
        return list(result.scalars().all())

    async def suggested_builders(self, user_id: UUID, limit: int = 10) -> List[db_models.User]:
        """Onboarded builders the user does not follow yet, newest first."""
        already_following = select(db_models.Follow.following_id).where(
            db_models.Follow.follower_id == user_id
        )
        result = await self.db.execute(
            select(db_models.User)
            .where(
                db_models.User.handle.is_not(None),
                db_models.User.id != user_id,
                db_models.User.id.not_in(already_following),
            )
            .order_by(desc(db_models.User.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())
