# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Repositories for session kudos and comments."""
from typing import Dict, Iterable, List, Optional, Set
from uuid import UUID

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.models import database as db_models


class KudosRepository:
    """Repository for SessionKudos operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, session_id: UUID, user_id: UUID) -> Optional[db_models.SessionKudos]:
        """Give kudos. Returns None if the user already did."""
        if await self.has_kudos(session_id, user_id):
            return None
        kudos = db_models.SessionKudos(session_id=session_id, user_id=user_id)
        try:
            async with self.db.begin_nested():
                self.db.add(kudos)
        except IntegrityError:
            # Another request inserted the same pair after the check
            return None
        return kudos

    async def remove(self, session_id: UUID, user_id: UUID) -> bool:
        """Take kudos back."""
        result = await self.db.execute(
            delete(db_models.SessionKudos).where(
                and_(
                    db_models.SessionKudos.session_id == session_id,
                    db_models.SessionKudos.user_id == user_id,
                )
            )
        )
        await self.db.flush()
        return (result.rowcount or 0) > 0

    async def count(self, session_id: UUID) -> int:
        """Kudos on one session."""
        result = await self.db.execute(
            select(func.count(db_models.SessionKudos.id)).where(
                db_models.SessionKudos.session_id == session_id
            )
        )
        return result.scalar_one() or 0

    async def has_kudos(self, session_id: UUID, user_id: UUID) -> bool:
        """Whether user_id already gave kudos to session_id."""
        result = await self.db.execute(
            select(db_models.SessionKudos.id)
            .where(
                and_(
                    db_models.SessionKudos.session_id == session_id,
                    db_models.SessionKudos.user_id == user_id,
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def counts_for_sessions(self, session_ids: Iterable[UUID]) -> Dict[UUID, int]:
        """Kudos counts for many sessions in one query."""
        ids = list(session_ids)
        if not ids:
            return {}
        result = await self.db.execute(
            select(db_models.SessionKudos.session_id, func.count(db_models.SessionKudos.id))
            .where(db_models.SessionKudos.session_id.in_(ids))
            .group_by(db_models.SessionKudos.session_id)
        )
        return {session_id: count for session_id, count in result.all()}

    async def liked_by(self, session_ids: Iterable[UUID], user_id: UUID) -> Set[UUID]:
        """Subset of session_ids the user gave kudos to."""
        ids = list(session_ids)
        if not ids:
            return set()
        result = await self.db.execute(
            select(db_models.SessionKudos.session_id).where(
                db_models.SessionKudos.session_id.in_(ids),
                db_models.SessionKudos.user_id == user_id,
            )
        )
        return set(result.scalars().all())


class CommentRepository:
    """Repository for SessionComment operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, session_id: UUID, user_id: UUID, content: str) -> db_models.SessionComment:
        """Comment on a session."""
        comment = db_models.SessionComment(session_id=session_id, user_id=user_id, content=content)
        self.db.add(comment)
        await self.db.flush()
        return comment

    async def list_for_session(self, session_id: UUID) -> List[db_models.SessionComment]:
        """Comments in posting order."""
        result = await self.db.execute(
            select(db_models.SessionComment)
            .where(db_models.SessionComment.session_id == session_id)
            .order_by(db_models.SessionComment.created_at)
        )
        return list(result.scalars().all())

    async def count(self, session_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(db_models.SessionComment.id)).where(
                db_models.SessionComment.session_id == session_id
            )
        )
        return result.scalar_one() or 0

    async def counts_for_sessions(self, session_ids: Iterable[UUID]) -> Dict[UUID, int]:
        """Comment counts for many sessions in one query."""
        ids = list(session_ids)
        if not ids:
            return {}
        result = await self.db.execute(
            select(db_models.SessionComment.session_id, func.count(db_models.SessionComment.id))
            .where(db_models.SessionComment.session_id.in_(ids))
            .group_by(db_models.SessionComment.session_id)
        )
        return {session_id: count for session_id, count in result.all()}

    async def delete_own(self, comment_id: UUID, user_id: UUID) -> bool:
        """Delete a comment only if user_id wrote it."""
        result = await self.db.execute(
            delete(db_models.SessionComment).where(
                and_(
                    db_models.SessionComment.id == comment_id,
                    db_models.SessionComment.user_id == user_id,
                )
            )
        )
        await self.db.flush()
        return (result.rowcount or 0) > 0
