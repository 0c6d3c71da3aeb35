# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Repository for Session operations."""
from datetime import datetime, timedelta
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import Select, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from buildtrack.models import database as db_models
from buildtrack.utils.timeutils import utcnow


class SessionRepository:
    """Repository for Session operations.

    Listings never include soft-deleted rows and are ordered newest first.
    Paginated listings take an exclusive cursor: the created_at of the
    last row of the previous page.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        user_id: UUID,
        project_id: UUID,
        duration: int,
        note: Optional[str] = None,
        mood: int = 3,
        metrics: Optional[dict] = None,
    ) -> db_models.Session:
        """Create a new session."""
        session = db_models.Session(
            user_id=user_id,
            project_id=project_id,
            duration=duration,
            note=note,
            mood=mood,
            metrics=metrics,
        )
        self.db.add(session)
        await self.db.flush()
        return session

    async def get_by_id(
        self, session_id: UUID, include_deleted: bool = False
    ) -> Optional[db_models.Session]:
        """Get session by ID."""
        query = (
            select(db_models.Session)
            .options(selectinload(db_models.Session.project))
            .where(db_models.Session.id == session_id)
        )
        if not include_deleted:
            query = query.where(db_models.Session.is_deleted.is_(False))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def update(self, session_id: UUID, **kwargs) -> Optional[db_models.Session]:
        """Update note/mood (or any other column) of a session."""
        session = await self.get_by_id(session_id)
        if session:
            for key, value in kwargs.items():
                if hasattr(session, key):
                    setattr(session, key, value)
            await self.db.flush()
        return session

    async def soft_delete(self, session_id: UUID) -> bool:
        """Flag a session as deleted; the row is kept."""
        session = await self.get_by_id(session_id)
        if session is None:
            return False
        session.is_deleted = True
        await self.db.flush()
        return True

    async def switch_project(self, session_id: UUID, project_id: UUID) -> Optional[db_models.Session]:
        """Move a session to another project."""
        return await self.update(session_id, project_id=project_id)

    async def save_metrics(self, session_id: UUID, metrics: dict) -> Optional[db_models.Session]:
        """Attach commit-derived metrics to a session."""
        return await self.update(session_id, metrics=metrics)

    async def list_since(self, user_id: UUID, since: datetime) -> List[db_models.Session]:
        """Sessions a user recorded since a point in time."""
        result = await self.db.execute(
            select(db_models.Session)
            .where(
                db_models.Session.user_id == user_id,
                db_models.Session.is_deleted.is_(False),
                db_models.Session.created_at >= since,
            )
            .order_by(desc(db_models.Session.created_at))
        )
        return list(result.scalars().all())

    async def list_last_week(self, user_id: UUID) -> List[db_models.Session]:
        """Sessions from the last seven days."""
        return await self.list_since(user_id, utcnow() - timedelta(days=7))

    async def list_by_user(
        self, user_id: UUID, limit: int = 20, cursor: Optional[datetime] = None
    ) -> List[db_models.Session]:
        """Page through one user's sessions."""
        query = self._feed_query().where(db_models.Session.user_id == user_id)
        return await self._page(query, limit, cursor)

    async def list_by_project(
        self, project_id: UUID, limit: int = 20, cursor: Optional[datetime] = None
    ) -> List[db_models.Session]:
        """Page through a project's sessions."""
        query = self._feed_query().where(db_models.Session.project_id == project_id)
        return await self._page(query, limit, cursor)

    async def list_by_users(
        self, user_ids: Iterable[UUID], limit: int = 20, cursor: Optional[datetime] = None
    ) -> List[db_models.Session]:
        """Page through sessions of a set of users (the following feed)."""
        ids = list(user_ids)
        if not ids:
            return []
        query = self._feed_query().where(db_models.Session.user_id.in_(ids))
        return await self._page(query, limit, cursor)

    async def list_global(
        self, limit: int = 20, cursor: Optional[datetime] = None
    ) -> List[db_models.Session]:
        """Page through everyone's sessions."""
        return await self._page(self._feed_query(), limit, cursor)

    async def totals_by_user(self, user_id: UUID) -> tuple[int, int]:
        """(session count, total seconds) across a user's non-deleted sessions."""
        result = await self.db.execute(
            select(
                func.count(db_models.Session.id),
                func.coalesce(func.sum(db_models.Session.duration), 0),
            ).where(
                db_models.Session.user_id == user_id,
                db_models.Session.is_deleted.is_(False),
            )
        )
        count, total = result.one()
        return int(count or 0), int(total or 0)

    def _feed_query(self) -> Select:
        return (
            select(db_models.Session)
            .options(selectinload(db_models.Session.project))
            .where(db_models.Session.is_deleted.is_(False))
        )

    async def _page(
        self, query: Select, limit: int, cursor: Optional[datetime]
    ) -> List[db_models.Session]:
        if cursor is not None:
            query = query.where(db_models.Session.created_at < cursor)
        query = query.order_by(desc(db_models.Session.created_at)).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
