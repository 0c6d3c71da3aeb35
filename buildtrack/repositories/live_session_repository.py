# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Repository for LiveSession and live chat operations."""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import case, delete, desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.models import database as db_models
from buildtrack.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class LiveSessionRepository:
    """Repository for LiveSession operations.

    One live session per user is the intended invariant. It is kept by
    deleting any existing record before inserting, which is not atomic.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def start(
        self,
        user_id: UUID,
        project_id: Optional[UUID],
        started_at: Optional[datetime] = None,
        note: Optional[str] = None,
        mood: Optional[int] = None,
    ) -> db_models.LiveSession:
        """Replace any existing live record for the user with a new one."""
        existing = await self.get_by_user(user_id)
        if existing is not None:
            logger.info(f"Cleaning up existing live session {existing.id} before starting a new one")
            await self.stop(user_id)

        live = db_models.LiveSession(
            user_id=user_id,
            project_id=project_id,
            started_at=started_at or utcnow(),
            note=note,
            mood=mood,
            viewers_count=0,
        )
        self.db.add(live)
        await self.db.flush()
        return live

    async def stop(self, user_id: UUID) -> int:
        """Delete the user's live records. Returns the number removed."""
        result = await self.db.execute(
            delete(db_models.LiveSession).where(db_models.LiveSession.user_id == user_id)
        )
        await self.db.flush()
        return result.rowcount or 0

    async def force_stop(self, live_session_id: UUID) -> bool:
        """Delete one live record by id."""
        result = await self.db.execute(
            delete(db_models.LiveSession).where(db_models.LiveSession.id == live_session_id)
        )
        await self.db.flush()
        return (result.rowcount or 0) > 0

    async def cleanup_stale(self, older_than: timedelta) -> int:
        """Delete live records started before now - older_than."""
        threshold = utcnow() - older_than
        stale = await self.db.execute(
            select(db_models.LiveSession.id).where(db_models.LiveSession.started_at < threshold)
        )
        stale_ids = list(stale.scalars().all())
        logger.info(f"Cleaning up {len(stale_ids)} stale live sessions older than {older_than}")
        if not stale_ids:
            return 0

        await self.db.execute(
            delete(db_models.LiveSession).where(db_models.LiveSession.id.in_(stale_ids))
        )
        await self.db.flush()
        return len(stale_ids)

    async def get_by_id(self, live_session_id: UUID) -> Optional[db_models.LiveSession]:
        """Get live session by ID."""
        result = await self.db.execute(
            select(db_models.LiveSession).where(db_models.LiveSession.id == live_session_id)
        )
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: UUID) -> Optional[db_models.LiveSession]:
        """Get the user's live session, newest first if duplicates slipped in."""
        result = await self.db.execute(
            select(db_models.LiveSession)
            .where(db_models.LiveSession.user_id == user_id)
            .order_by(desc(db_models.LiveSession.started_at))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> List[db_models.LiveSession]:
        """List live sessions, most recently started first."""
        result = await self.db.execute(
            select(db_models.LiveSession).order_by(desc(db_models.LiveSession.started_at))
        )
        return list(result.scalars().all())

    async def increment_viewers(self, live_session_id: UUID) -> Optional[int]:
        """Atomically add one viewer. Returns the new count."""
        await self.db.execute(
            update(db_models.LiveSession)
            .where(db_models.LiveSession.id == live_session_id)
            .values(viewers_count=db_models.LiveSession.viewers_count + 1)
        )
        return await self._viewers(live_session_id)

    async def decrement_viewers(self, live_session_id: UUID) -> Optional[int]:
        """Atomically remove one viewer, never going below zero."""
        await self.db.execute(
            update(db_models.LiveSession)
            .where(db_models.LiveSession.id == live_session_id)
            .values(
                viewers_count=case(
                    (db_models.LiveSession.viewers_count > 0, db_models.LiveSession.viewers_count - 1),
                    else_=0,
                )
            )
        )
        return await self._viewers(live_session_id)

    async def _viewers(self, live_session_id: UUID) -> Optional[int]:
        await self.db.flush()
        result = await self.db.execute(
            select(db_models.LiveSession.viewers_count)
            .where(db_models.LiveSession.id == live_session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def add_comment(
        self, live_session_id: UUID, user_id: UUID, message: str
    ) -> db_models.LiveComment:
        """Post a chat message to a live session."""
        comment = db_models.LiveComment(
            live_session_id=live_session_id, user_id=user_id, message=message
        )
        self.db.add(comment)
        await self.db.flush()
        return comment

    async def list_comments(self, live_session_id: UUID) -> List[db_models.LiveComment]:
        """Chat messages in posting order."""
        result = await self.db.execute(
            select(db_models.LiveComment)
            .where(db_models.LiveComment.live_session_id == live_session_id)
            .order_by(db_models.LiveComment.created_at)
        )
        return list(result.scalars().all())
