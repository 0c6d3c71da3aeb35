# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Repository for Notification operations."""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.models import database as db_models


class NotificationRepository:
    """Repository for Notification operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        user_id: UUID,
        type: str,
        actor_id: Optional[UUID] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        data: Optional[dict] = None,
    ) -> db_models.Notification:
        """Create a new notification."""
        notification = db_models.Notification(
            user_id=user_id,
            type=type,
            actor_id=actor_id,
            entity_type=entity_type,
            entity_id=entity_id,
            data=data or {},
        )
        self.db.add(notification)
        await self.db.flush()
        return notification

    async def create_many(self, notifications: List[dict]) -> List[db_models.Notification]:
        """Insert a batch of notifications (used for follower fan-out)."""
        rows = [db_models.Notification(**n) for n in notifications]
        self.db.add_all(rows)
        await self.db.flush()
        return rows

    async def list_for_user(self, user_id: UUID, limit: int = 20) -> List[db_models.Notification]:
        """Newest notifications for a user."""
        result = await self.db.execute(
            select(db_models.Notification)
            .where(db_models.Notification.user_id == user_id)
            .order_by(desc(db_models.Notification.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def mark_all_read(self, user_id: UUID) -> int:
        """Flag every unread notification as read. Returns the number changed."""
        result = await self.db.execute(
            update(db_models.Notification)
            .where(
                db_models.Notification.user_id == user_id,
                db_models.Notification.read.is_(False),
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()
        return result.rowcount or 0

    async def unread_count(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(db_models.Notification.id)).where(
                db_models.Notification.user_id == user_id,
                db_models.Notification.read.is_(False),
            )
        )
        return result.scalar_one() or 0
