# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Repositories for live chat moderation and stream analytics."""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.models import database as db_models

MODERATION_ACTIONS = ("timeout", "ban", "warn")


class ModerationRepository:
    """Repository for ChatModerationAction operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_action(
        self,
        live_session_id: UUID,
        moderator_id: UUID,
        target_user_id: UUID,
        action_type: str,
        duration: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> db_models.ChatModerationAction:
        """Record a moderation action."""
        if action_type not in MODERATION_ACTIONS:
            raise ValueError(f"Unknown moderation action: {action_type}")
        action = db_models.ChatModerationAction(
            live_session_id=live_session_id,
            moderator_id=moderator_id,
            target_user_id=target_user_id,
            action_type=action_type,
            duration=duration,
            reason=reason or "No reason provided",
        )
        self.db.add(action)
        await self.db.flush()
        return action

    async def timeout_user(
        self, live_session_id: UUID, moderator_id: UUID, target_user_id: UUID,
        duration: int, reason: Optional[str] = None,
    ) -> db_models.ChatModerationAction:
        return await self.add_action(
            live_session_id, moderator_id, target_user_id, "timeout", duration, reason
        )

    async def ban_user(
        self, live_session_id: UUID, moderator_id: UUID, target_user_id: UUID,
        reason: Optional[str] = None,
    ) -> db_models.ChatModerationAction:
        return await self.add_action(
            live_session_id, moderator_id, target_user_id, "ban", None, reason
        )

    async def warn_user(
        self, live_session_id: UUID, moderator_id: UUID, target_user_id: UUID,
        reason: Optional[str] = None,
    ) -> db_models.ChatModerationAction:
        return await self.add_action(
            live_session_id, moderator_id, target_user_id, "warn", None, reason
        )

    async def list_actions(self, live_session_id: UUID) -> List[db_models.ChatModerationAction]:
        """Moderation history of a live session, newest first."""
        result = await self.db.execute(
            select(db_models.ChatModerationAction)
            .where(db_models.ChatModerationAction.live_session_id == live_session_id)
            .order_by(desc(db_models.ChatModerationAction.created_at))
        )
        return list(result.scalars().all())


class StreamAnalyticsRepository:
    """Repository for StreamAnalytics counters.

    Counter updates are single UPDATE statements so concurrent viewers and
    chatters do not lose increments.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, live_session_id: UUID) -> Optional[db_models.StreamAnalytics]:
        result = await self.db.execute(
            select(db_models.StreamAnalytics)
            .where(db_models.StreamAnalytics.live_session_id == live_session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, live_session_id: UUID) -> db_models.StreamAnalytics:
        analytics = await self.get(live_session_id)
        if analytics is None:
            analytics = db_models.StreamAnalytics(live_session_id=live_session_id)
            self.db.add(analytics)
            await self.db.flush()
        return analytics

    async def increment_chat_messages(self, live_session_id: UUID) -> None:
        await self.get_or_create(live_session_id)
        await self.db.execute(
            update(db_models.StreamAnalytics)
            .where(db_models.StreamAnalytics.live_session_id == live_session_id)
            .values(total_chat_messages=db_models.StreamAnalytics.total_chat_messages + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()

    async def increment_views(self, live_session_id: UUID) -> None:
        await self.get_or_create(live_session_id)
        await self.db.execute(
            update(db_models.StreamAnalytics)
            .where(db_models.StreamAnalytics.live_session_id == live_session_id)
            .values(total_views=db_models.StreamAnalytics.total_views + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()

    async def update_peak_viewers(self, live_session_id: UUID, viewers: int) -> None:
        """Raise peak_viewers to viewers if it is higher; never lowers it."""
        await self.get_or_create(live_session_id)
        await self.db.execute(
            update(db_models.StreamAnalytics)
            .where(
                db_models.StreamAnalytics.live_session_id == live_session_id,
                db_models.StreamAnalytics.peak_viewers < viewers,
            )
            .values(peak_viewers=viewers)
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()
