# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Notification side effects of kudos, comments, follows and going live.

Contract: at-most-once and non-blocking. Each fan-out runs in its own
savepoint after the primary write has been flushed. A failure rolls back
only the savepoint, is logged, and is never raised to the caller. No
retry is attempted. Self-actions (liking your own session, etc.) produce
nothing.

Realtime pushes are queued and sent by ``publish_pending`` after the
caller commits.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.models import database as db_models
from buildtrack.models.api import NotificationResponse
from buildtrack.repositories import FollowRepository, NotificationRepository, UserRepository
from buildtrack.services.realtime import RealtimePublisher

logger = logging.getLogger(__name__)

NOTE_PREVIEW_LENGTH = 50


def quote_note(note: Optional[str]) -> Optional[str]:
    """Session note shortened to 50 characters, with an ellipsis if cut."""
    if not note:
        return None
    if len(note) > NOTE_PREVIEW_LENGTH:
        return f"{note[:NOTE_PREVIEW_LENGTH]}..."
    return note


class NotificationFanout:
    """Creates notification rows and pushes them to recipients' channels."""

    def __init__(self, db: AsyncSession, publisher: Optional[RealtimePublisher] = None):
        self.db = db
        self.publisher = publisher
        self.notifications = NotificationRepository(db)
        self.pending: List[db_models.Notification] = []

    async def session_kudos(self, session: db_models.Session, actor_id: UUID) -> Optional[db_models.Notification]:
        preview = quote_note(session.note)
        message = f'Someone liked your session: "{preview}"' if preview else "Someone liked your session"
        return await self._notify_one(
            recipient_id=session.user_id,
            actor_id=actor_id,
            type="kudos",
            entity_type="session",
            entity_id=session.id,
            data={"title": "Your session got kudos!", "message": message},
        )

    async def session_comment(self, session: db_models.Session, actor_id: UUID) -> Optional[db_models.Notification]:
        preview = quote_note(session.note)
        message = (
            f'Someone commented on your session: "{preview}"'
            if preview
            else "Someone commented on your session"
        )
        return await self._notify_one(
            recipient_id=session.user_id,
            actor_id=actor_id,
            type="comment",
            entity_type="session",
            entity_id=session.id,
            data={"title": "New comment on your session!", "message": message},
        )

    async def new_follower(self, following_id: UUID, actor_id: UUID) -> Optional[db_models.Notification]:
        return await self._notify_one(
            recipient_id=following_id,
            actor_id=actor_id,
            type="follow",
            entity_type="user",
            entity_id=actor_id,
            data={
                "title": "You have a new follower!",
                "message": "Someone started following your building journey",
            },
        )

    async def went_live(self, live_session: db_models.LiveSession) -> List[db_models.Notification]:
        """Tell every follower the streamer is live."""
        try:
            async with self.db.begin_nested():
                follower_ids = await FollowRepository(self.db).follower_ids(live_session.user_id)
                follower_ids = [f for f in follower_ids if f != live_session.user_id]
                if not follower_ids:
                    return []

                streamer = await UserRepository(self.db).get_by_id(live_session.user_id)
                display_name = (streamer and (streamer.handle or streamer.name)) or "Someone you follow"
                rows = await self.notifications.create_many(
                    [
                        {
                            "user_id": follower_id,
                            "type": "live_session",
                            "actor_id": live_session.user_id,
                            "entity_type": "live_session",
                            "entity_id": live_session.id,
                            "data": {
                                "title": f"{display_name} is now live!",
                                "message": "Tap to watch their live building session",
                            },
                        }
                        for follower_id in follower_ids
                    ]
                )
        except Exception as e:
            logger.error(f"Failed to create live session notifications: {e}")
            return []

        logger.info(f"Notified {len(rows)} followers that {live_session.user_id} went live")
        self.pending.extend(rows)
        return rows

    async def _notify_one(
        self,
        recipient_id: UUID,
        actor_id: UUID,
        type: str,
        entity_type: str,
        entity_id: UUID,
        data: dict,
    ) -> Optional[db_models.Notification]:
        if recipient_id == actor_id:
            return None
        try:
            async with self.db.begin_nested():
                notification = await self.notifications.create(
                    user_id=recipient_id,
                    type=type,
                    actor_id=actor_id,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    data=data,
                )
        except Exception as e:
            logger.error(f"Failed to create {type} notification for {recipient_id}: {e}")
            return None

        self.pending.append(notification)
        return notification

    async def publish_pending(self) -> int:
        """Push queued notifications. Call after the transaction commits."""
        pending, self.pending = self.pending, []
        if self.publisher is None:
            return 0
        for notification in pending:
            payload = NotificationResponse.model_validate(notification).model_dump(mode="json")
            await self.publisher.publish_notification(notification.user_id, payload)
        return len(pending)
