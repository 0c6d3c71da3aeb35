# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Publishes realtime events (elapsed time, viewers, chat, notifications)."""
import json
import logging
from typing import Any, Dict, Optional
from uuid import UUID

import redis.asyncio as redis
from redis.exceptions import RedisError

from buildtrack.services.realtime.hub import RealtimeHub

logger = logging.getLogger(__name__)

LIVE_SESSIONS_CHANNEL = "live_sessions"


def live_elapsed_channel(user_id: UUID) -> str:
    return f"live_elapsed:{user_id}"


def live_viewers_channel(live_session_id: UUID) -> str:
    return f"live_viewers:{live_session_id}"


def live_chat_channel(live_session_id: UUID) -> str:
    return f"live_chat:{live_session_id}"


def notifications_channel(user_id: UUID) -> str:
    return f"notifications:{user_id}"


def sessions_channel(user_id: UUID) -> str:
    return f"sessions:{user_id}"


class RealtimePublisher:
    """Publishes JSON messages to realtime channels.

    Publishing is best-effort: a failure is logged and reported as zero
    receivers, never raised. When no Redis client is configured messages go
    straight to the in-process hub.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None, hub: Optional[RealtimeHub] = None):
        """
        Initialize realtime publisher.

        Args:
            redis_client: Redis async client, or None for in-process delivery
            hub: Local hub used when there is no Redis client
        """
        self.redis = redis_client
        self.hub = hub

    async def publish(self, channel: str, message: Dict[str, Any]) -> int:
        """
        Publish a message to a channel.

        Args:
            channel: Channel name
            message: JSON-serializable payload (UUIDs and datetimes are stringified)

        Returns:
            Number of subscribers that received the message
        """
        try:
            payload = json.dumps(message, default=str)
            if self.redis is None:
                return self.hub.dispatch(channel, json.loads(payload)) if self.hub else 0
            return await self.redis.publish(channel, payload)
        except (RedisError, OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to publish to {channel}: {e}")
            return 0

    async def publish_elapsed(self, user_id: UUID, elapsed: int) -> int:
        return await self.publish(live_elapsed_channel(user_id), {"elapsed": elapsed})

    async def publish_viewer_count(self, live_session_id: UUID, viewers_count: int) -> int:
        return await self.publish(
            live_viewers_channel(live_session_id),
            {"type": "viewer_count_update", "viewers_count": viewers_count},
        )

    async def publish_chat_message(self, live_session_id: UUID, comment: Dict[str, Any]) -> int:
        return await self.publish(
            live_chat_channel(live_session_id), {"type": "new_comment", "comment": comment}
        )

    async def publish_notification(self, user_id: UUID, notification: Dict[str, Any]) -> int:
        return await self.publish(
            notifications_channel(user_id), {"type": "notification", "notification": notification}
        )

    async def publish_session_event(self, user_id: UUID, event: str, session: Dict[str, Any]) -> int:
        """Session insert/update/delete for the owner's session list."""
        return await self.publish(sessions_channel(user_id), {"type": event, "session": session})

    async def publish_live_event(self, event: str, live_session: Dict[str, Any]) -> int:
        """Live session started/ended, for the "who is live" list."""
        return await self.publish(
            LIVE_SESSIONS_CHANNEL, {"type": event, "live_session": live_session}
        )
