# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Realtime channels: Redis client utilities, publisher and hub."""
import logging
from typing import Optional

import redis.asyncio as redis

from buildtrack.services.realtime.hub import RealtimeHub
from buildtrack.services.realtime.publisher import (
    LIVE_SESSIONS_CHANNEL,
    RealtimePublisher,
    live_chat_channel,
    live_elapsed_channel,
    live_viewers_channel,
    notifications_channel,
    sessions_channel,
)

__all__ = [
    "LIVE_SESSIONS_CHANNEL",
    "RealtimeHub",
    "RealtimePublisher",
    "close_redis_client",
    "get_hub",
    "get_publisher",
    "get_redis_client",
    "live_chat_channel",
    "live_elapsed_channel",
    "live_viewers_channel",
    "notifications_channel",
    "sessions_channel",
    "set_realtime",
    "shutdown_realtime",
    "start_realtime",
]

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None
_hub: Optional[RealtimeHub] = None
_publisher: Optional[RealtimePublisher] = None


async def get_redis_client(redis_url: str) -> redis.Redis:
    """
    Create Redis client from URL.

    Args:
        redis_url: Redis connection URL (e.g., 'redis://localhost:6379/0')

    Returns:
        Redis async client
    """
    return redis.from_url(redis_url, encoding="utf-8", decode_responses=True)


async def close_redis_client(client: redis.Redis):
    """
    Close Redis client connection.

    Args:
        client: Redis async client
    """
    await client.aclose()


def set_realtime(hub: RealtimeHub, publisher: RealtimePublisher) -> None:
    """Install the process-wide hub and publisher."""
    global _hub, _publisher
    _hub = hub
    _publisher = publisher


async def start_realtime(redis_url: str, enabled: bool = True) -> RealtimePublisher:
    """Create the hub and publisher, backed by Redis when enabled."""
    global _redis_client
    if enabled:
        _redis_client = await get_redis_client(redis_url)
        logger.info(f"Realtime channels backed by Redis at {redis_url}")
    else:
        _redis_client = None
        logger.info("Realtime channels running in-process (Redis disabled)")
    hub = RealtimeHub(_redis_client)
    publisher = RealtimePublisher(_redis_client, hub=hub)
    set_realtime(hub, publisher)
    return publisher


async def shutdown_realtime() -> None:
    global _redis_client, _hub, _publisher
    if _hub is not None:
        await _hub.close()
    if _redis_client is not None:
        await close_redis_client(_redis_client)
    _redis_client = None
    _hub = None
    _publisher = None


def get_hub() -> RealtimeHub:
    """FastAPI dependency returning the process-wide hub."""
    global _hub, _publisher
    if _hub is None:
        _hub = RealtimeHub()
        _publisher = RealtimePublisher(hub=_hub)
    return _hub


def get_publisher() -> RealtimePublisher:
    """FastAPI dependency returning the process-wide publisher."""
    if _publisher is None:
        get_hub()
    return _publisher
