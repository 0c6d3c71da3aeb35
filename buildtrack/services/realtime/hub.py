# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Process-wide fan-out of Redis pub/sub channels to local consumers."""
import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Set

import redis.asyncio as redis
from redis.asyncio.client import PubSub

logger = logging.getLogger(__name__)


class RealtimeHub:
    """Owns a single pub/sub connection and shares it between consumers.

    Each channel is subscribed at most once on Redis no matter how many SSE
    streams watch it. Subscriptions are reference counted: the Redis
    subscription is dropped when the last local consumer leaves. Every
    consumer gets its own queue, so a slow stream cannot starve the others.

    Without a Redis client the hub works in-process only: messages reach it
    through ``dispatch`` (the publisher calls it directly).
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None, queue_size: int = 100):
        self.redis = redis_client
        self.queue_size = queue_size
        self._pubsub: Optional[PubSub] = None
        self._listener: Optional[asyncio.Task] = None
        self._consumers: Dict[str, Set[asyncio.Queue]] = {}
        self._lock = asyncio.Lock()

    def subscriber_count(self, channel: str) -> int:
        """Number of local consumers attached to a channel."""
        return len(self._consumers.get(channel, ()))

    @property
    def channels(self) -> Set[str]:
        return set(self._consumers)

    async def subscribe(self, channel: str) -> asyncio.Queue:
        """Attach a new consumer queue to channel."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        async with self._lock:
            consumers = self._consumers.setdefault(channel, set())
            first = not consumers
            consumers.add(queue)
            if first and self.redis is not None:
                if self._pubsub is None:
                    self._pubsub = self.redis.pubsub()
                await self._pubsub.subscribe(channel)
                logger.debug(f"Subscribed to {channel}")
                if self._listener is None or self._listener.done():
                    self._listener = asyncio.create_task(self._listen())
        return queue

    async def unsubscribe(self, channel: str, queue: asyncio.Queue) -> None:
        """Detach a consumer; drops the Redis subscription with the last one."""
        async with self._lock:
            consumers = self._consumers.get(channel)
            if not consumers:
                return
            consumers.discard(queue)
            if consumers:
                return
            del self._consumers[channel]
            if self._pubsub is not None:
                await self._pubsub.unsubscribe(channel)
                logger.debug(f"Unsubscribed from {channel}")

    @asynccontextmanager
    async def listen(self, channel: str) -> AsyncIterator[asyncio.Queue]:
        """Subscribe for the duration of a with-block."""
        queue = await self.subscribe(channel)
        try:
            yield queue
        finally:
            await self.unsubscribe(channel, queue)

    def dispatch(self, channel: str, data: Any) -> int:
        """Deliver a decoded message to every local consumer of channel."""
        delivered = 0
        for queue in list(self._consumers.get(channel, ())):
            try:
                queue.put_nowait(data)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"Dropping message on {channel}: consumer queue is full")
        return delivered

    async def _listen(self) -> None:
        while True:
            try:
                message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Realtime listener error: {e}")
                await asyncio.sleep(1.0)
                continue

            if message is None or message.get("type") != "message":
                continue
            try:
                data = json.loads(message["data"])
            except (TypeError, ValueError):
                logger.warning(f"Ignoring non-JSON message on {message.get('channel')}")
                continue
            self.dispatch(message["channel"], data)

    async def close(self) -> None:
        """Stop the listener and release the pub/sub connection."""
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        self._consumers.clear()
