# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Tests for the realtime hub, publisher and SSE framing."""
import asyncio
import json
import uuid

from redis.exceptions import ConnectionError as RedisConnectionError

from buildtrack.services.realtime import (
    RealtimeHub,
    RealtimePublisher,
    live_viewers_channel,
)
from buildtrack.services.realtime.sse import channel_events, format_event


class TestHub:
    async def test_subscriptions_are_reference_counted(self, hub):
        first = await hub.subscribe("room")
        second = await hub.subscribe("room")
        assert hub.subscriber_count("room") == 2

        await hub.unsubscribe("room", first)
        assert hub.channels == {"room"}
        await hub.unsubscribe("room", second)
        assert hub.channels == set()

    async def test_dispatch_reaches_every_consumer(self, hub):
        async with hub.listen("room") as a, hub.listen("room") as b:
            assert hub.dispatch("room", {"n": 1}) == 2
            assert a.get_nowait() == {"n": 1}
            assert b.get_nowait() == {"n": 1}
        assert hub.dispatch("room", {"n": 2}) == 0

    async def test_full_queue_drops_message(self):
        hub = RealtimeHub(queue_size=1)
        async with hub.listen("room") as queue:
            assert hub.dispatch("room", {"n": 1}) == 1
            assert hub.dispatch("room", {"n": 2}) == 0
            assert queue.qsize() == 1

    async def test_unsubscribe_unknown_is_harmless(self, hub):
        await hub.unsubscribe("nobody", asyncio.Queue())


class TestPublisher:
    async def test_in_process_delivery_stringifies(self, hub, publisher):
        live_id = uuid.uuid4()
        async with hub.listen(live_viewers_channel(live_id)) as queue:
            assert await publisher.publish_viewer_count(live_id, 4) == 1
            assert queue.get_nowait() == {"type": "viewer_count_update", "viewers_count": 4}

            await publisher.publish(live_viewers_channel(live_id), {"id": live_id})
            assert queue.get_nowait() == {"id": str(live_id)}

    async def test_without_hub_or_redis(self):
        assert await RealtimePublisher().publish("room", {"a": 1}) == 0

    async def test_redis_failure_returns_zero(self):
        class BrokenRedis:
            async def publish(self, channel, payload):
                raise RedisConnectionError("down")

        publisher = RealtimePublisher(redis_client=BrokenRedis())
        assert await publisher.publish("room", {"a": 1}) == 0


class TestSse:
    def test_format_event(self):
        assert format_event({"a": 1}) == 'data: {"a": 1}\n\n'

    async def test_connected_frame_then_messages(self, hub):
        stream = channel_events(hub, ["room"], initial={"viewers_count": 3})

        first = await stream.__anext__()
        assert json.loads(first[len("data: "):]) == {
            "type": "connected",
            "channels": ["room"],
            "viewers_count": 3,
        }
        assert hub.subscriber_count("room") == 1

        hub.dispatch("room", {"type": "new_comment"})
        second = await asyncio.wait_for(stream.__anext__(), timeout=1)
        assert json.loads(second[len("data: "):]) == {"channel": "room", "type": "new_comment"}

        await stream.aclose()
        assert hub.subscriber_count("room") == 0

    async def test_heartbeat(self, hub):
        stream = channel_events(hub, ["room"], heartbeat=0.01)
        await stream.__anext__()
        assert await stream.__anext__() == ": keep-alive\n\n"
        await stream.aclose()
