# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Server-Sent Events streaming from hub channels."""
import asyncio
import json
import logging
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import Request
from fastapi.responses import StreamingResponse

from buildtrack.services.realtime.hub import RealtimeHub

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(data: Dict[str, Any]) -> str:
    return f"data: {json.dumps(data, default=str)}\n\n"


async def channel_events(
    hub: RealtimeHub,
    channels: List[str],
    request: Optional[Request] = None,
    initial: Optional[Dict[str, Any]] = None,
    heartbeat: float = 15.0,
) -> AsyncGenerator[str, None]:
    """Yield SSE frames for every message on channels until the client leaves."""
    merged: asyncio.Queue = asyncio.Queue()
    queues = [(channel, await hub.subscribe(channel)) for channel in channels]

    async def pump(channel: str, queue: asyncio.Queue) -> None:
        while True:
            data = await queue.get()
            await merged.put({"channel": channel, **data} if isinstance(data, dict) else data)

    pumps = [asyncio.create_task(pump(channel, queue)) for channel, queue in queues]
    try:
        yield format_event({"type": "connected", "channels": channels, **(initial or {})})
        while True:
            if request is not None and await request.is_disconnected():
                break
            try:
                data = await asyncio.wait_for(merged.get(), timeout=heartbeat)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield format_event(data)
    finally:
        for task in pumps:
            task.cancel()
        for channel, queue in queues:
            await hub.unsubscribe(channel, queue)


def sse_response(
    hub: RealtimeHub,
    channels: List[str],
    request: Optional[Request] = None,
    initial: Optional[Dict[str, Any]] = None,
) -> StreamingResponse:
    """Wrap channel_events in a text/event-stream response."""
    return StreamingResponse(
        channel_events(hub, channels, request, initial),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
