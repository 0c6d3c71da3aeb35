# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Background task broadcasting elapsed time of live timers."""
import asyncio
import logging
from typing import Optional

from buildtrack.services.realtime import RealtimePublisher
from buildtrack.timer.registry import TimerRegistry

logger = logging.getLogger(__name__)


class LiveTicker:
    """Ticks every running timer once per interval.

    For timers that are live, the elapsed value is published on the
    owner's ``live_elapsed`` channel. Broadcasts are fire-and-forget.
    Each pass also sweeps idle timers out of the registry.
    """

    def __init__(self, registry: TimerRegistry, publisher: RealtimePublisher, interval: float = 1.0):
        self.registry = registry
        self.publisher = publisher
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Live ticker started (every {self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Live ticker stopped")

    async def tick_once(self) -> int:
        """Broadcast for every live, ticking timer. Returns how many were sent."""
        sent = 0
        for timer in self.registry.ticking():
            elapsed = timer.tick()
            if elapsed is None or not timer.is_live:
                continue
            try:
                await self.publisher.publish_elapsed(timer.user_id, elapsed)
                sent += 1
            except Exception as e:
                logger.debug(f"Elapsed broadcast failed for {timer.user_id}: {e}")
        return sent

    async def _run(self) -> None:
        while True:
            await self.tick_once()
            self.registry.sweep()
            await asyncio.sleep(self.interval)
