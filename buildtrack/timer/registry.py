# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""In-process registry of per-user session timers."""
import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional
from uuid import UUID

from buildtrack.deps import get_settings
from buildtrack.timer.state import SessionTimer
from buildtrack.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class TimerRegistry:
    """Owns one SessionTimer per user while it is in use.

    Timers that are idle, offline and untouched for ``idle_ttl`` are dropped
    by ``sweep``; the next access creates a fresh one, which re-runs the
    live-session restore.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = utcnow,
        idle_ttl: timedelta = timedelta(hours=1),
    ):
        self.clock = clock
        self.wall_clock = wall_clock
        self.idle_ttl = idle_ttl
        self._timers: Dict[UUID, SessionTimer] = {}
        self._last_used: Dict[UUID, datetime] = {}

    def __len__(self) -> int:
        return len(self._timers)

    def get(self, user_id: UUID) -> SessionTimer:
        """Return the user's timer, creating an idle one on first access."""
        timer = self._timers.get(user_id)
        if timer is None:
            timer = SessionTimer(user_id, clock=self.clock, wall_clock=self.wall_clock)
            self._timers[user_id] = timer
        self._last_used[user_id] = self.wall_clock()
        return timer

    def ticking(self) -> List[SessionTimer]:
        """Timers whose clock is currently running."""
        return [t for t in self._timers.values() if t.is_ticking]

    def sweep(self) -> int:
        """Forget idle, offline timers not used within idle_ttl. Returns how many."""
        cutoff = self.wall_clock() - self.idle_ttl
        expired = [
            user_id
            for user_id, timer in self._timers.items()
            if not timer.is_active and not timer.is_live and self._last_used.get(user_id, cutoff) <= cutoff
        ]
        for user_id in expired:
            del self._timers[user_id]
            self._last_used.pop(user_id, None)
        if expired:
            logger.debug(f"Dropped {len(expired)} idle timers")
        return len(expired)


_registry: Optional[TimerRegistry] = None


def get_timer_registry() -> TimerRegistry:
    """FastAPI dependency returning the process-wide registry."""
    global _registry
    if _registry is None:
        settings = get_settings()
        _registry = TimerRegistry(idle_ttl=timedelta(minutes=settings.timer_idle_ttl_minutes))
    return _registry
