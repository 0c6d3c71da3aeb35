# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Session timer state machine.

Elapsed time is a single monotonic accumulator: while running it is
``accumulated + (now - resumed_at)``, pausing folds the running interval
into ``accumulated``. Paused time is never counted and there is no second
wall-clock total. The persisted duration is the accumulator.

The timer performs no I/O. Persistence and the live record are handled by
``buildtrack.timer.service.TimerService``.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union
from uuid import UUID

from buildtrack.errors import ValidationFailed
from buildtrack.utils.timeutils import ensure_aware, is_well_formed_uuid, utcnow

logger = logging.getLogger(__name__)

DEFAULT_MOOD = 3
SELECT_PROJECT_FIRST = "Select a project first"


class TimerStateName(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    CONFIRMING = "confirming"


@dataclass
class FinishedSession:
    """Snapshot taken when the end dialog is confirmed."""

    user_id: UUID
    project_id: UUID
    duration: int
    note: Optional[str]
    mood: int
    commits: List[Dict[str, Any]] = field(default_factory=list)
    was_live: bool = False
    live_session_id: Optional[UUID] = None


def parse_project_id(project_id: Union[str, UUID, None], invalid_message: str = SELECT_PROJECT_FIRST) -> UUID:
    """Validate a selected project id; raises ValidationFailed."""
    if not project_id:
        raise ValidationFailed(SELECT_PROJECT_FIRST)
    if not is_well_formed_uuid(project_id):
        raise ValidationFailed(invalid_message, detail="Pick a project from your list")
    return project_id if isinstance(project_id, UUID) else UUID(project_id)


class SessionTimer:
    """One user's session timer.

    Args:
        user_id: Owner of the timer
        clock: Monotonic seconds source (injectable for tests)
        wall_clock: Aware UTC datetime source
    """

    def __init__(
        self,
        user_id: UUID,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = utcnow,
    ):
        self.user_id = user_id
        self.clock = clock
        self.wall_clock = wall_clock

        self.project_id: Optional[UUID] = None
        self.started_at: Optional[datetime] = None
        self.note: str = ""
        self.mood: int = DEFAULT_MOOD
        self.commits: List[Dict[str, Any]] = []

        self.is_live = False
        self.live_session_id: Optional[UUID] = None
        self.restored = False

        self._active = False
        self._accumulated = 0.0
        self._resumed_at: Optional[float] = None
        self._confirming = False

    # State

    @property
    def state(self) -> TimerStateName:
        if self._confirming:
            return TimerStateName.CONFIRMING
        if not self._active:
            return TimerStateName.IDLE
        if self._resumed_at is None:
            return TimerStateName.PAUSED
        return TimerStateName.RUNNING

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def is_paused(self) -> bool:
        return self._active and self._resumed_at is None

    @property
    def is_ticking(self) -> bool:
        """Running and not paused (the end dialog does not stop the clock)."""
        return self._active and self._resumed_at is not None

    @property
    def elapsed(self) -> int:
        """Whole seconds accumulated while running."""
        running = 0.0
        if self._resumed_at is not None:
            running = max(self.clock() - self._resumed_at, 0.0)
        return int(self._accumulated + running)

    # Transitions

    def select_project(self, project_id: Union[str, UUID, None]) -> None:
        self.project_id = parse_project_id(project_id) if project_id else None

    def start(self, project_id: Union[str, UUID, None] = None) -> None:
        """Begin a fresh session: elapsed, note, mood and commits are reset."""
        project = parse_project_id(project_id if project_id is not None else self.project_id)

        self.project_id = project
        self.note = ""
        self.mood = DEFAULT_MOOD
        self.commits = []
        self.started_at = self.wall_clock()
        self._accumulated = 0.0
        self._resumed_at = self.clock()
        self._active = True
        self._confirming = False
        logger.debug(f"Timer started for {self.user_id} on project {project}")

    def tick(self) -> Optional[int]:
        """Current elapsed seconds if the clock is running, else None."""
        if not self.is_ticking:
            return None
        return self.elapsed

    def pause(self) -> None:
        if not self._active:
            raise ValidationFailed("No session in progress")
        if self._resumed_at is None:
            return
        self._accumulated += max(self.clock() - self._resumed_at, 0.0)
        self._resumed_at = None

    def resume(self) -> None:
        if not self._active:
            raise ValidationFailed("No session in progress")
        if self._resumed_at is not None:
            return
        self._resumed_at = self.clock()

    def request_end(self) -> None:
        """Open the end confirmation step; the session keeps its time."""
        if not self._active:
            raise ValidationFailed("No session in progress")
        self._confirming = True

    def cancel_end(self) -> None:
        """Close the end dialog and continue where the session was."""
        self._confirming = False

    def set_details(self, note: Optional[str] = None, mood: Optional[int] = None) -> None:
        if note is not None:
            self.note = note
        if mood is not None:
            if not 1 <= mood <= 5:
                raise ValidationFailed("Mood must be between 1 and 5")
            self.mood = mood

    def attach_commits(self, commits: List[Dict[str, Any]]) -> None:
        """Replace the commits imported for this session."""
        self.commits = list(commits)

    def confirm_end(self) -> FinishedSession:
        """
        Validate, snapshot and reset.

        Raises ValidationFailed before anything is captured when no valid
        project is selected or no session is in progress. The timer is back
        to idle when this returns, whatever happens to the snapshot next.
        """
        project = parse_project_id(self.project_id)
        if not self._active:
            raise ValidationFailed("No session in progress")

        finished = FinishedSession(
            user_id=self.user_id,
            project_id=project,
            duration=self.elapsed,
            note=self.note or None,
            mood=self.mood,
            commits=list(self.commits),
            was_live=self.is_live,
            live_session_id=self.live_session_id,
        )
        self.reset()
        return finished

    def reset(self) -> None:
        """Back to idle. The selected project is kept for the next start."""
        self.started_at = None
        self.note = ""
        self.mood = DEFAULT_MOOD
        self.commits = []
        self.is_live = False
        self.live_session_id = None
        self._active = False
        self._accumulated = 0.0
        self._resumed_at = None
        self._confirming = False

    # Live coupling

    def mark_live(self, live_session_id: UUID) -> None:
        self.is_live = True
        self.live_session_id = live_session_id

    def mark_offline(self) -> None:
        self.is_live = False
        self.live_session_id = None

    def restore(
        self,
        live_session_id: UUID,
        started_at: datetime,
        project_id: Optional[UUID],
        window: timedelta = timedelta(hours=12),
    ) -> bool:
        """
        Re-attach to a live record found in storage.

        A record younger than window resumes as a running, live session with
        elapsed = now - started_at. Older records are not restored and the
        caller is expected to delete them. Returns whether it was restored.
        """
        started_at = ensure_aware(started_at)
        age = self.wall_clock() - started_at
        if age >= window:
            logger.info(f"Not restoring live session {live_session_id}: started {age} ago")
            return False

        self.reset()
        self.project_id = project_id or self.project_id
        self.started_at = started_at
        self._accumulated = max(age.total_seconds(), 0.0)
        self._resumed_at = self.clock()
        self._active = True
        self.mark_live(live_session_id)
        logger.info(f"Restored live session {live_session_id} ({int(age.total_seconds())}s elapsed)")
        return True

    def snapshot(self) -> Dict[str, Any]:
        """Fields of the TimerState response."""
        return {
            "state": self.state.value,
            "project_id": self.project_id,
            "elapsed_seconds": self.elapsed,
            "started_at": self.started_at,
            "is_paused": self.is_paused,
            "is_live": self.is_live,
            "live_session_id": self.live_session_id,
            "note": self.note,
            "mood": self.mood,
            "commits_attached": len(self.commits),
        }
