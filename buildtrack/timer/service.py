# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Coordinates a user's timer with sessions, the live record and broadcasts."""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.deps import Settings
from buildtrack.errors import NotFound, PermissionDenied
from buildtrack.models.api import (
    LiveSessionResponse,
    SessionMetrics,
    SessionResponse,
    TimerEndResult,
    TimerState,
)
from buildtrack.repositories import LiveSessionRepository, ProjectRepository, SessionRepository
from buildtrack.services.github import summarize_commits
from buildtrack.services.notifier import NotificationFanout
from buildtrack.services.realtime import RealtimePublisher
from buildtrack.timer.registry import TimerRegistry
from buildtrack.timer.state import SessionTimer, parse_project_id
from buildtrack.utils.timeutils import format_duration

logger = logging.getLogger(__name__)


class TimerService:
    """Request-scoped facade over a user's SessionTimer.

    Ending a session is not transactional with persistence: the timer is
    reset first and a failed save is reported in the result, not retried.
    """

    def __init__(
        self,
        db: AsyncSession,
        registry: TimerRegistry,
        settings: Settings,
        publisher: Optional[RealtimePublisher] = None,
    ):
        self.db = db
        self.registry = registry
        self.settings = settings
        self.publisher = publisher
        self.sessions = SessionRepository(db)
        self.projects = ProjectRepository(db)
        self.live = LiveSessionRepository(db)

    def _state(self, timer: SessionTimer) -> TimerState:
        return TimerState(**timer.snapshot())

    async def timer_for(self, user_id: UUID) -> SessionTimer:
        """The user's timer, restored from a live record on first access."""
        timer = self.registry.get(user_id)
        if not timer.restored:
            await self.restore(timer)
        return timer

    async def get_state(self, user_id: UUID) -> TimerState:
        return self._state(await self.timer_for(user_id))

    async def _require_own_project(self, user_id: UUID, project_id: UUID) -> None:
        project = await self.projects.get_by_id(project_id)
        if project is None:
            raise NotFound("Project not found")
        if project.user_id != user_id:
            raise PermissionDenied("Not your project")

    async def start(self, user_id: UUID, project_id: Union[str, UUID, None]) -> TimerState:
        timer = await self.timer_for(user_id)
        project = parse_project_id(project_id if project_id is not None else timer.project_id)
        await self._require_own_project(user_id, project)
        timer.start(project)
        return self._state(timer)

    async def select_project(self, user_id: UUID, project_id: Union[str, UUID, None]) -> TimerState:
        """Point the current or next session at a project; elapsed time is kept."""
        timer = await self.timer_for(user_id)
        project = parse_project_id(project_id)
        await self._require_own_project(user_id, project)
        timer.select_project(project)
        return self._state(timer)

    async def pause(self, user_id: UUID) -> TimerState:
        timer = await self.timer_for(user_id)
        timer.pause()
        return self._state(timer)

    async def resume(self, user_id: UUID) -> TimerState:
        timer = await self.timer_for(user_id)
        timer.resume()
        return self._state(timer)

    async def request_end(self, user_id: UUID) -> TimerState:
        timer = await self.timer_for(user_id)
        timer.request_end()
        return self._state(timer)

    async def cancel_end(self, user_id: UUID) -> TimerState:
        timer = await self.timer_for(user_id)
        timer.cancel_end()
        return self._state(timer)

    async def set_details(self, user_id: UUID, note: Optional[str], mood: Optional[int]) -> TimerState:
        timer = await self.timer_for(user_id)
        timer.set_details(note=note, mood=mood)
        return self._state(timer)

    async def attach_commits(self, user_id: UUID, commits: List[Dict[str, Any]]) -> TimerState:
        timer = await self.timer_for(user_id)
        timer.attach_commits(commits)
        return self._state(timer)

    async def confirm_end(self, user_id: UUID) -> TimerEndResult:
        """
        Persist the finished session.

        Validation errors propagate before anything is written. After that
        the timer is already idle; a database failure is logged and returned
        as ``error`` with ``saved=False``. The live record is removed either
        way.
        """
        timer = await self.timer_for(user_id)
        finished = timer.confirm_end()

        saved_session = None
        metrics = None
        error = None
        try:
            session = await self.sessions.create(
                user_id=finished.user_id,
                project_id=finished.project_id,
                duration=finished.duration,
                note=finished.note,
                mood=finished.mood,
            )
            if finished.commits:
                metrics = SessionMetrics(
                    **summarize_commits(finished.commits),
                    repos=sorted({c["repo"] for c in finished.commits if c.get("repo")}),
                )
                await self.sessions.save_metrics(session.id, metrics.model_dump())
            await self.db.commit()
            saved_session = SessionResponse.model_validate(session)
            logger.info(f"Saved session {session.id} ({format_duration(finished.duration)}) for {user_id}")
        except SQLAlchemyError as e:
            await self.db.rollback()
            error = f"Failed to save session: {e.__class__.__name__}"
            metrics = None
            logger.error(f"Failed to save session for {user_id}: {e}")

        if finished.was_live:
            await self._end_live(user_id)

        if saved_session is not None and self.publisher is not None:
            await self.publisher.publish_session_event(
                user_id, "insert", saved_session.model_dump(mode="json")
            )

        return TimerEndResult(
            saved=saved_session is not None,
            session=saved_session,
            metrics=metrics,
            error=error,
            timer=self._state(timer),
        )

    async def toggle_live(self, user_id: UUID, project_id: Union[str, UUID, None] = None) -> TimerState:
        """Go live (replacing any existing record) or go offline."""
        timer = await self.timer_for(user_id)

        if timer.is_live:
            await self._end_live(user_id)
            timer.mark_offline()
            return self._state(timer)

        project = parse_project_id(
            project_id if project_id is not None else timer.project_id,
            invalid_message="Invalid project selection",
        )
        await self._require_own_project(user_id, project)

        live = await self.live.start(
            user_id=user_id,
            project_id=project,
            note=timer.note or None,
            mood=timer.mood,
        )
        fanout = NotificationFanout(self.db, self.publisher)
        await fanout.went_live(live)
        await self.db.commit()
        await fanout.publish_pending()

        timer.project_id = project
        timer.mark_live(live.id)
        logger.info(f"{user_id} is live ({live.id})")
        if self.publisher is not None:
            await self.publisher.publish_live_event(
                "started", LiveSessionResponse.model_validate(live).model_dump(mode="json")
            )
        return self._state(timer)

    async def restore(self, timer: SessionTimer) -> bool:
        """Re-attach an idle timer to a recent live record, or clean up a stale one."""
        timer.restored = True
        if timer.is_active:
            return False

        live = await self.live.get_by_user(timer.user_id)
        if live is None:
            return False

        window = timedelta(hours=self.settings.live_restore_window_hours)
        if timer.restore(live.id, live.started_at, live.project_id, window=window):
            return True

        await self.live.force_stop(live.id)
        await self.db.commit()
        logger.info(f"Deleted stale live session {live.id} for {timer.user_id}")
        return False

    async def recheck(self, user_id: UUID) -> TimerState:
        """Force another restore attempt."""
        timer = self.registry.get(user_id)
        timer.restored = False
        return self._state(await self.timer_for(user_id))

    async def _end_live(self, user_id: UUID) -> None:
        try:
            removed = await self.live.stop(user_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to stop live session for {user_id}: {e}")
            return
        if removed and self.publisher is not None:
            await self.publisher.publish_live_event("ended", {"user_id": str(user_id)})
