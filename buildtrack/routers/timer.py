# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Session timer router."""
import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.database import get_db
from buildtrack.deps import Settings, get_settings
from buildtrack.middleware.auth import get_current_active_user
from buildtrack.models.api import (
    ImportedCommit,
    TimerDetails,
    TimerEndResult,
    TimerLiveToggle,
    TimerProjectSelect,
    TimerStart,
    TimerState,
)
from buildtrack.models.database import User
from buildtrack.services.realtime import (
    RealtimeHub,
    RealtimePublisher,
    get_hub,
    get_publisher,
    live_elapsed_channel,
)
from buildtrack.services.realtime.sse import sse_response
from buildtrack.timer.registry import TimerRegistry, get_timer_registry
from buildtrack.timer.service import TimerService

router = APIRouter(prefix="/api/timer", tags=["timer"])
logger = logging.getLogger(__name__)


def get_timer_service(
    db: AsyncSession = Depends(get_db),
    registry: TimerRegistry = Depends(get_timer_registry),
    settings: Settings = Depends(get_settings),
    publisher: RealtimePublisher = Depends(get_publisher),
) -> TimerService:
    """Per-request TimerService bound to the process-wide registry."""
    return TimerService(db, registry, settings, publisher)


@router.get("", response_model=TimerState)
async def get_timer(
    service: TimerService = Depends(get_timer_service),
    current_user: User = Depends(get_current_active_user),
):
    """
    Current timer state.

    The first call after a restart re-attaches to a live session started
    within the restore window.
    """
    return await service.get_state(current_user.id)


@router.post("/start", response_model=TimerState)
async def start_timer(
    request: TimerStart,
    service: TimerService = Depends(get_timer_service),
    current_user: User = Depends(get_current_active_user),
):
    """Start a fresh session on a project."""
    return await service.start(current_user.id, request.project_id)


@router.put("/project", response_model=TimerState)
async def select_project(
    request: TimerProjectSelect,
    service: TimerService = Depends(get_timer_service),
    current_user: User = Depends(get_current_active_user),
):
    """
    Choose the project the session will be saved against.

    Unlike start, the elapsed time is kept. A session restored from a live
    record whose project was deleted needs this before it can be saved.
    """
    return await service.select_project(current_user.id, request.project_id)


@router.post("/pause", response_model=TimerState)
async def pause_timer(
    service: TimerService = Depends(get_timer_service),
    current_user: User = Depends(get_current_active_user),
):
    return await service.pause(current_user.id)


@router.post("/resume", response_model=TimerState)
async def resume_timer(
    service: TimerService = Depends(get_timer_service),
    current_user: User = Depends(get_current_active_user),
):
    return await service.resume(current_user.id)


@router.post("/end", response_model=TimerState)
async def end_timer(
    service: TimerService = Depends(get_timer_service),
    current_user: User = Depends(get_current_active_user),
):
    """Open the end confirmation step."""
    return await service.request_end(current_user.id)


@router.post("/cancel", response_model=TimerState)
async def cancel_end(
    service: TimerService = Depends(get_timer_service),
    current_user: User = Depends(get_current_active_user),
):
    """Close the end confirmation step and keep going."""
    return await service.cancel_end(current_user.id)


@router.put("/details", response_model=TimerState)
async def set_details(
    request: TimerDetails,
    service: TimerService = Depends(get_timer_service),
    current_user: User = Depends(get_current_active_user),
):
    """Set the note and mood that will be saved with the session."""
    return await service.set_details(current_user.id, request.note, request.mood)


@router.post("/commits", response_model=TimerState)
async def attach_commits(
    commits: List[ImportedCommit],
    service: TimerService = Depends(get_timer_service),
    current_user: User = Depends(get_current_active_user),
):
    """Attach commits imported from GitHub; metrics are derived on confirm."""
    return await service.attach_commits(current_user.id, [c.model_dump() for c in commits])


@router.post("/confirm", response_model=TimerEndResult)
async def confirm_end(
    service: TimerService = Depends(get_timer_service),
    current_user: User = Depends(get_current_active_user),
):
    """
    Save the session and reset the timer.

    The timer is reset even when saving fails; the failure is reported in
    ``error`` with ``saved`` false.
    """
    return await service.confirm_end(current_user.id)


@router.post("/live", response_model=TimerState)
async def toggle_live(
    request: TimerLiveToggle,
    service: TimerService = Depends(get_timer_service),
    current_user: User = Depends(get_current_active_user),
):
    """Go live on the selected project, or go offline if already live."""
    return await service.toggle_live(current_user.id, request.project_id)


@router.post("/recheck", response_model=TimerState)
async def recheck_live_session(
    service: TimerService = Depends(get_timer_service),
    current_user: User = Depends(get_current_active_user),
):
    """Look for a live session to restore again."""
    return await service.recheck(current_user.id)


@router.get("/events")
async def timer_events(
    request: Request,
    hub: RealtimeHub = Depends(get_hub),
    current_user: User = Depends(get_current_active_user),
):
    """SSE stream of the caller's elapsed-time ticks while live."""
    return sse_response(hub, [live_elapsed_channel(current_user.id)], request)
