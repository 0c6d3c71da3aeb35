# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Live sessions router: discovery, viewer overlay, chat and moderation."""
import logging
from datetime import timedelta
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.database import get_db
from buildtrack.deps import Settings, get_settings
from buildtrack.middleware.auth import get_current_active_user
from buildtrack.models.api import (
    ChannelPointsResponse,
    CleanupResponse,
    LiveCommentCreate,
    LiveCommentResponse,
    LiveSessionResponse,
    LiveViewerOverlay,
    ModerationActionCreate,
    ModerationActionResponse,
    RedeemRequest,
    RedeemResponse,
    ViewerCountResponse,
)
from buildtrack.models.database import User
from buildtrack.repositories import LiveSessionRepository, ModerationRepository
from buildtrack.services.live import LiveService
from buildtrack.services.realtime import (
    LIVE_SESSIONS_CHANNEL,
    RealtimeHub,
    RealtimePublisher,
    get_hub,
    get_publisher,
    live_chat_channel,
    live_elapsed_channel,
    live_viewers_channel,
)
from buildtrack.services.realtime.sse import sse_response

router = APIRouter(prefix="/api/live", tags=["live"])
logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)


@router.get("", response_model=List[LiveSessionResponse])
async def list_live_sessions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Everyone who is live right now."""
    sessions = await LiveSessionRepository(db).list_all()
    return [LiveSessionResponse.model_validate(s) for s in sessions]


@router.get("/events")
async def live_sessions_events(
    request: Request,
    hub: RealtimeHub = Depends(get_hub),
    current_user: User = Depends(get_current_active_user),
):
    """SSE stream of live sessions starting and ending."""
    return sse_response(hub, [LIVE_SESSIONS_CHANNEL], request)


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_stale_sessions(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_active_user),
):
    """Delete live records older than the stale threshold."""
    deleted = await LiveSessionRepository(db).cleanup_stale(
        timedelta(hours=settings.live_stale_after_hours)
    )
    await db.commit()
    return CleanupResponse(deleted_count=deleted)


@router.get("/users/{user_id}", response_model=LiveSessionResponse)
async def get_user_live_session(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """A builder's current live session."""
    live = await LiveSessionRepository(db).get_by_user(user_id)
    if live is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User is not live")
    return LiveSessionResponse.model_validate(live)


@router.get("/users/{user_id}/overlay", response_model=LiveViewerOverlay)
async def get_viewer_overlay(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Everything the viewer page shows for a streamer."""
    return await LiveService(db).get_overlay(user_id, current_user.id)


@router.get("/users/{user_id}/points", response_model=ChannelPointsResponse)
async def get_channel_points(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """The caller's channel points for a streamer."""
    points = await LiveService(db).channel_points(current_user.id, user_id)
    return ChannelPointsResponse(streamer_id=user_id, points=points)


@router.post("/users/{user_id}/points/redeem", response_model=RedeemResponse)
async def redeem_channel_points(
    user_id: UUID,
    request: RedeemRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Redeem a reward against the caller's channel points."""
    remaining = await LiveService(db).redeem(current_user.id, user_id, request.cost)
    logger.info(f"{current_user.id} redeemed {request.reward_id} on {user_id}'s channel")
    return RedeemResponse(reward_id=request.reward_id, remaining_points=remaining)


@router.post("/{live_session_id}/join", response_model=ViewerCountResponse)
async def join_live_session(
    live_session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    publisher: RealtimePublisher = Depends(get_publisher),
):
    """Count the caller as a viewer and broadcast the new count."""
    result = await LiveService(db, publisher).join(live_session_id, current_user.id)
    await db.commit()
    return result


@router.post("/{live_session_id}/leave", response_model=ViewerCountResponse)
async def leave_live_session(
    live_session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    publisher: RealtimePublisher = Depends(get_publisher),
):
    """Stop counting the caller as a viewer. The count never drops below zero."""
    result = await LiveService(db, publisher).leave(live_session_id, current_user.id)
    await db.commit()
    return result


@router.get("/{live_session_id}/comments", response_model=List[LiveCommentResponse])
async def list_live_comments(
    live_session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return await LiveService(db).list_comments(live_session_id)


@router.post(
    "/{live_session_id}/comments",
    response_model=LiveCommentResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("30/minute")
async def post_live_comment(
    request: Request,
    live_session_id: UUID,
    payload: LiveCommentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    publisher: RealtimePublisher = Depends(get_publisher),
):
    """Send a chat message to a live session."""
    comment = await LiveService(db, publisher).post_comment(
        live_session_id, current_user.id, payload.message
    )
    await db.commit()
    return comment


@router.post(
    "/{live_session_id}/moderation",
    response_model=ModerationActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def moderate_chat(
    live_session_id: UUID,
    request: ModerationActionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Time out, ban or warn a chatter. Streamer only."""
    action = await LiveService(db).moderate(live_session_id, current_user.id, request)
    await db.commit()
    return ModerationActionResponse.model_validate(action)


@router.get("/{live_session_id}/moderation", response_model=List[ModerationActionResponse])
async def list_moderation_actions(
    live_session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Moderation log of a live session. Streamer only."""
    live = await LiveSessionRepository(db).get_by_id(live_session_id)
    if live is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Live session not found")
    if live.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    actions = await ModerationRepository(db).list_actions(live_session_id)
    return [ModerationActionResponse.model_validate(a) for a in actions]


@router.get("/{live_session_id}/events")
async def live_session_events(
    live_session_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    hub: RealtimeHub = Depends(get_hub),
    current_user: User = Depends(get_current_active_user),
):
    """
    SSE stream for the viewer page.

    Carries viewer count updates, new chat messages and the streamer's
    elapsed-time ticks.
    """
    live = await LiveSessionRepository(db).get_by_id(live_session_id)
    if live is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Live session not found")

    channels = [
        live_viewers_channel(live.id),
        live_chat_channel(live.id),
        live_elapsed_channel(live.user_id),
    ]
    return sse_response(hub, channels, request, initial={"viewers_count": live.viewers_count})
