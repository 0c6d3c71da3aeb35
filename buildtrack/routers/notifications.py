# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Notifications router."""
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.database import get_db
from buildtrack.middleware.auth import get_current_active_user
from buildtrack.models.api import NotificationResponse, UnreadCountResponse
from buildtrack.models.database import User
from buildtrack.repositories import NotificationRepository
from buildtrack.services.realtime import RealtimeHub, get_hub, notifications_channel
from buildtrack.services.realtime.sse import sse_response

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """The caller's newest notifications."""
    notifications = await NotificationRepository(db).list_for_user(current_user.id, limit=limit)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return UnreadCountResponse(unread=await NotificationRepository(db).unread_count(current_user.id))


@router.post("/read", response_model=UnreadCountResponse)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Mark every notification as read."""
    repo = NotificationRepository(db)
    await repo.mark_all_read(current_user.id)
    await db.commit()
    return UnreadCountResponse(unread=await repo.unread_count(current_user.id))


@router.get("/events")
async def notification_events(
    request: Request,
    db: AsyncSession = Depends(get_db),
    hub: RealtimeHub = Depends(get_hub),
    current_user: User = Depends(get_current_active_user),
):
    """SSE stream of new notifications for the caller."""
    unread = await NotificationRepository(db).unread_count(current_user.id)
    return sse_response(
        hub, [notifications_channel(current_user.id)], request, initial={"unread": unread}
    )
