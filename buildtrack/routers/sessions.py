# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Sessions router: logged build sessions, kudos and comments."""
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.database import get_db
from buildtrack.middleware.auth import get_current_active_user
from buildtrack.models import database as db_models
from buildtrack.models.api import (
    CommentCreate,
    CommentResponse,
    FeedItem,
    KudosResponse,
    ProfileSummary,
    SessionCreate,
    SessionMetrics,
    SessionProjectSwitch,
    SessionResponse,
    SessionStats,
    SessionUpdate,
)
from buildtrack.models.database import User
from buildtrack.repositories import (
    CommentRepository,
    KudosRepository,
    ProjectRepository,
    SessionRepository,
    UserRepository,
)
from buildtrack.services.feed import FeedService
from buildtrack.services.notifier import NotificationFanout
from buildtrack.services.realtime import RealtimePublisher, get_publisher

router = APIRouter(prefix="/api/sessions", tags=["sessions"])
logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)


def session_stats(sessions: List[db_models.Session]) -> SessionStats:
    """Totals for the stats card: time, count, average mood and active days."""
    if not sessions:
        return SessionStats(total_seconds=0, session_count=0, average_mood=None, days_active=0)
    return SessionStats(
        total_seconds=sum(s.duration for s in sessions),
        session_count=len(sessions),
        average_mood=round(sum(s.mood for s in sessions) / len(sessions), 2),
        days_active=len({s.created_at.date() for s in sessions}),
    )


async def _get_session(db: AsyncSession, session_id: UUID) -> db_models.Session:
    session = await SessionRepository(db).get_by_id(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session


async def _get_own_session(db: AsyncSession, session_id: UUID, user: User) -> db_models.Session:
    session = await _get_session(db, session_id)
    if session.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return session


async def _require_own_project(db: AsyncSession, project_id: UUID, user: User) -> None:
    project = await ProjectRepository(db).get_by_id(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    if project.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: SessionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    publisher: RealtimePublisher = Depends(get_publisher),
):
    """Log a session manually (outside the timer)."""
    await _require_own_project(db, request.project_id, current_user)
    session = await SessionRepository(db).create(
        user_id=current_user.id,
        project_id=request.project_id,
        duration=request.duration,
        note=request.note,
        mood=request.mood,
    )
    await db.commit()

    response = SessionResponse.model_validate(session)
    await publisher.publish_session_event(current_user.id, "insert", response.model_dump(mode="json"))
    return response


@router.get("/stats", response_model=SessionStats)
async def get_weekly_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Stats over the caller's sessions from the last seven days."""
    return session_stats(await SessionRepository(db).list_last_week(current_user.id))


@router.get("/{session_id}", response_model=FeedItem)
async def get_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """A single session as a feed row."""
    session = await _get_session(db, session_id)
    items = await FeedService(db).enrich([session], current_user.id)
    return items[0]


@router.patch("/{session_id}", response_model=SessionResponse)
async def update_session(
    session_id: UUID,
    request: SessionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    publisher: RealtimePublisher = Depends(get_publisher),
):
    """Edit the note or mood of one of the caller's sessions."""
    await _get_own_session(db, session_id, current_user)
    session = await SessionRepository(db).update(session_id, **request.model_dump(exclude_unset=True))
    await db.commit()

    response = SessionResponse.model_validate(session)
    await publisher.publish_session_event(current_user.id, "update", response.model_dump(mode="json"))
    return response


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    publisher: RealtimePublisher = Depends(get_publisher),
):
    """Soft-delete a session. It disappears from every listing."""
    await _get_own_session(db, session_id, current_user)
    await SessionRepository(db).soft_delete(session_id)
    await db.commit()
    await publisher.publish_session_event(current_user.id, "delete", {"id": str(session_id)})


@router.put("/{session_id}/project", response_model=SessionResponse)
async def switch_session_project(
    session_id: UUID,
    request: SessionProjectSwitch,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Move a session to another of the caller's projects."""
    await _get_own_session(db, session_id, current_user)
    await _require_own_project(db, request.project_id, current_user)
    session = await SessionRepository(db).switch_project(session_id, request.project_id)
    await db.commit()
    return SessionResponse.model_validate(session)


@router.put("/{session_id}/metrics", response_model=SessionResponse)
async def save_session_metrics(
    session_id: UUID,
    request: SessionMetrics,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Attach commit-derived metrics to a session."""
    await _get_own_session(db, session_id, current_user)
    session = await SessionRepository(db).save_metrics(session_id, request.model_dump())
    await db.commit()
    return SessionResponse.model_validate(session)


@router.post("/{session_id}/kudos", response_model=KudosResponse)
@limiter.limit("60/minute")
async def give_kudos(
    request: Request,
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    publisher: RealtimePublisher = Depends(get_publisher),
):
    """Give kudos to a session. Giving kudos twice is a no-op."""
    session = await _get_session(db, session_id)
    kudos = KudosRepository(db)
    fanout = NotificationFanout(db, publisher)
    if await kudos.add(session_id, current_user.id) is not None:
        await fanout.session_kudos(session, current_user.id)
    await db.commit()
    await fanout.publish_pending()
    return KudosResponse(session_id=session_id, kudos_count=await kudos.count(session_id), liked=True)


@router.delete("/{session_id}/kudos", response_model=KudosResponse)
@limiter.limit("60/minute")
async def remove_kudos(
    request: Request,
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Take back kudos."""
    await _get_session(db, session_id)
    kudos = KudosRepository(db)
    await kudos.remove(session_id, current_user.id)
    await db.commit()
    return KudosResponse(session_id=session_id, kudos_count=await kudos.count(session_id), liked=False)


@router.get("/{session_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Comments on a session, oldest first, with author profiles."""
    await _get_session(db, session_id)
    comments = await CommentRepository(db).list_for_session(session_id)
    profiles = await UserRepository(db).get_profiles_by_ids(c.user_id for c in comments)

    responses = []
    for comment in comments:
        profile = profiles.get(comment.user_id)
        responses.append(
            CommentResponse.model_validate(comment).model_copy(
                update={"profile": ProfileSummary.model_validate(profile) if profile else None}
            )
        )
    return responses


@router.post("/{session_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def add_comment(
    request: Request,
    session_id: UUID,
    payload: CommentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    publisher: RealtimePublisher = Depends(get_publisher),
):
    """Comment on a session."""
    session = await _get_session(db, session_id)
    content = payload.content.strip()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Comment cannot be empty")

    comment = await CommentRepository(db).add(session_id, current_user.id, content)
    fanout = NotificationFanout(db, publisher)
    await fanout.session_comment(session, current_user.id)
    await db.commit()
    await fanout.publish_pending()
    return CommentResponse.model_validate(comment).model_copy(
        update={"profile": ProfileSummary.model_validate(current_user)}
    )


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Delete one of the caller's own comments."""
    if not await CommentRepository(db).delete_own(comment_id, current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    await db.commit()
