# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Builder profiles, follows and community router."""
import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.database import get_db
from buildtrack.deps import Settings, get_settings
from buildtrack.middleware.auth import get_current_active_user
from buildtrack.models.api import (
    CommunityBuilder,
    FeedPage,
    ProfileResponse,
    ProfileSummary,
    ProfileUpdate,
)
from buildtrack.models.database import User
from buildtrack.repositories import (
    FollowRepository,
    ProjectRepository,
    SessionRepository,
    UserRepository,
)
from buildtrack.services.feed import FeedService
from buildtrack.services.notifier import NotificationFanout
from buildtrack.services.realtime import RealtimePublisher, get_publisher
from buildtrack.utils.timeutils import ensure_aware

router = APIRouter(prefix="/api/profiles", tags=["profiles"])
logger = logging.getLogger(__name__)


async def _profile_response(db: AsyncSession, user: User, viewer_id: UUID) -> ProfileResponse:
    follows = FollowRepository(db)
    return ProfileResponse.model_validate(user).model_copy(
        update={
            "followers": await follows.followers_count(user.id),
            "following": await follows.following_count(user.id),
            "is_following": await follows.is_following(viewer_id, user.id)
            if viewer_id != user.id
            else False,
        }
    )


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    settings: Settings = Depends(get_settings),
):
    """Get the caller's profile."""
    repo = UserRepository(db, query_timeout=settings.profile_query_timeout_seconds)
    user = await repo.get_profile(current_user.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return await _profile_response(db, user, current_user.id)


@router.put("/me", response_model=ProfileResponse)
async def upsert_my_profile(
    request: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    settings: Settings = Depends(get_settings),
):
    """Create or update the caller's profile (onboarding and settings)."""
    repo = UserRepository(db, query_timeout=settings.profile_query_timeout_seconds)
    user = await repo.upsert_profile(current_user.id, **request.model_dump(exclude_unset=True))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    await db.commit()
    return await _profile_response(db, user, current_user.id)


@router.get("/search", response_model=List[ProfileSummary])
async def search_profiles(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Search builders by handle or name."""
    users = await UserRepository(db).search(q, limit=limit)
    return [ProfileSummary.model_validate(u) for u in users]


@router.get("/suggested", response_model=List[ProfileSummary])
async def suggested_builders(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Builders the caller does not follow yet."""
    users = await FollowRepository(db).suggested_builders(current_user.id, limit=limit)
    return [ProfileSummary.model_validate(u) for u in users]


@router.get("/community", response_model=List[CommunityBuilder])
async def community_builders(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Builder cards with follow state and build totals."""
    follows = FollowRepository(db)
    sessions = SessionRepository(db)
    projects = ProjectRepository(db)

    users = await UserRepository(db).list_with_handles(limit=limit, exclude_ids=[current_user.id])
    following = set(await follows.following_ids(current_user.id))

    builders = []
    for user in users:
        session_count, total_time = await sessions.totals_by_user(user.id)
        latest = await sessions.list_by_user(user.id, limit=1)
        last_active: datetime = latest[0].created_at if latest else user.created_at
        builders.append(
            CommunityBuilder(
                user_id=user.id,
                handle=user.handle,
                name=user.name,
                avatar_url=user.avatar_url,
                bio=user.bio,
                location=user.location or "",
                is_following=user.id in following,
                followers=await follows.followers_count(user.id),
                following=await follows.following_count(user.id),
                total_build_time=total_time,
                session_count=session_count,
                projects=await projects.count_by_owner(user.id),
                last_active=ensure_aware(last_active),
            )
        )
    return builders


@router.get("/{handle}", response_model=ProfileResponse)
async def get_public_profile(
    handle: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Public profile with follower and following counts."""
    user = await UserRepository(db).get_by_handle(handle)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return await _profile_response(db, user, current_user.id)


@router.get("/{handle}/sessions", response_model=FeedPage)
async def get_profile_sessions(
    handle: str,
    cursor: Optional[datetime] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """A builder's sessions, paginated."""
    user = await UserRepository(db).get_by_handle(handle)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return await FeedService(db).user_page(user.id, current_user.id, limit=limit, cursor=cursor)


@router.post("/{user_id}/follow", status_code=status.HTTP_204_NO_CONTENT)
async def follow_builder(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    publisher: RealtimePublisher = Depends(get_publisher),
):
    """Follow a builder. Following twice is a no-op."""
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot follow yourself")
    if await UserRepository(db).get_by_id(user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    fanout = NotificationFanout(db, publisher)
    if await FollowRepository(db).follow(current_user.id, user_id) is not None:
        await fanout.new_follower(user_id, current_user.id)
    await db.commit()
    await fanout.publish_pending()


@router.delete("/{user_id}/follow", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_builder(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Stop following a builder."""
    await FollowRepository(db).unfollow(current_user.id, user_id)
    await db.commit()
