# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Activity feed assembly: scoped session pages enriched for display."""
import logging
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.errors import ValidationFailed
from buildtrack.models import database as db_models
from buildtrack.models.api import FeedItem, FeedPage, ProfileSummary
from buildtrack.repositories import (
    CommentRepository,
    FollowRepository,
    KudosRepository,
    SessionRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

FEED_SCOPES = ("mine", "following", "global")


class FeedService:
    """Builds feed pages.

    Pages are ordered by created_at descending. ``next_cursor`` is the
    created_at of the last row and is used exclusively by the next request,
    so a row never appears on two pages. A page shorter than the requested
    size is the last one.
    """

    def __init__(self, db: AsyncSession):
        self.sessions = SessionRepository(db)
        self.users = UserRepository(db)
        self.follows = FollowRepository(db)
        self.kudos = KudosRepository(db)
        self.comments = CommentRepository(db)

    async def get_page(
        self,
        viewer_id: UUID,
        scope: str = "mine",
        limit: int = 20,
        cursor: Optional[datetime] = None,
    ) -> FeedPage:
        """One page of the feed for scope mine, following or global."""
        if scope == "mine":
            rows = await self.sessions.list_by_user(viewer_id, limit, cursor)
        elif scope == "following":
            following = await self.follows.following_ids(viewer_id)
            rows = await self.sessions.list_by_users(following, limit, cursor)
        elif scope == "global":
            rows = await self.sessions.list_global(limit, cursor)
        else:
            raise ValidationFailed(f"Unknown feed scope: {scope}", detail=f"Use one of {FEED_SCOPES}")

        return await self.to_page(rows, viewer_id, limit)

    async def project_page(
        self,
        project_id: UUID,
        viewer_id: UUID,
        limit: int = 20,
        cursor: Optional[datetime] = None,
    ) -> FeedPage:
        rows = await self.sessions.list_by_project(project_id, limit, cursor)
        return await self.to_page(rows, viewer_id, limit)

    async def user_page(
        self,
        user_id: UUID,
        viewer_id: UUID,
        limit: int = 20,
        cursor: Optional[datetime] = None,
    ) -> FeedPage:
        rows = await self.sessions.list_by_user(user_id, limit, cursor)
        return await self.to_page(rows, viewer_id, limit)

    async def to_page(
        self, rows: Sequence[db_models.Session], viewer_id: UUID, limit: int
    ) -> FeedPage:
        items = await self.enrich(rows, viewer_id)
        return FeedPage(
            items=items,
            next_cursor=rows[-1].created_at if rows else None,
            has_more=len(rows) >= limit,
        )

    async def enrich(self, rows: Sequence[db_models.Session], viewer_id: UUID) -> List[FeedItem]:
        """Attach profile, counts and the viewer's liked flag to session rows."""
        if not rows:
            return []

        session_ids = [row.id for row in rows]
        profiles = await self.users.get_profiles_by_ids(row.user_id for row in rows)
        kudos_counts = await self.kudos.counts_for_sessions(session_ids)
        comment_counts = await self.comments.counts_for_sessions(session_ids)
        liked = await self.kudos.liked_by(session_ids, viewer_id)

        items = []
        for row in rows:
            item = FeedItem.model_validate(row)
            profile = profiles.get(row.user_id)
            items.append(
                item.model_copy(
                    update={
                        "profile": ProfileSummary.model_validate(profile) if profile else None,
                        "kudos_count": kudos_counts.get(row.id, 0),
                        "comments_count": comment_counts.get(row.id, 0),
                        "liked": row.id in liked,
                    }
                )
            )
        return items
