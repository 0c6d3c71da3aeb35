# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Live viewer features: overlay, presence, chat, moderation and channel points."""
import logging
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from buildtrack.errors import NotFound, PermissionDenied, ValidationFailed
from buildtrack.models import database as db_models
from buildtrack.models.api import (
    LiveCommentResponse,
    LiveSessionResponse,
    LiveViewerOverlay,
    ModerationActionCreate,
    ProfileSummary,
    ProjectSummary,
    StreamAnalyticsResponse,
    ViewerCountResponse,
)
from buildtrack.repositories import (
    FollowRepository,
    LiveSessionRepository,
    ModerationRepository,
    ProjectRepository,
    StreamAnalyticsRepository,
    UserRepository,
)
from buildtrack.services.realtime import RealtimePublisher
from buildtrack.utils.timeutils import ensure_aware, utcnow

logger = logging.getLogger(__name__)

POINTS_PER_DAY_FOLLOWING = 100
MAX_FOLLOW_POINTS = 1000
ACTIVITY_BONUS_POINTS = 200


class LiveService:
    """Operations behind the live viewer page.

    Analytics counters are updated best-effort: a failure is logged and the
    viewer/chat operation still succeeds.
    """

    def __init__(self, db: AsyncSession, publisher: Optional[RealtimePublisher] = None):
        self.db = db
        self.publisher = publisher
        self.live = LiveSessionRepository(db)
        self.users = UserRepository(db)
        self.projects = ProjectRepository(db)
        self.follows = FollowRepository(db)
        self.moderation = ModerationRepository(db)
        self.analytics = StreamAnalyticsRepository(db)

    async def _require_live(self, live_session_id: UUID) -> db_models.LiveSession:
        live = await self.live.get_by_id(live_session_id)
        if live is None:
            raise NotFound("Live session not found")
        return live

    async def get_overlay(self, streamer_id: UUID, viewer_id: UUID) -> LiveViewerOverlay:
        """Live session plus streamer, project, chat, analytics and viewer state."""
        live = await self.live.get_by_user(streamer_id)
        if live is None:
            raise NotFound("Live session not found")

        streamer = await self.users.get_by_id(streamer_id)
        project = await self.projects.get_by_id(live.project_id) if live.project_id else None
        analytics = await self.analytics.get(live.id)
        elapsed = max(int((utcnow() - ensure_aware(live.started_at)).total_seconds()), 0)

        return LiveViewerOverlay(
            live_session=LiveSessionResponse.model_validate(live),
            streamer=ProfileSummary.model_validate(streamer) if streamer else None,
            project=ProjectSummary.model_validate(project) if project else None,
            elapsed_seconds=elapsed,
            comments=await self.list_comments(live.id),
            analytics=StreamAnalyticsResponse.model_validate(analytics) if analytics else None,
            is_following=await self.follows.is_following(viewer_id, streamer_id),
            channel_points=await self.channel_points(viewer_id, streamer_id),
        )

    async def join(self, live_session_id: UUID, viewer_id: UUID) -> ViewerCountResponse:
        """Count a viewer in. The streamer watching themselves is not counted."""
        live = await self._require_live(live_session_id)
        if live.user_id == viewer_id:
            return ViewerCountResponse(live_session_id=live.id, viewers_count=live.viewers_count)

        count = await self.live.increment_viewers(live.id) or 0
        await self._record_analytics(live.id, views=True, peak=count)
        await self._broadcast_viewers(live.id, count)
        return ViewerCountResponse(live_session_id=live.id, viewers_count=count)

    async def leave(self, live_session_id: UUID, viewer_id: UUID) -> ViewerCountResponse:
        live = await self._require_live(live_session_id)
        if live.user_id == viewer_id:
            return ViewerCountResponse(live_session_id=live.id, viewers_count=live.viewers_count)

        count = await self.live.decrement_viewers(live.id) or 0
        await self._broadcast_viewers(live.id, count)
        return ViewerCountResponse(live_session_id=live.id, viewers_count=count)

    async def post_comment(self, live_session_id: UUID, user_id: UUID, message: str) -> LiveCommentResponse:
        """Insert a chat message, broadcast it and count it."""
        message = message.strip()
        if not message:
            raise ValidationFailed("Message cannot be empty")
        live = await self._require_live(live_session_id)
        await self._ensure_can_chat(live, user_id)

        comment = await self.live.add_comment(live.id, user_id, message)
        author = await self.users.get_by_id(user_id)
        response = LiveCommentResponse.model_validate(comment).model_copy(
            update={"profile": ProfileSummary.model_validate(author) if author else None}
        )

        await self._record_analytics(live.id, chat=True)
        if self.publisher is not None:
            await self.publisher.publish_chat_message(live.id, response.model_dump(mode="json"))
        return response

    async def list_comments(self, live_session_id: UUID) -> List[LiveCommentResponse]:
        comments = await self.live.list_comments(live_session_id)
        profiles = await self.users.get_profiles_by_ids(c.user_id for c in comments)
        return [
            LiveCommentResponse.model_validate(c).model_copy(
                update={
                    "profile": ProfileSummary.model_validate(profiles[c.user_id])
                    if c.user_id in profiles
                    else None
                }
            )
            for c in comments
        ]

    async def moderate(
        self, live_session_id: UUID, moderator_id: UUID, request: ModerationActionCreate
    ) -> db_models.ChatModerationAction:
        """Only the streamer moderates their own chat."""
        live = await self._require_live(live_session_id)
        if live.user_id != moderator_id:
            raise PermissionDenied("Only the streamer can moderate this chat")
        if request.target_user_id == moderator_id:
            raise ValidationFailed("You cannot moderate yourself")
        if request.action_type == "timeout" and not request.duration:
            raise ValidationFailed("Timeouts need a duration")

        action = await self.moderation.add_action(
            live.id,
            moderator_id,
            request.target_user_id,
            request.action_type,
            request.duration,
            request.reason,
        )
        logger.info(
            f"{request.action_type} issued to {request.target_user_id} in live session {live.id}"
        )
        return action

    async def channel_points(self, viewer_id: UUID, streamer_id: UUID) -> int:
        """100 points per day following (capped at 1000) plus a 200 point bonus; 0 if not following."""
        follow = await self.follows.get(viewer_id, streamer_id)
        if follow is None:
            return 0
        days_following = (utcnow() - ensure_aware(follow.created_at)).days
        base = min(days_following * POINTS_PER_DAY_FOLLOWING, MAX_FOLLOW_POINTS)
        return base + ACTIVITY_BONUS_POINTS

    async def redeem(self, viewer_id: UUID, streamer_id: UUID, cost: int) -> int:
        """Check a redemption against the balance. Returns the remaining points."""
        points = await self.channel_points(viewer_id, streamer_id)
        if points < cost:
            raise ValidationFailed("Insufficient channel points", detail=f"{points} available")
        return points - cost

    async def _ensure_can_chat(self, live: db_models.LiveSession, user_id: UUID) -> None:
        if live.user_id == user_id:
            return
        now = utcnow()
        for action in await self.moderation.list_actions(live.id):
            if action.target_user_id != user_id:
                continue
            if action.action_type == "ban":
                raise PermissionDenied("You are banned from this chat")
            if action.action_type == "timeout" and action.duration:
                until = ensure_aware(action.created_at) + timedelta(seconds=action.duration)
                if until > now:
                    raise PermissionDenied(
                        "You are timed out in this chat", detail=f"Until {until.isoformat()}"
                    )

    async def _record_analytics(
        self, live_session_id: UUID, views: bool = False, chat: bool = False, peak: int = 0
    ) -> None:
        try:
            async with self.db.begin_nested():
                if views:
                    await self.analytics.increment_views(live_session_id)
                if chat:
                    await self.analytics.increment_chat_messages(live_session_id)
                if peak > 0:
                    await self.analytics.update_peak_viewers(live_session_id, peak)
        except Exception as e:
            logger.warning(f"Stream analytics update failed for {live_session_id}: {e}")

    async def _broadcast_viewers(self, live_session_id: UUID, count: int) -> None:
        if self.publisher is not None:
            await self.publisher.publish_viewer_count(live_session_id, count)
