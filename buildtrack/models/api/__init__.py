# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Public API for Pydantic schemas."""
from buildtrack.models.api.challenges_schema import (
    ChallengeResponse,
    ParticipantResponse,
    ProgressUpdate,
)
from buildtrack.models.api.common_schema import ErrorResponse, HealthResponse
from buildtrack.models.api.live_schema import (
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
    StreamAnalyticsResponse,
    ViewerCountResponse,
)
from buildtrack.models.api.notifications_schema import NotificationResponse, UnreadCountResponse
from buildtrack.models.api.profiles_schema import (
    CommunityBuilder,
    ProfileResponse,
    ProfileSummary,
    ProfileUpdate,
)
from buildtrack.models.api.projects_schema import (
    CommunityProject,
    ProjectCreate,
    ProjectResponse,
    ProjectSummary,
    ProjectUpdate,
)
from buildtrack.models.api.sessions_schema import (
    CommentCreate,
    CommentResponse,
    FeedItem,
    FeedPage,
    KudosResponse,
    ReportCreate,
    SessionCreate,
    SessionMetrics,
    SessionProjectSwitch,
    SessionResponse,
    SessionStats,
    SessionUpdate,
)
from buildtrack.models.api.timer_schema import (
    ImportedCommit,
    TimerDetails,
    TimerEndResult,
    TimerLiveToggle,
    TimerProjectSelect,
    TimerStart,
    TimerState,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    # Profiles
    "ProfileSummary",
    "ProfileResponse",
    "ProfileUpdate",
    "CommunityBuilder",
    # Projects
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectSummary",
    "ProjectResponse",
    "CommunityProject",
    # Sessions & feed
    "SessionCreate",
    "SessionUpdate",
    "SessionProjectSwitch",
    "SessionResponse",
    "SessionMetrics",
    "SessionStats",
    "FeedItem",
    "FeedPage",
    "CommentCreate",
    "CommentResponse",
    "KudosResponse",
    "ReportCreate",
    # Live
    "LiveSessionResponse",
    "LiveCommentCreate",
    "LiveCommentResponse",
    "LiveViewerOverlay",
    "StreamAnalyticsResponse",
    "ViewerCountResponse",
    "ModerationActionCreate",
    "ModerationActionResponse",
    "CleanupResponse",
    "ChannelPointsResponse",
    "RedeemRequest",
    "RedeemResponse",
    # Notifications
    "NotificationResponse",
    "UnreadCountResponse",
    # Challenges
    "ChallengeResponse",
    "ParticipantResponse",
    "ProgressUpdate",
    # Timer
    "TimerStart",
    "TimerDetails",
    "TimerLiveToggle",
    "TimerProjectSelect",
    "ImportedCommit",
    "TimerState",
    "TimerEndResult",
]
