# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Repository pattern implementations for database access."""
from buildtrack.repositories.challenge_repository import ChallengeRepository
from buildtrack.repositories.engagement_repository import CommentRepository, KudosRepository
from buildtrack.repositories.follow_repository import FollowRepository
from buildtrack.repositories.live_session_repository import LiveSessionRepository
from buildtrack.repositories.notification_repository import NotificationRepository
from buildtrack.repositories.project_repository import ProjectRepository
from buildtrack.repositories.report_repository import ReportRepository
from buildtrack.repositories.session_repository import SessionRepository
from buildtrack.repositories.stream_repository import ModerationRepository, StreamAnalyticsRepository
from buildtrack.repositories.user_repository import UserRepository

__all__ = [
    "ChallengeRepository",
    "CommentRepository",
    "FollowRepository",
    "KudosRepository",
    "LiveSessionRepository",
    "ModerationRepository",
    "NotificationRepository",
    "ProjectRepository",
    "ReportRepository",
    "SessionRepository",
    "StreamAnalyticsRepository",
    "UserRepository",
]
