# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Public API for SQLAlchemy models."""
from buildtrack.models.database.challenges_model import Challenge, ChallengeParticipant
from buildtrack.models.database.live_sessions_model import (
    ChatModerationAction,
    LiveComment,
    LiveSession,
    StreamAnalytics,
)
from buildtrack.models.database.notifications_model import Notification
from buildtrack.models.database.projects_model import Project
from buildtrack.models.database.sessions_model import Session
from buildtrack.models.database.social_model import Follow, Report, SessionComment, SessionKudos
from buildtrack.models.database.users_model import User

__all__ = [
    "User",
    "Project",
    "Session",
    "LiveSession",
    "LiveComment",
    "ChatModerationAction",
    "StreamAnalytics",
    "Follow",
    "SessionKudos",
    "SessionComment",
    "Report",
    "Notification",
    "Challenge",
    "ChallengeParticipant",
]
