# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Live session SQLAlchemy models."""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from buildtrack.database import Base
from buildtrack.utils.timeutils import utcnow


class LiveSession(Base):
    """A session currently being broadcast to viewers."""

    __tablename__ = "live_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True, nullable=False
    )
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mood: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    viewers_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    comments: Mapped[list["LiveComment"]] = relationship(
        "LiveComment", back_populates="live_session", cascade="all, delete-orphan"
    )


class LiveComment(Base):
    """Chat message posted while watching a live session."""

    __tablename__ = "live_comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    live_session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("live_sessions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    message: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    live_session: Mapped["LiveSession"] = relationship("LiveSession", back_populates="comments")


class ChatModerationAction(Base):
    """Timeout, ban or warning issued in a live chat."""

    __tablename__ = "chat_moderation_actions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    live_session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("live_sessions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    moderator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    target_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    action_type: Mapped[str] = mapped_column(String(20), nullable=False)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reason: Mapped[str] = mapped_column(String(500), default="No reason provided", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class StreamAnalytics(Base):
    """Per live session counters shown on the streamer dashboard."""

    __tablename__ = "stream_analytics"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    live_session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("live_sessions.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    peak_viewers: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_chat_messages: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )
