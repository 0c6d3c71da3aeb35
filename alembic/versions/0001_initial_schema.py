"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, index: bool = False) -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=index
    )


def _user_fk(name: str, nullable: bool = False, ondelete: str = "CASCADE", index: bool = False) -> sa.Column:
    return sa.Column(
        name, sa.Uuid(), sa.ForeignKey("users.id", ondelete=ondelete), nullable=nullable, index=index
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("handle", sa.String(50), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("website", sa.String(500), nullable=True),
        sa.Column("github_username", sa.String(100), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_handle", "users", ["handle"], unique=True)

    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk("user_id", index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("emoji", sa.String(16), nullable=False),
        sa.Column("color", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("github_repo", sa.String(255), nullable=True),
        sa.Column("website", sa.String(500), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    op.create_table(
        "sessions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk("user_id", index=True),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("mood", sa.Integer(), nullable=False),
        sa.Column("metrics", sa.JSON(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        _timestamp("created_at", index=True),
        _timestamp("updated_at"),
        sa.CheckConstraint("duration >= 0", name="ck_sessions_duration_non_negative"),
        sa.CheckConstraint("mood BETWEEN 1 AND 5", name="ck_sessions_mood_range"),
    )

    op.create_table(
        "live_sessions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk("user_id", index=True),
        sa.Column(
            "project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
        ),
        _timestamp("started_at", index=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("mood", sa.Integer(), nullable=True),
        sa.Column("viewers_count", sa.Integer(), nullable=False),
    )

    op.create_table(
        "live_comments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "live_session_id",
            sa.Uuid(),
            sa.ForeignKey("live_sessions.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        _user_fk("user_id"),
        sa.Column("message", sa.String(500), nullable=False),
        _timestamp("created_at"),
    )

    op.create_table(
        "chat_moderation_actions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "live_session_id",
            sa.Uuid(),
            sa.ForeignKey("live_sessions.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        _user_fk("moderator_id"),
        _user_fk("target_user_id"),
        sa.Column("action_type", sa.String(20), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("reason", sa.String(500), nullable=False),
        _timestamp("created_at"),
    )

    op.create_table(
        "stream_analytics",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "live_session_id",
            sa.Uuid(),
            sa.ForeignKey("live_sessions.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("peak_viewers", sa.Integer(), nullable=False),
        sa.Column("total_views", sa.Integer(), nullable=False),
        sa.Column("total_chat_messages", sa.Integer(), nullable=False),
        _timestamp("updated_at"),
    )

    op.create_table(
        "follows",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk("follower_id", index=True),
        _user_fk("following_id", index=True),
        _timestamp("created_at"),
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
    )

    op.create_table(
        "session_kudos",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "session_id",
            sa.Uuid(),
            sa.ForeignKey("sessions.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        _user_fk("user_id"),
        _timestamp("created_at"),
        sa.UniqueConstraint("session_id", "user_id", name="uq_session_kudos_pair"),
    )

    op.create_table(
        "session_comments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "session_id",
            sa.Uuid(),
            sa.ForeignKey("sessions.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        _user_fk("user_id"),
        sa.Column("content", sa.Text(), nullable=False),
        _timestamp("created_at"),
    )

    op.create_table(
        "reports",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk("reporter_id"),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("reason", sa.String(100), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        _timestamp("created_at"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk("user_id", index=True),
        sa.Column("type", sa.String(50), nullable=False),
        _user_fk("actor_id", nullable=True, ondelete="SET NULL"),
        sa.Column("entity_type", sa.String(50), nullable=True),
        sa.Column("entity_id", sa.Uuid(), nullable=True),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
        _timestamp("created_at", index=True),
    )

    op.create_table(
        "challenges",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("emoji", sa.String(16), nullable=False),
        sa.Column("color", sa.String(50), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("goal", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
    )

    op.create_table(
        "challenge_participants",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "challenge_id",
            sa.Uuid(),
            sa.ForeignKey("challenges.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        _user_fk("user_id", index=True),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        _timestamp("joined_at"),
        sa.UniqueConstraint("challenge_id", "user_id", name="uq_challenge_participants_pair"),
    )


def downgrade() -> None:
    for table in (
        "challenge_participants",
        "challenges",
        "notifications",
        "reports",
        "session_comments",
        "session_kudos",
        "follows",
        "stream_analytics",
        "chat_moderation_actions",
        "live_comments",
        "live_sessions",
        "sessions",
        "projects",
    ):
        op.drop_table(table)
    op.drop_index("ix_users_handle", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
