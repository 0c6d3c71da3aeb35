# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Tests for the data-access layer."""
from datetime import timedelta

import pytest

from buildtrack.models import database as db_models
from buildtrack.repositories import (
    ChallengeRepository,
    CommentRepository,
    FollowRepository,
    KudosRepository,
    LiveSessionRepository,
    ModerationRepository,
    NotificationRepository,
    ProjectRepository,
    SessionRepository,
    StreamAnalyticsRepository,
    UserRepository,
)
from buildtrack.services.feed import FeedService
from buildtrack.utils.timeutils import utcnow
from conftest import make_project, make_user


async def _sessions(db, user, project, count):
    """Sessions one minute apart, newest first in the returned list."""
    now = utcnow()
    rows = []
    for i in range(count):
        session = db_models.Session(
            user_id=user.id,
            project_id=project.id,
            duration=60 * (i + 1),
            created_at=now - timedelta(minutes=i),
        )
        db.add(session)
        rows.append(session)
    await db.flush()
    return rows


class TestSessionPagination:
    async def test_pages_never_repeat_a_row(self, db, alice):
        project = await make_project(db, alice)
        created = await _sessions(db, alice, project, 7)
        repo = SessionRepository(db)

        seen, cursor = [], None
        while True:
            page = await repo.list_by_user(alice.id, limit=3, cursor=cursor)
            seen.extend(row.id for row in page)
            if len(page) < 3:
                break
            cursor = page[-1].created_at

        assert seen == [row.id for row in created]
        assert len(set(seen)) == len(seen)

    async def test_feed_page_has_more(self, db, alice):
        project = await make_project(db, alice)
        await _sessions(db, alice, project, 4)
        feed = FeedService(db)

        first = await feed.get_page(alice.id, "mine", limit=3)
        assert len(first.items) == 3
        assert first.has_more is True

        second = await feed.get_page(alice.id, "mine", limit=3, cursor=first.next_cursor)
        assert len(second.items) == 1
        assert second.has_more is False
        assert {i.id for i in first.items}.isdisjoint({i.id for i in second.items})

    async def test_following_scope(self, db, alice, bob):
        await _sessions(db, bob, await make_project(db, bob), 2)
        await _sessions(db, alice, await make_project(db, alice), 1)
        feed = FeedService(db)

        assert (await feed.get_page(alice.id, "following")).items == []
        await FollowRepository(db).follow(alice.id, bob.id)
        page = await feed.get_page(alice.id, "following")
        assert {item.user_id for item in page.items} == {bob.id}
        assert page.items[0].profile.handle == "bob"

        assert len((await feed.get_page(alice.id, "global")).items) == 3


class TestSoftDelete:
    async def test_deleted_sessions_disappear_from_listings(self, db, alice):
        project = await make_project(db, alice)
        rows = await _sessions(db, alice, project, 3)
        repo = SessionRepository(db)

        assert await repo.soft_delete(rows[1].id) is True
        listed = await repo.list_by_user(alice.id)
        assert rows[1].id not in {r.id for r in listed}
        assert await repo.get_by_id(rows[1].id) is None
        assert (await repo.get_by_id(rows[1].id, include_deleted=True)).is_deleted
        assert await repo.totals_by_user(alice.id) == (2, 60 + 180)

    async def test_stats_exclude_deleted(self, db, alice):
        project = await make_project(db, alice)
        rows = await _sessions(db, alice, project, 2)
        repo = SessionRepository(db)
        await repo.soft_delete(rows[0].id)
        assert [s.id for s in await repo.list_last_week(alice.id)] == [rows[1].id]


class TestLiveSessions:
    async def test_start_replaces_existing_record(self, db, alice):
        repo = LiveSessionRepository(db)
        first = await repo.start(alice.id, None)
        second = await repo.start(alice.id, None)
        records = await repo.list_all()
        assert [r.id for r in records] == [second.id]
        assert first.id != second.id

    async def test_viewer_count_never_negative(self, db, alice):
        repo = LiveSessionRepository(db)
        live = await repo.start(alice.id, None)

        assert await repo.increment_viewers(live.id) == 1
        assert await repo.decrement_viewers(live.id) == 0
        assert await repo.decrement_viewers(live.id) == 0
        assert await repo.increment_viewers(live.id) == 1

    async def test_cleanup_stale(self, db, alice, bob):
        repo = LiveSessionRepository(db)
        await repo.start(alice.id, None, started_at=utcnow() - timedelta(hours=3))
        fresh = await repo.start(bob.id, None)

        assert await repo.cleanup_stale(timedelta(hours=1)) == 1
        assert [r.id for r in await repo.list_all()] == [fresh.id]

    async def test_peak_viewers_only_grows(self, db, alice):
        live = await LiveSessionRepository(db).start(alice.id, None)
        analytics = StreamAnalyticsRepository(db)
        await analytics.update_peak_viewers(live.id, 5)
        await analytics.update_peak_viewers(live.id, 3)
        await analytics.increment_views(live.id)
        await analytics.increment_chat_messages(live.id)

        row = await analytics.get(live.id)
        assert row.peak_viewers == 5
        assert row.total_views == 1
        assert row.total_chat_messages == 1

    async def test_moderation_helpers(self, db, alice, bob):
        live = await LiveSessionRepository(db).start(alice.id, None)
        repo = ModerationRepository(db)
        await repo.warn_user(live.id, alice.id, bob.id)
        await repo.timeout_user(live.id, alice.id, bob.id, 300, reason="caps")
        await repo.ban_user(live.id, alice.id, bob.id, reason="spam")

        actions = await repo.list_actions(live.id)
        assert sorted(a.action_type for a in actions) == ["ban", "timeout", "warn"]
        timeout = next(a for a in actions if a.action_type == "timeout")
        assert (timeout.duration, timeout.reason) == (300, "caps")
        assert next(a for a in actions if a.action_type == "warn").reason == "No reason provided"

    async def test_unknown_moderation_action(self, db, alice, bob):
        live = await LiveSessionRepository(db).start(alice.id, None)
        with pytest.raises(ValueError):
            await ModerationRepository(db).add_action(live.id, alice.id, bob.id, "shadowban")


class TestSocial:
    async def test_follow_is_idempotent(self, db, alice, bob):
        repo = FollowRepository(db)
        assert await repo.follow(alice.id, bob.id) is not None
        assert await repo.follow(alice.id, bob.id) is None
        assert await repo.followers_count(bob.id) == 1
        assert await repo.following_ids(alice.id) == [bob.id]

        assert await repo.unfollow(alice.id, bob.id) is True
        assert await repo.is_following(alice.id, bob.id) is False

    async def test_suggested_builders(self, db, alice, bob):
        carol = await make_user(db, "carol", handle="carol")
        await make_user(db, "nohandle")
        repo = FollowRepository(db)
        await repo.follow(alice.id, bob.id)

        suggested = await repo.suggested_builders(alice.id)
        assert [u.id for u in suggested] == [carol.id]

    async def test_kudos_counts(self, db, alice, bob):
        project = await make_project(db, alice)
        rows = await _sessions(db, alice, project, 2)
        kudos = KudosRepository(db)

        assert await kudos.add(rows[0].id, bob.id) is not None
        assert await kudos.add(rows[0].id, bob.id) is None
        assert await kudos.count(rows[0].id) == 1
        assert await kudos.counts_for_sessions([r.id for r in rows]) == {rows[0].id: 1}
        assert await kudos.liked_by([r.id for r in rows], bob.id) == {rows[0].id}

        assert await kudos.remove(rows[0].id, bob.id) is True
        assert await kudos.count(rows[0].id) == 0

    async def test_comments_delete_own_only(self, db, alice, bob):
        project = await make_project(db, alice)
        rows = await _sessions(db, alice, project, 1)
        comments = CommentRepository(db)
        comment = await comments.add(rows[0].id, bob.id, "nice")

        assert await comments.count(rows[0].id) == 1
        assert await comments.delete_own(comment.id, alice.id) is False
        assert await comments.delete_own(comment.id, bob.id) is True
        assert await comments.count(rows[0].id) == 0

    async def test_notifications_read_state(self, db, alice, bob):
        repo = NotificationRepository(db)
        await repo.create(alice.id, "follow", actor_id=bob.id, data={"title": "hi"})
        await repo.create(alice.id, "kudos", actor_id=bob.id)
        assert await repo.unread_count(alice.id) == 2
        assert await repo.mark_all_read(alice.id) == 2
        assert await repo.unread_count(alice.id) == 0


class TestInsertRaces:
    """The existence check passed but another request inserted the pair first."""

    async def test_kudos_race_is_a_noop(self, db, alice, bob, monkeypatch):
        rows = await _sessions(db, alice, await make_project(db, alice), 1)
        kudos = KudosRepository(db)
        assert await kudos.add(rows[0].id, bob.id) is not None
        await db.commit()

        async def stale_check(*args):
            return False

        monkeypatch.setattr(kudos, "has_kudos", stale_check)
        assert await kudos.add(rows[0].id, bob.id) is None
        await db.commit()
        assert await kudos.count(rows[0].id) == 1

    async def test_follow_race_is_a_noop(self, db, alice, bob, monkeypatch):
        follows = FollowRepository(db)
        assert await follows.follow(alice.id, bob.id) is not None
        await db.commit()

        async def stale_check(*args):
            return False

        monkeypatch.setattr(follows, "is_following", stale_check)
        assert await follows.follow(alice.id, bob.id) is None
        await db.commit()
        assert await follows.followers_count(bob.id) == 1

    async def test_join_race_returns_existing_row(self, db, alice, monkeypatch):
        repo = ChallengeRepository(db)
        challenge = await repo.create("Ship daily", goal=7)
        first = await repo.join(challenge.id, alice.id)
        await db.commit()

        lookup = repo.get_participant
        calls = []

        async def stale_then_real(challenge_id, user_id):
            calls.append(user_id)
            if len(calls) == 1:
                return None
            return await lookup(challenge_id, user_id)

        monkeypatch.setattr(repo, "get_participant", stale_then_real)
        again = await repo.join(challenge.id, alice.id)
        await db.commit()

        assert again.id == first.id
        assert len((await repo.get_by_id(challenge.id)).participants) == 1


class TestProfilesAndProjects:
    async def test_upsert_profile_handle_conflict(self, db, alice, bob):
        from buildtrack.errors import Conflict

        with pytest.raises(Conflict):
            await UserRepository(db).upsert_profile(bob.id, handle="alice")

    async def test_community_activity(self, db, alice):
        project = await make_project(db, alice, name="Public app")
        await make_project(db, alice, name="Secret", is_public=False)
        await _sessions(db, alice, project, 2)

        rows = await ProjectRepository(db).list_public_with_activity()
        assert len(rows) == 1
        found, count, total, last = rows[0]
        assert found.id == project.id
        assert (count, total) == (2, 180)
        assert last is not None

    async def test_challenge_join_is_idempotent(self, db, alice):
        repo = ChallengeRepository(db)
        challenge = await repo.create("Ship daily", goal=7)
        await repo.join(challenge.id, alice.id)
        await repo.join(challenge.id, alice.id)

        loaded = await repo.get_by_id(challenge.id)
        assert len(loaded.participants) == 1
        participant = await repo.update_progress(challenge.id, alice.id, 3, score=30)
        assert (participant.progress, participant.score) == (3, 30)
        assert await repo.leave(challenge.id, alice.id) is True
