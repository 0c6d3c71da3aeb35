# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Tests for notification fan-out."""
from sqlalchemy.exc import SQLAlchemyError

from buildtrack.models import database as db_models
from buildtrack.repositories import FollowRepository, LiveSessionRepository, NotificationRepository
from buildtrack.services.notifier import NotificationFanout, quote_note
from buildtrack.services.realtime import notifications_channel
from conftest import make_project, make_user


async def _session(db, owner, note=None):
    project = await make_project(db, owner)
    session = db_models.Session(user_id=owner.id, project_id=project.id, duration=60, note=note)
    db.add(session)
    await db.flush()
    return session


def test_quote_note():
    assert quote_note(None) is None
    assert quote_note("") is None
    assert quote_note("short") == "short"
    assert quote_note("x" * 50) == "x" * 50
    assert quote_note("y" * 51) == "y" * 50 + "..."


async def test_kudos_notifies_owner(db, alice, bob, publisher, hub):
    session = await _session(db, alice, note="wired up the payment flow")
    fanout = NotificationFanout(db, publisher)

    async with hub.listen(notifications_channel(alice.id)) as queue:
        notification = await fanout.session_kudos(session, bob.id)
        # Nothing goes out until the caller has committed
        assert queue.empty()
        await db.commit()
        assert await fanout.publish_pending() == 1
        pushed = queue.get_nowait()

    assert notification.type == "kudos"
    assert notification.actor_id == bob.id
    assert notification.data["message"] == 'Someone liked your session: "wired up the payment flow"'
    assert pushed["type"] == "notification"
    assert pushed["notification"]["id"] == str(notification.id)
    assert fanout.pending == []


async def test_rolled_back_notification_is_never_pushed(db, alice, bob, publisher, hub):
    alice_id = alice.id
    async with hub.listen(notifications_channel(alice_id)) as queue:
        fanout = NotificationFanout(db, publisher)
        await fanout.new_follower(alice_id, bob.id)
        await db.rollback()
        assert queue.empty()

    assert await NotificationRepository(db).unread_count(alice_id) == 0
    assert len(fanout.pending) == 1


async def test_self_action_produces_nothing(db, alice):
    session = await _session(db, alice)
    fanout = NotificationFanout(db)

    assert await fanout.session_kudos(session, alice.id) is None
    assert await fanout.session_comment(session, alice.id) is None
    assert await NotificationRepository(db).unread_count(alice.id) == 0


async def test_failure_is_logged_not_raised(db, alice, bob, monkeypatch, caplog):
    session = await _session(db, alice)
    fanout = NotificationFanout(db)

    async def broken_create(*args, **kwargs):
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(fanout.notifications, "create", broken_create)
    assert await fanout.session_comment(session, bob.id) is None
    assert "Failed to create comment notification" in caplog.text

    # The primary write survives the failed side effect
    assert await db.get(db_models.Session, session.id) is not None


async def test_comment_without_note(db, alice, bob):
    session = await _session(db, alice)
    notification = await NotificationFanout(db).session_comment(session, bob.id)
    assert notification.data["message"] == "Someone commented on your session"


async def test_went_live_notifies_followers(db, alice, bob):
    carol = await make_user(db, "carol", handle="carol")
    follows = FollowRepository(db)
    await follows.follow(bob.id, alice.id)
    await follows.follow(carol.id, alice.id)
    live = await LiveSessionRepository(db).start(alice.id, None)

    rows = await NotificationFanout(db).went_live(live)

    assert {row.user_id for row in rows} == {bob.id, carol.id}
    assert rows[0].data["title"] == "alice is now live!"
    assert await NotificationRepository(db).unread_count(alice.id) == 0


async def test_went_live_without_followers(db, alice):
    live = await LiveSessionRepository(db).start(alice.id, None)
    assert await NotificationFanout(db).went_live(live) == []
