# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Tests for TimerService: persistence, live coupling and restore."""
import uuid
from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from buildtrack.deps import Settings
from buildtrack.errors import PermissionDenied, ValidationFailed
from buildtrack.repositories import LiveSessionRepository, SessionRepository
from buildtrack.services.realtime import LIVE_SESSIONS_CHANNEL, live_elapsed_channel
from buildtrack.timer.service import TimerService
from buildtrack.timer.ticker import LiveTicker
from conftest import make_project


@pytest.fixture
def settings():
    return Settings(live_restore_window_hours=12)


@pytest.fixture
def service(db, registry, settings, publisher):
    return TimerService(db, registry, settings, publisher)


async def test_confirm_persists_session(service, db, alice, clock):
    project = await make_project(db, alice)
    await db.commit()

    await service.start(alice.id, str(project.id))
    clock.advance(125)
    await service.set_details(alice.id, note="built the timer", mood=5)
    await service.request_end(alice.id)

    result = await service.confirm_end(alice.id)
    assert result.saved is True
    assert result.error is None
    assert result.session.duration == 125
    assert result.session.mood == 5
    assert result.timer.state == "idle"

    rows = await SessionRepository(db).list_by_user(alice.id)
    assert [r.duration for r in rows] == [125]


async def test_confirm_with_commits_saves_metrics(service, db, alice, clock):
    project = await make_project(db, alice)
    await db.commit()

    await service.start(alice.id, project.id)
    clock.advance(60)
    await service.attach_commits(
        alice.id,
        [
            {"sha": "a1", "repo": "alice/app", "stats": {"additions": 10, "deletions": 2, "total": 12}, "files": [{}, {}]},
            {"sha": "b2", "repo": "alice/app", "stats": {"additions": 5, "deletions": 5, "total": 10}, "files": [{}]},
        ],
    )
    result = await service.confirm_end(alice.id)

    assert result.metrics.commits == 2
    assert result.metrics.additions == 15
    assert result.metrics.deletions == 7
    assert result.metrics.total_lines == 22
    assert result.metrics.files_changed == 3
    assert result.metrics.repos == ["alice/app"]
    assert result.session.metrics["commits"] == 2


async def test_confirm_without_project_writes_nothing(service, db, alice):
    with pytest.raises(ValidationFailed):
        await service.confirm_end(alice.id)
    assert await SessionRepository(db).list_by_user(alice.id) == []


async def test_failed_save_still_resets_timer(service, db, alice, clock, monkeypatch):
    project = await make_project(db, alice)
    await db.commit()
    await service.start(alice.id, project.id)
    clock.advance(30)

    async def broken_create(*args, **kwargs):
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(service.sessions, "create", broken_create)
    result = await service.confirm_end(alice.id)

    assert result.saved is False
    assert "Failed to save session" in result.error
    assert result.timer.state == "idle"
    assert result.timer.elapsed_seconds == 0


async def test_start_rejects_someone_elses_project(service, db, alice, bob):
    project = await make_project(db, bob)
    await db.commit()
    with pytest.raises(PermissionDenied):
        await service.start(alice.id, project.id)


async def test_toggle_live_replaces_existing_record(service, db, alice, hub):
    project = await make_project(db, alice)
    live_repo = LiveSessionRepository(db)
    stale = await live_repo.start(alice.id, project.id)
    await db.commit()

    # A live record from elsewhere; the timer restores onto it first
    state = await service.get_state(alice.id)
    assert state.is_live
    assert state.live_session_id == stale.id

    # Going offline then live again leaves exactly one record
    await service.toggle_live(alice.id)
    async with hub.listen(LIVE_SESSIONS_CHANNEL) as queue:
        state = await service.toggle_live(alice.id, str(project.id))
        event = queue.get_nowait()

    assert state.is_live
    assert event["type"] == "started"
    records = await live_repo.list_all()
    assert len(records) == 1
    assert records[0].id != stale.id


async def test_toggle_live_requires_valid_project(service, alice):
    with pytest.raises(ValidationFailed) as exc_info:
        await service.toggle_live(alice.id, "garbage")
    assert exc_info.value.message == "Invalid project selection"


async def test_ending_live_session_deletes_record(service, db, alice, clock):
    project = await make_project(db, alice)
    await db.commit()
    await service.start(alice.id, project.id)
    await service.toggle_live(alice.id)
    clock.advance(10)

    result = await service.confirm_end(alice.id)
    assert result.saved
    assert result.timer.is_live is False
    assert await LiveSessionRepository(db).get_by_user(alice.id) is None


async def test_restore_within_window(service, db, alice, wall_clock):
    project = await make_project(db, alice)
    await LiveSessionRepository(db).start(
        alice.id, project.id, started_at=wall_clock() - timedelta(hours=2)
    )
    await db.commit()

    state = await service.get_state(alice.id)
    assert state.state == "running"
    assert state.is_live
    assert state.project_id == project.id
    assert state.elapsed_seconds == 2 * 3600


async def test_stale_record_is_deleted_not_restored(service, db, alice, wall_clock):
    project = await make_project(db, alice)
    await LiveSessionRepository(db).start(
        alice.id, project.id, started_at=wall_clock() - timedelta(hours=13)
    )
    await db.commit()

    state = await service.get_state(alice.id)
    assert state.state == "idle"
    assert not state.is_live
    assert await LiveSessionRepository(db).get_by_user(alice.id) is None


async def test_restore_runs_once_until_recheck(service, db, alice, wall_clock):
    assert (await service.get_state(alice.id)).state == "idle"

    project = await make_project(db, alice)
    await LiveSessionRepository(db).start(alice.id, project.id, started_at=wall_clock())
    await db.commit()

    assert (await service.get_state(alice.id)).state == "idle"
    assert (await service.recheck(alice.id)).is_live


async def test_ticker_broadcasts_only_live_timers(registry, publisher, hub, clock):
    live_user, quiet_user = uuid.uuid4(), uuid.uuid4()
    live_timer = registry.get(live_user)
    live_timer.start(uuid.uuid4())
    live_timer.mark_live(uuid.uuid4())
    registry.get(quiet_user).start(uuid.uuid4())
    clock.advance(7)

    ticker = LiveTicker(registry, publisher)
    async with hub.listen(live_elapsed_channel(live_user)) as queue:
        sent = await ticker.tick_once()
        assert sent == 1
        assert queue.get_nowait() == {"elapsed": 7}


async def test_restored_session_without_project_can_be_saved(service, db, alice, wall_clock):
    # The live record's project was deleted while the server was down
    await LiveSessionRepository(db).start(alice.id, None, started_at=wall_clock() - timedelta(minutes=5))
    project = await make_project(db, alice)
    await db.commit()

    state = await service.get_state(alice.id)
    assert state.is_live
    assert state.project_id is None
    with pytest.raises(ValidationFailed):
        await service.confirm_end(alice.id)
    assert (await service.get_state(alice.id)).elapsed_seconds == 300

    state = await service.select_project(alice.id, str(project.id))
    assert state.project_id == project.id
    assert state.elapsed_seconds == 300

    result = await service.confirm_end(alice.id)
    assert result.saved
    assert result.session.duration == 300
    assert result.session.project_id == project.id


async def test_select_project_checks_ownership(service, db, alice, bob):
    project = await make_project(db, bob)
    await db.commit()
    with pytest.raises(PermissionDenied):
        await service.select_project(alice.id, project.id)
    with pytest.raises(ValidationFailed):
        await service.select_project(alice.id, "garbage")


def test_registry_sweeps_only_idle_offline_timers(registry, wall_clock):
    idle_user, running_user, live_user = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    idle = registry.get(idle_user)
    registry.get(running_user).start(uuid.uuid4())
    registry.get(live_user).mark_live(uuid.uuid4())

    wall_clock.advance(30 * 60)
    assert registry.sweep() == 0

    wall_clock.advance(31 * 60)
    assert registry.sweep() == 1
    assert len(registry) == 2
    assert registry.get(idle_user) is not idle


def test_registry_keeps_recently_used_timers(registry, wall_clock):
    user_id = uuid.uuid4()
    timer = registry.get(user_id)
    wall_clock.advance(50 * 60)
    assert registry.get(user_id) is timer
    wall_clock.advance(50 * 60)
    assert registry.sweep() == 0
    assert registry.get(user_id) is timer
