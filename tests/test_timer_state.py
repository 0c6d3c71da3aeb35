# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Tests for the SessionTimer state machine."""
import uuid
from datetime import timedelta

import pytest

from buildtrack.errors import ValidationFailed
from buildtrack.timer import SessionTimer, TimerStateName, parse_project_id


@pytest.fixture
def timer(clock, wall_clock):
    return SessionTimer(uuid.uuid4(), clock=clock, wall_clock=wall_clock)


@pytest.fixture
def project_id():
    return uuid.uuid4()


class TestParseProjectId:
    def test_accepts_uuid_and_string(self, project_id):
        assert parse_project_id(project_id) == project_id
        assert parse_project_id(str(project_id)) == project_id

    @pytest.mark.parametrize("value", [None, "", "not-a-uuid", "1234"])
    def test_rejects_missing_or_malformed(self, value):
        with pytest.raises(ValidationFailed):
            parse_project_id(value)

    def test_missing_project_message(self):
        with pytest.raises(ValidationFailed) as exc_info:
            parse_project_id(None)
        assert exc_info.value.message == "Select a project first"


class TestElapsed:
    def test_grows_one_second_per_second(self, timer, clock, project_id):
        timer.start(project_id)
        assert timer.state == TimerStateName.RUNNING
        clock.advance(5)
        assert timer.elapsed == 5
        assert timer.tick() == 5

    def test_frozen_while_paused(self, timer, clock, project_id):
        timer.start(project_id)
        clock.advance(10)
        timer.pause()
        assert timer.state == TimerStateName.PAUSED
        clock.advance(300)
        assert timer.elapsed == 10
        assert timer.tick() is None

    def test_resume_continues_from_accumulated(self, timer, clock, project_id):
        timer.start(project_id)
        clock.advance(10)
        timer.pause()
        clock.advance(60)
        timer.resume()
        clock.advance(5)
        assert timer.elapsed == 15

    def test_never_decreases(self, timer, clock, project_id):
        timer.start(project_id)
        seen = []
        for step in (1, 2, 0, 3):
            clock.advance(step)
            seen.append(timer.elapsed)
            if step == 2:
                timer.pause()
            if step == 0:
                timer.resume()
        assert seen == sorted(seen)

    def test_pause_twice_is_harmless(self, timer, clock, project_id):
        timer.start(project_id)
        clock.advance(4)
        timer.pause()
        timer.pause()
        assert timer.elapsed == 4


class TestStart:
    def test_start_resets_everything(self, timer, clock, project_id):
        timer.start(project_id)
        clock.advance(30)
        timer.set_details(note="wired up auth", mood=5)
        timer.attach_commits([{"sha": "abc"}])
        timer.pause()

        timer.start(project_id)
        assert timer.elapsed == 0
        assert timer.note == ""
        assert timer.mood == 3
        assert timer.commits == []
        assert not timer.is_paused

    def test_start_without_project_fails(self, timer):
        with pytest.raises(ValidationFailed):
            timer.start(None)
        assert timer.state == TimerStateName.IDLE

    def test_start_uses_selected_project(self, timer, project_id):
        timer.select_project(str(project_id))
        timer.start()
        assert timer.project_id == project_id


class TestEnd:
    def test_end_dialog_keeps_clock_running(self, timer, clock, project_id):
        timer.start(project_id)
        clock.advance(20)
        timer.request_end()
        assert timer.state == TimerStateName.CONFIRMING
        clock.advance(5)
        assert timer.elapsed == 25

    def test_cancel_returns_to_previous_state(self, timer, clock, project_id):
        timer.start(project_id)
        timer.pause()
        timer.request_end()
        timer.cancel_end()
        assert timer.state == TimerStateName.PAUSED

    def test_confirm_snapshots_and_resets(self, timer, clock, project_id):
        timer.start(project_id)
        clock.advance(125)
        timer.set_details(note="shipped the feed", mood=4)
        timer.request_end()

        finished = timer.confirm_end()
        assert finished.duration == 125
        assert finished.project_id == project_id
        assert finished.note == "shipped the feed"
        assert finished.mood == 4

        assert timer.state == TimerStateName.IDLE
        assert timer.elapsed == 0
        assert timer.project_id == project_id

    def test_confirm_without_project_is_rejected_before_snapshot(self, timer):
        with pytest.raises(ValidationFailed):
            timer.confirm_end()
        assert timer.state == TimerStateName.IDLE

    def test_confirm_with_nothing_running_is_rejected(self, timer, project_id):
        timer.select_project(project_id)
        with pytest.raises(ValidationFailed):
            timer.confirm_end()

    def test_mood_out_of_range(self, timer, project_id):
        timer.start(project_id)
        with pytest.raises(ValidationFailed):
            timer.set_details(mood=6)
        assert timer.mood == 3

    def test_paused_time_not_in_duration(self, timer, clock, project_id):
        timer.start(project_id)
        clock.advance(60)
        timer.pause()
        clock.advance(3600)
        timer.resume()
        clock.advance(60)
        assert timer.confirm_end().duration == 120


class TestRestore:
    def test_recent_live_record_restores_running(self, timer, wall_clock, clock, project_id):
        live_id = uuid.uuid4()
        started = wall_clock() - timedelta(minutes=45)

        assert timer.restore(live_id, started, project_id) is True
        assert timer.state == TimerStateName.RUNNING
        assert timer.is_live
        assert timer.live_session_id == live_id
        assert timer.project_id == project_id
        assert timer.elapsed == 45 * 60

        clock.advance(10)
        assert timer.elapsed == 45 * 60 + 10

    def test_record_older_than_window_is_not_restored(self, timer, wall_clock, project_id):
        started = wall_clock() - timedelta(hours=12, seconds=1)
        assert timer.restore(uuid.uuid4(), started, project_id) is False
        assert timer.state == TimerStateName.IDLE
        assert not timer.is_live

    def test_naive_started_at_is_treated_as_utc(self, timer, wall_clock, project_id):
        started = (wall_clock() - timedelta(minutes=1)).replace(tzinfo=None)
        assert timer.restore(uuid.uuid4(), started, project_id) is True
        assert timer.elapsed == 60

    def test_snapshot_fields(self, timer, clock, project_id):
        timer.start(project_id)
        clock.advance(3)
        snapshot = timer.snapshot()
        assert snapshot["state"] == "running"
        assert snapshot["elapsed_seconds"] == 3
        assert snapshot["project_id"] == project_id
        assert snapshot["commits_attached"] == 0
