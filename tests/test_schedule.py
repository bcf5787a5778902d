"""Tests for schedule due-ness and the SchedulePolicy trigger."""

import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from lorekeeper.schedule import SCHEDULE_INTERVALS, LearningSchedule, SchedulePolicy, is_due


class TestIsDue:
    def test_daily_not_due_after_23_hours(self, clock):
        assert is_due(LearningSchedule.DAILY, clock.now - timedelta(hours=23), clock.now) is False

    def test_daily_due_after_25_hours(self, clock):
        assert is_due(LearningSchedule.DAILY, clock.now - timedelta(hours=25), clock.now) is True

    def test_interval_boundary_is_due(self, clock):
        assert is_due(LearningSchedule.HOURLY, clock.now - timedelta(hours=1), clock.now) is True

    def test_weekly(self, clock):
        assert is_due(LearningSchedule.WEEKLY, clock.now - timedelta(days=6), clock.now) is False
        assert is_due(LearningSchedule.WEEKLY, clock.now - timedelta(days=7), clock.now) is True

    @pytest.mark.parametrize("last_hours", [None, 0, 1000])
    def test_manual_never_due(self, clock, last_hours):
        last = None if last_hours is None else clock.now - timedelta(hours=last_hours)
        assert is_due(LearningSchedule.MANUAL, last, clock.now) is False

    def test_unset_baseline_due_immediately(self, clock):
        assert is_due(LearningSchedule.WEEKLY, None, clock.now) is True

    def test_every_schedule_has_an_interval(self):
        assert set(SCHEDULE_INTERVALS) == set(LearningSchedule)


def _policy(ledger, clock, schedule=LearningSchedule.DAILY, configured=True):
    pipeline = MagicMock()
    pipeline.configured = configured
    pipeline.run_learning_loop.return_value = 2
    return pipeline, SchedulePolicy(pipeline, ledger, schedule, clock=clock)


class TestSchedulePolicy:
    def test_runs_when_due(self, ledger, clock):
        pipeline, policy = _policy(ledger, clock)
        assert policy.check_and_run_if_due() is True
        pipeline.run_learning_loop.assert_called_once()

    def test_skips_when_not_due(self, ledger, clock):
        run = ledger.start_run(["Rust"])
        ledger.complete_run(run.id, 1)
        clock.advance(hours=23)
        pipeline, policy = _policy(ledger, clock)
        assert policy.check_and_run_if_due() is False
        pipeline.run_learning_loop.assert_not_called()

    def test_skips_when_not_configured(self, ledger, clock):
        pipeline, policy = _policy(ledger, clock, configured=False)
        assert policy.check_and_run_if_due() is False
        pipeline.run_learning_loop.assert_not_called()

    def test_manual_schedule_never_triggers(self, ledger, clock):
        pipeline, policy = _policy(ledger, clock, schedule=LearningSchedule.MANUAL)
        assert policy.check_and_run_if_due() is False

    def test_run_errors_are_swallowed(self, ledger, clock):
        pipeline, policy = _policy(ledger, clock)
        pipeline.run_learning_loop.side_effect = RuntimeError("no model")
        assert policy.check_and_run_if_due() is True

    def test_run_forever_stops_on_event(self, ledger, clock):
        pipeline, policy = _policy(ledger, clock)
        stop = threading.Event()

        def run_once():
            stop.set()
            return 0

        pipeline.run_learning_loop.side_effect = run_once
        policy.run_forever(poll_interval=0.01, stop=stop)
        pipeline.run_learning_loop.assert_called_once()
