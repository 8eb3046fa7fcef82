"""Tests for the refresh scheduler's time-gating policy."""

import threading
from datetime import datetime
from unittest.mock import Mock

import pytest

from models.config_models import SchedulerConfig
from pipeline.scheduler import ActiveWindow, RefreshScheduler

# 2025-03-10 is a Monday, 2025-03-15 a Saturday
MONDAY = datetime(2025, 3, 10)
SATURDAY = datetime(2025, 3, 15)


def at(day: datetime, hour: int, minute: int = 0) -> datetime:
    return day.replace(hour=hour, minute=minute)


@pytest.fixture
def scheduler():
    return RefreshScheduler(ActiveWindow(weekdays=[1, 2, 3, 4, 5], start_hour=9, end_hour=18), interval_hours=3)


class TestActiveWindow:
    def test_inside(self):
        assert ActiveWindow().contains(at(MONDAY, 9)) is True
        assert ActiveWindow().contains(at(MONDAY, 17, 59)) is True

    def test_end_hour_exclusive(self):
        assert ActiveWindow().contains(at(MONDAY, 18)) is False

    def test_before_start(self):
        assert ActiveWindow().contains(at(MONDAY, 8, 59)) is False

    def test_weekend(self):
        assert ActiveWindow().contains(at(SATURDAY, 12)) is False

    def test_describe(self):
        assert ActiveWindow().describe() == "Mon,Tue,Wed,Thu,Fri 09:00-18:00"


class TestShouldFireNow:
    """Tests for RefreshScheduler.should_fire_now()."""

    @pytest.mark.parametrize("hour", [9, 12, 15])
    def test_fires_on_interval_hours_in_window(self, scheduler, hour):
        assert scheduler.should_fire_now(at(MONDAY, hour)) is True

    @pytest.mark.parametrize("hour", [10, 11, 13, 14, 16, 17])
    def test_not_on_other_hours(self, scheduler, hour):
        assert scheduler.should_fire_now(at(MONDAY, hour)) is False

    def test_only_first_minute(self, scheduler):
        assert scheduler.should_fire_now(at(MONDAY, 12, 1)) is False

    @pytest.mark.parametrize("hour", [0, 3, 6, 18, 21])
    def test_not_outside_window(self, scheduler, hour):
        assert scheduler.should_fire_now(at(MONDAY, hour)) is False

    def test_not_on_weekend(self, scheduler):
        assert scheduler.should_fire_now(at(SATURDAY, 12)) is False

    def test_once_per_slot(self, scheduler):
        scheduler.record_fire(at(MONDAY, 12))

        assert scheduler.should_fire_now(at(MONDAY, 12)) is False
        assert scheduler.should_fire_now(at(MONDAY, 15)) is True
        assert scheduler.should_fire_now(at(MONDAY.replace(day=11), 12)) is True

    def test_should_run_on_start(self, scheduler):
        assert scheduler.should_run_on_start(at(MONDAY, 10, 37)) is True
        assert scheduler.should_run_on_start(at(MONDAY, 20)) is False


class TestTick:
    def test_tick_fires_once(self, scheduler):
        refresh = Mock()

        assert scheduler.tick(at(MONDAY, 12), refresh) is True
        assert scheduler.tick(at(MONDAY, 12), refresh) is False
        refresh.assert_called_once()
        assert scheduler.last_fired == at(MONDAY, 12)

    def test_tick_not_due(self, scheduler):
        refresh = Mock()

        assert scheduler.tick(at(MONDAY, 13), refresh) is False
        refresh.assert_not_called()

    def test_refresh_error_is_contained(self, scheduler):
        refresh = Mock(side_effect=RuntimeError("gh missing"))

        assert scheduler.tick(at(MONDAY, 15), refresh) is True


class TestRunForever:
    def test_initial_refresh_inside_window(self):
        stop = threading.Event()
        stop.set()
        refresh = Mock()
        scheduler = RefreshScheduler(ActiveWindow(), clock=lambda: at(MONDAY, 10, 20))

        scheduler.run_forever(refresh, stop_event=stop, poll_seconds=0)

        refresh.assert_called_once()

    def test_no_initial_refresh_outside_window(self):
        stop = threading.Event()
        stop.set()
        refresh = Mock()
        scheduler = RefreshScheduler(ActiveWindow(), clock=lambda: at(SATURDAY, 10))

        scheduler.run_forever(refresh, stop_event=stop, poll_seconds=0)

        refresh.assert_not_called()

    def test_polls_until_stopped(self):
        """Loop checks the clock each poll and fires when a slot comes up."""
        stop = threading.Event()
        times = iter([at(MONDAY, 8, 59), at(MONDAY, 9, 0), at(MONDAY, 9, 1)])

        def clock():
            try:
                return next(times)
            except StopIteration:
                stop.set()
                return at(MONDAY, 9, 2)

        refresh = Mock()
        scheduler = RefreshScheduler(ActiveWindow(), clock=clock)

        scheduler.run_forever(refresh, stop_event=stop, poll_seconds=0)

        refresh.assert_called_once()
        assert scheduler.last_fired == at(MONDAY, 9, 0)


class TestCheckAlignment:
    """Checks are re-aligned to the minute boundary so they never drift past minute 0."""

    def test_delay_reaches_next_minute(self, scheduler):
        now = at(MONDAY, 8, 59).replace(second=30, microsecond=250000)

        assert scheduler.next_check_delay(now, 60) == pytest.approx(30.25)

    def test_delay_capped_by_poll_interval(self, scheduler):
        assert scheduler.next_check_delay(at(MONDAY, 8, 59), 5) == 5

    def test_late_check_realigns(self, scheduler):
        """A check that ran late in the minute waits only until just past the next boundary."""
        now = at(MONDAY, 8, 59).replace(second=59, microsecond=900000)

        assert scheduler.next_check_delay(now, 60) == pytest.approx(0.6)

    def test_run_forever_waits_until_boundary(self):
        times = iter([at(MONDAY, 8, 59).replace(second=40), at(MONDAY, 9, 0).replace(microsecond=500000)])
        scheduler = RefreshScheduler(ActiveWindow(), clock=lambda: next(times))
        stop = Mock()
        stop.wait.side_effect = [False, True]
        refresh = Mock()

        scheduler.run_forever(refresh, stop_event=stop)

        first_wait, second_wait = [c.args[0] for c in stop.wait.call_args_list]
        assert first_wait == pytest.approx(20.5)
        assert second_wait == pytest.approx(60)
        refresh.assert_called_once()
        assert scheduler.last_fired == at(MONDAY, 9, 0).replace(microsecond=500000)


class TestFromConfig:
    def test_from_config(self):
        scheduler = RefreshScheduler.from_config(
            SchedulerConfig(weekdays=[6, 7], start_hour=10, end_hour=14, interval_hours=2)
        )

        assert scheduler.interval_hours == 2
        assert scheduler.should_fire_now(at(SATURDAY, 10)) is True
        assert scheduler.should_fire_now(at(MONDAY, 10)) is False
