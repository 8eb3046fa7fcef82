"""
Time-gating policy for automatic refreshes.

Automatic refreshes only happen inside the active window (weekdays and an
hour range, end hour exclusive). Inside the window a refresh fires during
the first minute of every hour divisible by the interval, at most once per
hour slot. Manual refreshes are not subject to any of this.

All decisions take the current time as an argument; only run_forever reads
the clock.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from models.config_models import SchedulerConfig

logger = logging.getLogger(__name__)

MINUTE_BOUNDARY_SLACK_SECONDS = 0.5

WEEKDAY_NAMES = {1: "Mon", 2: "Tue", 3: "Wed", 4: "Thu", 5: "Fri", 6: "Sat", 7: "Sun"}


class ActiveWindow:
    """Weekdays (ISO, Monday=1) and an hour range [start_hour, end_hour)."""

    def __init__(self, weekdays: Iterable[int] = (1, 2, 3, 4, 5), start_hour: int = 9, end_hour: int = 18):
        self.weekdays = frozenset(weekdays)
        self.start_hour = start_hour
        self.end_hour = end_hour

    def contains(self, now: datetime) -> bool:
        return now.isoweekday() in self.weekdays and self.start_hour <= now.hour < self.end_hour

    def describe(self) -> str:
        days = ",".join(WEEKDAY_NAMES[day] for day in sorted(self.weekdays))
        return f"{days} {self.start_hour:02d}:00-{self.end_hour:02d}:00"


class RefreshScheduler:
    """Decides when an automatic refresh should fire and remembers the last one."""

    def __init__(
        self,
        window: ActiveWindow,
        interval_hours: int = 3,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            window: Active window for automatic refreshes
            interval_hours: Fire when the hour is divisible by this
            clock: Wall-clock source used by run_forever (local time by default)
        """
        self.window = window
        self.interval_hours = interval_hours
        self.clock = clock
        self.last_fired: Optional[datetime] = None

    @classmethod
    def from_config(cls, config: SchedulerConfig) -> "RefreshScheduler":
        return cls(
            window=ActiveWindow(config.weekdays, config.start_hour, config.end_hour),
            interval_hours=config.interval_hours,
        )

    def in_active_window(self, now: datetime) -> bool:
        return self.window.contains(now)

    def should_run_on_start(self, now: datetime) -> bool:
        return self.in_active_window(now)

    def _already_fired_in_slot(self, now: datetime) -> bool:
        if self.last_fired is None:
            return False
        return (self.last_fired.date(), self.last_fired.hour) == (now.date(), now.hour)

    def should_fire_now(self, now: datetime) -> bool:
        """True during minute 0 of an interval hour inside the window, once per slot."""
        return (
            self.in_active_window(now)
            and now.hour % self.interval_hours == 0
            and now.minute == 0
            and not self._already_fired_in_slot(now)
        )

    def record_fire(self, now: datetime) -> None:
        self.last_fired = now

    def tick(self, now: datetime, refresh: Callable[[], Any]) -> bool:
        """Run refresh if it is due; returns True when it fired."""
        if not self.should_fire_now(now):
            return False
        self.record_fire(now)
        logger.info(f"⏰ Scheduled refresh at {now:%Y-%m-%d %H:%M}")
        self._run_safely(refresh)
        return True

    def next_check_delay(self, now: datetime, poll_seconds: float) -> float:
        """Seconds to wait so the next check lands just after a minute boundary."""
        until_next_minute = 60 - now.second - now.microsecond / 1_000_000
        return min(poll_seconds, until_next_minute + MINUTE_BOUNDARY_SLACK_SECONDS)

    def run_forever(
        self,
        refresh: Callable[[], Any],
        stop_event: Optional[threading.Event] = None,
        poll_seconds: float = 60,
    ) -> None:
        """
        Run the scheduling loop until stop_event is set.

        Performs one immediate refresh when started inside the active window,
        then checks once a minute, re-aligned to the minute boundary on every
        pass so minute 0 of a slot is never skipped.
        """
        stop_event = stop_event or threading.Event()
        logger.info(
            f"📅 Scheduler started: every {self.interval_hours}h during {self.window.describe()}"
        )

        now = self.clock()
        if self.should_run_on_start(now):
            logger.info("Inside active window, running initial refresh...")
            self.record_fire(now)
            self._run_safely(refresh)
        else:
            logger.info("Outside active window, waiting for the next scheduled slot")

        while not stop_event.wait(self.next_check_delay(now, poll_seconds)):
            now = self.clock()
            self.tick(now, refresh)

        logger.info("Scheduler stopped")

    @staticmethod
    def _run_safely(refresh: Callable[[], Any]) -> None:
        try:
            refresh()
        except Exception as e:
            logger.error(f"✗ Scheduled refresh failed: {e}")
