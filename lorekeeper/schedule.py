"""Schedule policy: decides when an automatic learning run is due."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from lorekeeper.types import utc_now

if TYPE_CHECKING:
    from lorekeeper.ledger import RunLedger
    from lorekeeper.pipeline import LearningPipeline

logger = logging.getLogger(__name__)


class LearningSchedule(str, Enum):
    """How often the learning loop runs by itself."""

    MANUAL = "manual"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


# None means "never automatically due"
SCHEDULE_INTERVALS: dict[LearningSchedule, Optional[timedelta]] = {
    LearningSchedule.MANUAL: None,
    LearningSchedule.HOURLY: timedelta(hours=1),
    LearningSchedule.DAILY: timedelta(hours=24),
    LearningSchedule.WEEKLY: timedelta(days=7),
}

_missing = set(LearningSchedule) - set(SCHEDULE_INTERVALS)
if _missing:  # pragma: no cover - import-time table check
    raise RuntimeError(f"SCHEDULE_INTERVALS is missing {sorted(s.value for s in _missing)}")


def is_due(
    schedule: LearningSchedule,
    last_run_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> bool:
    """Whether enough time has passed since the last successful run.

    A manual schedule is never due. Any other schedule is due straight away
    when no run has completed yet.
    """
    interval = SCHEDULE_INTERVALS[LearningSchedule(schedule)]
    if interval is None:
        return False
    if last_run_at is None:
        return True
    now = now or utc_now()
    return (now - last_run_at) >= interval


class SchedulePolicy:
    """Triggers a learning run when the configured schedule says it is due.

    ``check_and_run_if_due()`` is meant to be called once at process start,
    and optionally on a timer via ``run_forever()``. Run errors are logged and
    swallowed; they remain visible in the run ledger.
    """

    def __init__(
        self,
        pipeline: "LearningPipeline",
        ledger: "RunLedger",
        schedule: LearningSchedule = LearningSchedule.MANUAL,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._pipeline = pipeline
        self._ledger = ledger
        self.schedule = LearningSchedule(schedule)
        self._clock = clock

    def is_due(self) -> bool:
        return is_due(self.schedule, self._ledger.last_run_at, self._clock())

    def check_and_run_if_due(self) -> bool:
        """Run the learning loop if due and configured.

        Returns True if a run was attempted.
        """
        if not self.is_due():
            return False
        if not self._pipeline.configured:
            logger.debug("Learning run is due but the pipeline is not configured")
            return False

        try:
            saved = self._pipeline.run_learning_loop()
            logger.info("Scheduled learning run saved %d insight(s)", saved)
        except Exception as e:
            logger.warning("Scheduled learning run failed: %s", e)
        return True

    def run_forever(self, poll_interval: float = 60.0, stop: Optional[threading.Event] = None) -> None:
        """Check the schedule every ``poll_interval`` seconds until ``stop`` is set."""
        stop = stop or threading.Event()
        logger.info(
            "Schedule loop started (schedule=%s, poll=%.0fs)", self.schedule.value, poll_interval
        )
        while not stop.is_set():
            self.check_and_run_if_due()
            stop.wait(poll_interval)
