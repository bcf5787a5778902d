"""Run ledger: bounded history of learning runs and the schedule baseline.

Runs move ``running -> done`` or ``running -> error`` exactly once. Only a
``done`` transition advances ``last_run_at``, so a failed run leaves an
overdue schedule due again on the next check.

The history lives in the keyed store and is re-read on every access, so
processes sharing a store agree on whether a run is in progress.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Tuple

from lorekeeper.protocols import KeyValueStore
from lorekeeper.types import (
    LearningRun,
    RunStatus,
    format_datetime,
    new_id,
    parse_datetime,
    utc_now,
)

logger = logging.getLogger(__name__)

RUN_HISTORY_KEY = "self-learning/run-history"
LAST_RUN_AT_KEY = "self-learning/last-run-at"

MAX_RUN_HISTORY = 20

# A run still marked running after this long is assumed to belong to a dead process
STALE_RUN_AFTER = timedelta(hours=2)


class RunLedger:
    """Owns LearningRun records (newest first) and ``last_run_at``."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        max_history: int = MAX_RUN_HISTORY,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock
        self._lock = threading.Lock()
        self.max_history = max_history

    # ---- Reads ----

    @staticmethod
    def _decode(raw: Optional[list]) -> Tuple[LearningRun, ...]:
        return tuple(LearningRun.from_dict(d) for d in (raw or []))

    @property
    def history(self) -> Tuple[LearningRun, ...]:
        return self._decode(self._store.get(RUN_HISTORY_KEY))

    def __len__(self) -> int:
        return len(self.history)

    @property
    def latest_run(self) -> Optional[LearningRun]:
        history = self.history
        return history[0] if history else None

    @property
    def is_running(self) -> bool:
        latest = self.latest_run
        return latest is not None and latest.status is RunStatus.RUNNING

    @property
    def last_run_at(self) -> Optional[datetime]:
        """Completion time of the last successful run."""
        return parse_datetime(self._store.get(LAST_RUN_AT_KEY))

    def get_run(self, run_id: str) -> Optional[LearningRun]:
        for run in self.history:
            if run.id == run_id:
                return run
        return None

    # ---- Transitions ----

    def _mutate(
        self, change: Callable[[Tuple[LearningRun, ...]], Iterable[LearningRun]]
    ) -> Tuple[LearningRun, ...]:
        """Persist ``change(current history)`` in one store update."""

        def apply(raw):
            runs = tuple(change(self._decode(raw)))[: self.max_history]
            return [r.to_dict() for r in runs]

        with self._lock:
            return self._decode(self._store.update(RUN_HISTORY_KEY, apply, []))

    def _finish(self, run_id: str, **changes) -> Optional[LearningRun]:
        finished: List[LearningRun] = []

        def change(history):
            runs = []
            for run in history:
                if run.id == run_id and not run.is_terminal:
                    run = replace(run, **changes)
                    finished.append(run)
                runs.append(run)
            return runs

        self._mutate(change)
        if not finished:
            logger.warning("No running learning run with id %s", run_id)
            return None
        return finished[0]

    def start_run(self, topic_names: Iterable[str]) -> Optional[LearningRun]:
        """Record a new running run and drop the oldest beyond ``max_history``.

        The check and the insert happen in one store update. Returns None
        without recording anything when the stored history already has a
        run in progress.
        """
        run = LearningRun(
            id=new_id(),
            started_at=self._clock(),
            status=RunStatus.RUNNING,
            topics_processed=list(topic_names),
        )
        started: List[LearningRun] = []

        def change(history):
            if history and history[0].status is RunStatus.RUNNING:
                return history
            started.append(run)
            return (run,) + history

        self._mutate(change)
        return started[0] if started else None

    def complete_run(self, run_id: str, insights_saved: int) -> Optional[LearningRun]:
        now = self._clock()
        run = self._finish(
            run_id,
            status=RunStatus.DONE,
            completed_at=now,
            insights_saved=insights_saved,
        )
        if run is not None:
            self._store.set(LAST_RUN_AT_KEY, format_datetime(now))
        return run

    def fail_run(self, run_id: str, error: str) -> Optional[LearningRun]:
        return self._finish(
            run_id,
            status=RunStatus.ERROR,
            completed_at=self._clock(),
            error=error,
        )

    def recover_interrupted(
        self,
        reason: str = "Interrupted before completion",
        *,
        older_than: timedelta = STALE_RUN_AFTER,
    ) -> int:
        """Mark runs left ``running`` by a dead process as failed.

        Only runs started more than ``older_than`` ago are touched, so a run
        another process is still working on survives. Pass ``timedelta(0)``
        to fail every running run.
        """
        now = self._clock()
        cutoff = now - older_than
        recovered: List[str] = []

        def change(history):
            runs = []
            for run in history:
                if run.status is RunStatus.RUNNING and run.started_at <= cutoff:
                    run = replace(run, status=RunStatus.ERROR, completed_at=now, error=reason)
                    recovered.append(run.id)
                runs.append(run)
            return runs

        self._mutate(change)
        if recovered:
            logger.warning("Marked %d interrupted learning run(s) as failed", len(recovered))
        return len(recovered)

    def clear(self) -> None:
        self._mutate(lambda history: ())
