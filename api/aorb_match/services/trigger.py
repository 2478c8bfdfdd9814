from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from .state_machine import MatchState

logger = logging.getLogger(__name__)

RoundRunner = Callable[[datetime], Any]


def _spawn_thread(target: Callable[[], None]) -> threading.Thread:
    worker = threading.Thread(target=target, name="matching-round", daemon=True)
    worker.start()
    return worker


class MatchTrigger:
    def __init__(
        self,
        state: MatchState,
        run_round: RoundRunner,
        *,
        interval_seconds: int,
        retry_backoff_seconds: int = 0,
        spawn: Callable[[Callable[[], None]], Any] | None = None,
    ) -> None:
        self.state = state
        self.run_round = run_round
        self.interval = timedelta(seconds=interval_seconds)
        self.retry_backoff = timedelta(seconds=retry_backoff_seconds)
        self._spawn = spawn or _spawn_thread
        self._worker: Any = None
        self.last_result: Any = None

    def check_and_trigger(self, now: datetime | None = None, force: bool = False) -> bool:
        now = now or datetime.now(timezone.utc)
        if not self.state.try_begin(now, self.interval, self.retry_backoff, force=force):
            return False
        logger.info("[MATCHING] round triggered started_at=%s force=%s", now.isoformat(), force)
        try:
            self._worker = self._spawn(lambda: self._run(now))
        except Exception:
            logger.exception("[MATCHING] could not start round worker started_at=%s", now.isoformat())
            self.state.finish(now, succeeded=False)
            return False
        return True

    def _run(self, started_at: datetime) -> None:
        succeeded = False
        try:
            self.last_result = self.run_round(started_at)
            succeeded = True
        except Exception:
            logger.exception("[MATCHING] round failed started_at=%s", started_at.isoformat())
        finally:
            self.state.finish(started_at, succeeded)
        if succeeded:
            logger.info("[MATCHING] round completed started_at=%s", started_at.isoformat())

    def current_status(self) -> tuple[str, datetime | None]:
        return self.state.snapshot()

    def wait(self, timeout: float | None = None) -> None:
        worker = self._worker
        if isinstance(worker, threading.Thread):
            worker.join(timeout)
