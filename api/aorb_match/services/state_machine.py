from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Any

IDLE = "idle"
RUNNING = "running"


def is_due(
    status: str,
    now: datetime,
    last_completed_at: datetime | None,
    last_failed_at: datetime | None,
    interval: timedelta,
    retry_backoff: timedelta,
) -> bool:
    if status != IDLE:
        return False
    if last_failed_at is not None and now - last_failed_at < retry_backoff:
        return False
    if last_completed_at is None:
        return True
    return now - last_completed_at >= interval


class MatchState:
    """Process-wide round status shared by request handlers and the round worker.

    Every read and write goes through one lock so ``(status, last_completed_at)``
    is always observed as a pair.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._status = IDLE
        self._last_completed_at: datetime | None = None
        self._last_failed_at: datetime | None = None
        self._started_at: datetime | None = None

    def try_begin(
        self,
        now: datetime,
        interval: timedelta,
        retry_backoff: timedelta = timedelta(0),
        force: bool = False,
    ) -> bool:
        with self._lock:
            if force:
                due = self._status == IDLE
            else:
                due = is_due(self._status, now, self._last_completed_at, self._last_failed_at, interval, retry_backoff)
            if not due:
                return False
            self._status = RUNNING
            self._started_at = now
            return True

    def finish(self, started_at: datetime, succeeded: bool, now: datetime | None = None) -> None:
        with self._lock:
            self._status = IDLE
            self._started_at = None
            if succeeded:
                self._last_completed_at = started_at
                self._last_failed_at = None
            else:
                self._last_failed_at = now or started_at

    def snapshot(self) -> tuple[str, datetime | None]:
        with self._lock:
            return self._status, self._last_completed_at

    def describe(self) -> dict[str, Any]:
        with self._lock:
            return {
                "status": self._status,
                "last_completed_at": self._last_completed_at,
                "last_failed_at": self._last_failed_at,
                "started_at": self._started_at,
            }
