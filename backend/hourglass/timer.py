"""Stopwatch used for live hour logging.

State machine: idle -> running <-> paused; ``reset`` returns to idle from any
state. Elapsed time only accumulates while running. Only a paused stopwatch
with elapsed time can be logged.
"""

from __future__ import annotations

import datetime as dt
from threading import RLock
from typing import Callable, Optional

TimeProvider = Callable[[], dt.datetime]

IDLE = "idle"
RUNNING = "running"
PAUSED = "paused"


class TimerStateError(RuntimeError):
    pass


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def format_elapsed(seconds: int) -> str:
    hours, remainder = divmod(max(seconds, 0), 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class Stopwatch:
    def __init__(self, time_provider: Optional[TimeProvider] = None) -> None:
        self._lock = RLock()
        self._time_provider: TimeProvider = time_provider or _utcnow
        self._state = IDLE
        self._accumulated = 0.0
        self._last_resume: Optional[dt.datetime] = None

    @property
    def state(self) -> str:
        return self._state

    def elapsed_seconds(self) -> int:
        with self._lock:
            total = self._accumulated
            if self._state == RUNNING and self._last_resume is not None:
                total += (self._time_provider() - self._last_resume).total_seconds()
            return max(int(total), 0)

    def start(self) -> None:
        with self._lock:
            if self._state == RUNNING:
                raise TimerStateError("Timer is already running")
            self._last_resume = self._time_provider()
            self._state = RUNNING

    def pause(self) -> None:
        with self._lock:
            if self._state != RUNNING:
                raise TimerStateError("Timer is not running")
            now = self._time_provider()
            if self._last_resume is not None:
                self._accumulated += (now - self._last_resume).total_seconds()
            self._last_resume = None
            self._state = PAUSED

    def resume(self) -> None:
        with self._lock:
            if self._state != PAUSED:
                raise TimerStateError("Timer is not paused")
            self.start()

    def reset(self) -> None:
        with self._lock:
            self._state = IDLE
            self._accumulated = 0.0
            self._last_resume = None

    def loggable_hours(self) -> float:
        """Return the elapsed time in hours, ready to be logged.

        The stopwatch is left untouched; callers reset it once the entry is saved.
        """
        with self._lock:
            if self._state == RUNNING:
                raise TimerStateError("Pause the timer before logging the elapsed time")
            seconds = self.elapsed_seconds()
            if seconds <= 0:
                raise TimerStateError("No elapsed time to log")
            return seconds / 3600
