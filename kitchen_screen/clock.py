"""Time sources. Every lifecycle decision takes `now` from one of these."""

from __future__ import annotations

import threading
import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int: ...


class SystemClock:
    """Wall clock in epoch milliseconds."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class FixedClock:
    """A manually advanced clock for tests and replays."""

    def __init__(self, start_ms: int = 0) -> None:
        self._lock = threading.Lock()
        self._now = int(start_ms)

    def now_ms(self) -> int:
        with self._lock:
            return self._now

    def set(self, now_ms: int) -> None:
        with self._lock:
            self._now = int(now_ms)

    def advance(self, ms: int) -> int:
        with self._lock:
            self._now += int(ms)
            return self._now
