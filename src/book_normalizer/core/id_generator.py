"""Sixteen-digit identifiers for exported page entries."""

import threading
import time
from typing import Callable

TIMESTAMP_DIGITS = 12
COUNTER_DIGITS = 4
COUNTER_CYCLE = 10 ** COUNTER_DIGITS


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class IdGenerator:
    """Generate ids like "4437672544370007".

    Each id is the last 12 digits of a millisecond timestamp followed by a
    4-digit counter cycling 0-9999. When the counter wraps inside a single
    millisecond the timestamp part is advanced by one, so ids from one
    generator never repeat.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms, start: int = 0):
        self._clock = clock
        self._counter = start % COUNTER_CYCLE
        self._last_ms = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now = self._clock()
            if now <= self._last_ms:
                now = self._last_ms
                if self._counter == 0:
                    now += 1
            self._last_ms = now

            counter = self._counter
            self._counter = (self._counter + 1) % COUNTER_CYCLE

        timestamp_part = str(now)[-TIMESTAMP_DIGITS:].rjust(TIMESTAMP_DIGITS, "0")
        return f"{timestamp_part}{counter:0{COUNTER_DIGITS}d}"

    __call__ = next_id


_default_generator = IdGenerator()


def generate_unique_id() -> str:
    """Return an id from the process-wide generator."""
    return _default_generator.next_id()
