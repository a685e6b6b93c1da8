"""
Clock sources for session bookkeeping.

The registry and eviction policies read time through a clock object so tests
can move time explicitly.
"""

import threading
import time


class MonotonicClock:
    """Process monotonic clock (seconds)."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """
    Manually advanced clock.

    In tests: call advance() instead of sleeping.
    """

    def __init__(self, current: float = 0.0) -> None:
        self._current = current
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._current

    def advance(self, seconds: float = 1.0) -> float:
        """Move the clock forward and return the new reading."""
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        with self._lock:
            self._current += seconds
            return self._current
