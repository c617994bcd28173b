"""
Time sources for computed and created timestamps.

All engine components take a clock instead of calling ``time.time()``
directly so that backfills and tests produce deterministic records.
"""

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current time in epoch milliseconds."""

    def now_ms(self) -> int:
        ...


class SystemClock:
    """Wall-clock time source."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class FixedClock:
    """
    Deterministic clock for backfills and tests.

    Example:
        >>> clock = FixedClock(1_700_000_000_000)
        >>> clock.now_ms()
        1700000000000
        >>> clock.advance(60_000)
        >>> clock.now_ms()
        1700000060000
    """

    def __init__(self, now_ms: int = 0):
        self._now_ms = int(now_ms)

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, delta_ms: int) -> None:
        """Move the clock forward by ``delta_ms`` milliseconds."""
        self._now_ms += int(delta_ms)

    def set(self, now_ms: int) -> None:
        self._now_ms = int(now_ms)
