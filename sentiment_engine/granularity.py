"""
Aggregation granularities and interval arithmetic.

Timestamps throughout the engine are epoch milliseconds.
"""

from enum import Enum
from typing import List, Union


MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


class Granularity(str, Enum):
    """Closed set of time-bucket sizes."""

    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    ONE_HOUR = "1h"
    FOUR_HOURS = "4h"
    ONE_DAY = "1d"

    @property
    def duration_ms(self) -> int:
        return GRANULARITY_MS[self]

    @classmethod
    def parse(cls, value: Union[str, "Granularity"]) -> "Granularity":
        """
        Convert a string such as ``"1h"`` into a Granularity.

        Raises:
            ValueError: If the value is not one of 5m, 15m, 1h, 4h, 1d.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(g.value for g in cls)
            raise ValueError(f"Invalid granularity: {value!r}. Use one of: {valid}") from None


GRANULARITY_MS = {
    Granularity.FIVE_MINUTES: 5 * MINUTE_MS,
    Granularity.FIFTEEN_MINUTES: 15 * MINUTE_MS,
    Granularity.ONE_HOUR: HOUR_MS,
    Granularity.FOUR_HOURS: 4 * HOUR_MS,
    Granularity.ONE_DAY: DAY_MS,
}


def granularity_duration_ms(granularity: Union[str, Granularity]) -> int:
    """Length of one bucket in milliseconds."""
    return Granularity.parse(granularity).duration_ms


def floor_to_interval(timestamp_ms: int, granularity: Union[str, Granularity]) -> int:
    """Start of the bucket containing ``timestamp_ms`` (buckets aligned to the epoch)."""
    duration = granularity_duration_ms(granularity)
    return timestamp_ms - (timestamp_ms % duration)


def enumerate_intervals(
    start_ms: int,
    end_ms: int,
    granularity: Union[str, Granularity]
) -> List[int]:
    """
    List bucket start times in ``[start_ms, end_ms)`` stepping by the granularity.

    Raises:
        ValueError: If ``end_ms`` is before ``start_ms``.
    """
    duration = granularity_duration_ms(granularity)
    if end_ms < start_ms:
        raise ValueError(f"end time {end_ms} is before start time {start_ms}")
    return list(range(start_ms, end_ms, duration))


def validate_window(window_length_ms: int) -> int:
    """Reject zero-length or negative windows."""
    if window_length_ms is None or window_length_ms <= 0:
        raise ValueError(f"Window length must be positive, got {window_length_ms}")
    return int(window_length_ms)
