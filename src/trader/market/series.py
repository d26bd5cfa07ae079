"""Ordered candle series for a single interval.

A TimeframeSeries is the unit the signal analyzer consumes: one main series
(e.g. 1h) plus zero or more auxiliary series at finer intervals (15m, 5m).
Auxiliary series are aligned to the main series by nearest-timestamp-not-after
lookup (bisect), never by interpolation, so no signal ever sees a candle
that closed after the main candle it is judged against.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from trader.exceptions import InsufficientData
from trader.models import Candle


@dataclass(frozen=True)
class TimeframeSeries:
    """Candles for one interval, strictly ascending by timestamp.

    Args:
        interval: Interval label (e.g. "1h", "15m").
        candles: Candles ordered oldest-first with no duplicate timestamps.
    """

    interval: str
    candles: tuple[Candle, ...]
    _timestamps: tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        candles = tuple(self.candles)
        timestamps = tuple(c.timestamp_ms for c in candles)
        for prev, curr in zip(timestamps, timestamps[1:]):
            if curr <= prev:
                raise ValueError(
                    f"{self.interval} candles must be strictly ascending: "
                    f"{curr} follows {prev}"
                )
        object.__setattr__(self, "candles", candles)
        object.__setattr__(self, "_timestamps", timestamps)

    @classmethod
    def from_candles(cls, interval: str, candles: Iterable[Candle]) -> TimeframeSeries:
        return cls(interval=interval, candles=tuple(candles))

    def __len__(self) -> int:
        return len(self.candles)

    @property
    def latest(self) -> Candle:
        """Most recent candle.

        Raises:
            InsufficientData: If the series is empty.
        """
        if not self.candles:
            raise InsufficientData(f"{self.interval} series is empty")
        return self.candles[-1]

    @property
    def closes(self) -> list[Decimal]:
        return [c.close for c in self.candles]

    def tail(self, n: int) -> tuple[Candle, ...]:
        """Last ``n`` candles (fewer if the series is shorter)."""
        if n <= 0:
            return ()
        return self.candles[-n:]

    def until(self, timestamp_ms: int) -> TimeframeSeries:
        """Truncate to candles with timestamp at or before ``timestamp_ms``."""
        idx = bisect_right(self._timestamps, timestamp_ms)
        return TimeframeSeries(interval=self.interval, candles=self.candles[:idx])

    def candle_at(self, timestamp_ms: int) -> Candle | None:
        """Nearest candle not after ``timestamp_ms``, or None if none exists."""
        idx = bisect_right(self._timestamps, timestamp_ms)
        if idx == 0:
            return None
        return self.candles[idx - 1]
