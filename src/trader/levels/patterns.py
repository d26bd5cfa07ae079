"""Classic chart pattern detection.

Pivots are strict local extrema: a value above (below) every value within
``pivot_window`` points on each side. Edge points without a full window
never qualify.

Patterns:
- Head and shoulders: three consecutive pivot highs, evenly spaced, the
  middle one highest and the outer two within ``shoulder_tolerance`` of
  each other. Target projects the head height below the neckline.
- Double top/bottom: two consecutive pivot highs (lows) within
  ``double_tolerance`` of each other and at least ``min_pattern_bars``
  apart. Target projects the peak-to-trough depth past the trough (peak)
  between them.
- Bull/bear flag: a rising (falling) regression trend over the last
  ``trend_period`` closes with a counter-sloping channel. The channel
  edges are regressions through the recent pivot highs and lows of the
  closes; both slopes must share a sign and differ by less than
  ``channel_slope_tolerance`` relative to the last close. Target projects
  the channel height from the last close.

Each finder returns the earliest match or None. Absence is a valid
outcome, not an error.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Iterator, Sequence
from decimal import Decimal

from trader.config import PatternSettings, check_fraction, check_positive
from trader.exceptions import InvalidConfiguration
from trader.indicators.window import ZERO, quantize, scaled_quantum
from trader.levels.models import ChartPattern, PatternKind, SwingKind
from trader.models import Candle

Pivot = tuple[int, Decimal]  # (index, value)


def find_pivots(
    values: Sequence[Decimal], window: int, kind: SwingKind = SwingKind.HIGH
) -> list[Pivot]:
    """Strict local highs (or lows) with ``window`` points on each side."""
    pivots: list[Pivot] = []
    for i in range(window, len(values) - window):
        value = values[i]
        left = values[i - window : i]
        right = values[i + 1 : i + window + 1]
        if kind is SwingKind.HIGH:
            is_pivot = value > max(left) and value > max(right)
        else:
            is_pivot = value < min(left) and value < min(right)
        if is_pivot:
            pivots.append((i, value))
    return pivots


def regression(points: Sequence[tuple[int, Decimal]]) -> tuple[Decimal, Decimal, Decimal]:
    """Least-squares line through (index, value) points.

    Returns:
        (slope, mean index, mean value).

    Raises:
        ValueError: If fewer than two points or two distinct indices are given.
    """
    if len(points) < 2:
        raise ValueError(f"Regression needs at least two points, got {len(points)}")
    n = Decimal(len(points))
    x_mean = sum((Decimal(x) for x, _ in points), ZERO) / n
    y_mean = sum((y for _, y in points), ZERO) / n
    numerator = sum(((Decimal(x) - x_mean) * (y - y_mean) for x, y in points), ZERO)
    denominator = sum(((Decimal(x) - x_mean) ** 2 for x, _ in points), ZERO)
    if denominator == ZERO:
        raise ValueError("Regression needs at least two distinct indices")
    return numerator / denominator, x_mean, y_mean


class PatternDetector:
    """Finds head-and-shoulders, double top/bottom and flag patterns.

    Args:
        settings: Pivot window, spacing and tolerance thresholds.

    Raises:
        InvalidConfiguration: If a window is non-positive or a tolerance
            is outside (0, 1].
    """

    def __init__(self, settings: PatternSettings) -> None:
        check_positive("patterns pivot_window", settings.pivot_window)
        check_positive("patterns min_pattern_bars", settings.min_pattern_bars)
        check_positive("patterns flag_window", settings.flag_window)
        check_fraction("patterns shoulder_tolerance", settings.shoulder_tolerance)
        check_fraction("patterns double_tolerance", settings.double_tolerance)
        check_fraction("patterns channel_slope_tolerance", settings.channel_slope_tolerance)
        if settings.trend_period < 2:
            raise InvalidConfiguration(
                f"patterns trend_period must be at least 2, got {settings.trend_period}"
            )
        self._settings = settings

    def detect(self, candles: Sequence[Candle]) -> tuple[ChartPattern, ...]:
        """All patterns found, at most one per kind, in PatternKind order."""
        found = (
            self.head_and_shoulders(candles),
            self.double_top(candles),
            self.double_bottom(candles),
            self.bull_flag(candles),
            self.bear_flag(candles),
        )
        return tuple(p for p in found if p is not None)

    def head_and_shoulders(self, candles: Sequence[Candle]) -> ChartPattern | None:
        s = self._settings
        highs = [c.high for c in candles]
        pivots = find_pivots(highs, s.pivot_window)
        q = scaled_quantum(highs)
        for (left_i, left), (head_i, head), (right_i, right) in zip(
            pivots, pivots[1:], pivots[2:]
        ):
            if not (head > left and head > right):
                continue
            if abs(left - right) / left >= s.shoulder_tolerance:
                continue
            if head_i - left_i != right_i - head_i:
                continue
            neckline = (left + right) / 2
            height = head - neckline
            return ChartPattern(
                kind=PatternKind.HEAD_AND_SHOULDERS,
                start_index=left_i,
                end_index=right_i,
                strength=quantize(height / neckline),
                target=quantize(neckline - height, q),
            )
        return None

    def double_top(self, candles: Sequence[Candle]) -> ChartPattern | None:
        highs = [c.high for c in candles]
        q = scaled_quantum(highs)
        for (first_i, first), (second_i, _) in self._double_pairs(highs, SwingKind.HIGH):
            support = min(c.low for c in candles[first_i:second_i])
            depth = first - support
            return ChartPattern(
                kind=PatternKind.DOUBLE_TOP,
                start_index=first_i,
                end_index=second_i,
                strength=quantize(depth / support),
                target=quantize(support - depth, q),
            )
        return None

    def double_bottom(self, candles: Sequence[Candle]) -> ChartPattern | None:
        lows = [c.low for c in candles]
        q = scaled_quantum(c.high for c in candles)
        for (first_i, first), (second_i, _) in self._double_pairs(lows, SwingKind.LOW):
            resistance = max(c.high for c in candles[first_i:second_i])
            depth = resistance - first
            return ChartPattern(
                kind=PatternKind.DOUBLE_BOTTOM,
                start_index=first_i,
                end_index=second_i,
                strength=quantize(depth / first),
                target=quantize(resistance + depth, q),
            )
        return None

    def bull_flag(self, candles: Sequence[Candle]) -> ChartPattern | None:
        return self._flag(candles, PatternKind.BULL_FLAG)

    def bear_flag(self, candles: Sequence[Candle]) -> ChartPattern | None:
        return self._flag(candles, PatternKind.BEAR_FLAG)

    def _double_pairs(
        self, values: Sequence[Decimal], kind: SwingKind
    ) -> Iterator[tuple[Pivot, Pivot]]:
        """Consecutive pivot pairs close enough in value and far enough apart."""
        s = self._settings
        pivots = find_pivots(values, s.pivot_window, kind)
        for (first_i, first), (second_i, second) in zip(pivots, pivots[1:]):
            if abs(first - second) / first >= s.double_tolerance:
                continue
            if second_i - first_i < s.min_pattern_bars:
                continue
            yield (first_i, first), (second_i, second)

    def _channel(self, closes: Sequence[Decimal], kind: SwingKind) -> tuple[Decimal, Decimal]:
        """(slope, value at the last index) of the recent pivot regression."""
        s = self._settings
        points = find_pivots(closes, s.pivot_window, kind)[-s.flag_window :]
        if len(points) < 2:
            return ZERO, closes[-1]
        slope, x_mean, y_mean = regression(points)
        return slope, y_mean + slope * (Decimal(len(closes) - 1) - x_mean)

    def _flag(self, candles: Sequence[Candle], kind: PatternKind) -> ChartPattern | None:
        s = self._settings
        if len(candles) < s.trend_period:
            return None
        closes = [c.close for c in candles]
        last = closes[-1]
        trend, _, _ = regression(list(enumerate(closes[-s.trend_period :])))
        # Flag sign: +1 expects a rising pole with a falling channel
        sign = 1 if kind is PatternKind.BULL_FLAG else -1
        if trend * sign <= ZERO:
            return None

        top_slope, top = self._channel(closes, SwingKind.HIGH)
        bottom_slope, bottom = self._channel(closes, SwingKind.LOW)
        if top_slope * sign >= ZERO or bottom_slope * sign >= ZERO:
            return None
        if abs(top_slope - bottom_slope) / last >= s.channel_slope_tolerance:
            return None

        height = top - bottom
        return ChartPattern(
            kind=kind,
            start_index=max(0, len(candles) - s.flag_window),
            end_index=len(candles) - 1,
            strength=quantize(abs(trend) / last),
            target=quantize(last + sign * height, scaled_quantum(closes)),
        )
