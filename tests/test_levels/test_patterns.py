"""Tests for pivot finding and chart pattern detection.

Shapes use a two-candle pivot window so each pattern fits in a dozen
candles; every expected value is computed by hand.
"""

from decimal import Decimal

import pytest

from trader.config import PatternSettings
from trader.exceptions import InvalidConfiguration
from trader.levels.models import PatternKind, SwingKind
from trader.levels.patterns import PatternDetector, find_pivots, regression
from trader.models import Direction

#: Pole and falling channel: pivot highs 110/108/106, pivot lows 100/98/96,
#: last four closes rising with slope 2.
_BULL_FLAG = [
    "103", "105", "110", "104", "100", "103", "108", "102", "98",
    "101", "106", "100", "96", "99", "102", "104", "105",
]


def _highs(make_candle, highs):
    """Candles closing at their low, one below the given high."""
    return [
        make_candle(i, Decimal(h) - 1, high=h, low=Decimal(h) - 1)
        for i, h in enumerate(highs)
    ]


def _lows(make_candle, lows):
    """Candles closing at the given low, one below their high."""
    return [
        make_candle(i, low, high=Decimal(low) + 1, low=low) for i, low in enumerate(lows)
    ]


@pytest.fixture
def detector() -> PatternDetector:
    return PatternDetector(PatternSettings(pivot_window=2, min_pattern_bars=3, trend_period=4))


class TestFindPivots:
    def test_highs_and_lows(self) -> None:
        values = [Decimal(v) for v in ["1", "2", "5", "2", "1", "0.5", "1", "2"]]
        assert find_pivots(values, 2) == [(2, Decimal("5"))]
        assert find_pivots(values, 2, SwingKind.LOW) == [(5, Decimal("0.5"))]

    def test_plateau_is_not_a_pivot(self) -> None:
        values = [Decimal(v) for v in ["1", "2", "5", "5", "2", "1"]]
        assert find_pivots(values, 2) == []


class TestRegression:
    def test_line(self) -> None:
        points = [(0, Decimal("1")), (1, Decimal("3")), (2, Decimal("5"))]
        slope, x_mean, y_mean = regression(points)
        assert slope == Decimal("2")
        assert x_mean == Decimal("1")
        assert y_mean == Decimal("3")

    def test_single_point(self) -> None:
        with pytest.raises(ValueError):
            regression([(0, Decimal("1"))])


class TestHeadAndShoulders:
    def test_detected(self, detector, make_candle) -> None:
        """Shoulders 14.9/15.1 around an 18 head: neckline 15, height 3."""
        candles = _highs(
            make_candle,
            ["10", "11", "14.9", "11", "10", "12", "18", "12", "10", "11", "15.1", "11", "10"],
        )
        pattern = detector.head_and_shoulders(candles)
        assert pattern is not None
        assert pattern.kind is PatternKind.HEAD_AND_SHOULDERS
        assert (pattern.start_index, pattern.end_index) == (2, 10)
        assert pattern.strength == Decimal("0.2")
        assert pattern.target == Decimal("12")

    def test_uneven_spacing_rejected(self, detector, make_candle) -> None:
        candles = _highs(
            make_candle,
            ["10", "11", "14.9", "11", "10", "12", "18", "12", "10", "11", "11.5", "15.1"]
            + ["10", "9"],
        )
        assert detector.head_and_shoulders(candles) is None

    def test_lopsided_shoulders_rejected(self, detector, make_candle) -> None:
        candles = _highs(
            make_candle,
            ["10", "11", "14.9", "11", "10", "12", "18", "12", "10", "11", "16", "11", "10"],
        )
        assert detector.head_and_shoulders(candles) is None


class TestDoubleTop:
    _TOPS = ["10", "11", "15", "11", "10", "9", "10", "11", "15.1", "11", "10"]

    def test_detected(self, detector, make_candle) -> None:
        """Support is the lowest low between the tops: 8."""
        pattern = detector.double_top(_highs(make_candle, self._TOPS))
        assert pattern is not None
        assert (pattern.start_index, pattern.end_index) == (2, 8)
        assert pattern.strength == Decimal("0.875")
        assert pattern.target == Decimal("1")
        assert pattern.kind.bias is Direction.SHORT

    def test_unequal_tops_rejected(self, detector, make_candle) -> None:
        tops = self._TOPS[:8] + ["16"] + self._TOPS[9:]
        assert detector.double_top(_highs(make_candle, tops)) is None

    def test_tops_too_close_rejected(self, make_candle) -> None:
        detector = PatternDetector(PatternSettings(pivot_window=2, min_pattern_bars=7))
        assert detector.double_top(_highs(make_candle, self._TOPS)) is None


class TestDoubleBottom:
    def test_detected(self, detector, make_candle) -> None:
        """Resistance is the highest high between the bottoms: 12."""
        candles = _lows(make_candle, ["10", "9", "5", "9", "10", "11", "10", "9", "5", "9", "10"])
        pattern = detector.double_bottom(candles)
        assert pattern is not None
        assert (pattern.start_index, pattern.end_index) == (2, 8)
        assert pattern.strength == Decimal("1.4")
        assert pattern.target == Decimal("19")
        assert pattern.kind.bias is Direction.LONG


class TestFlags:
    def test_bull_flag(self, detector, make_candle) -> None:
        """Channel edges 103 and 94 at the last index: height 9 above 105."""
        candles = [make_candle(i, close) for i, close in enumerate(_BULL_FLAG)]
        pattern = detector.bull_flag(candles)
        assert pattern is not None
        assert (pattern.start_index, pattern.end_index) == (0, 16)
        assert pattern.target == Decimal("114")
        assert pattern.strength == Decimal("0.019047619048")
        assert detector.bear_flag(candles) is None

    def test_bear_flag(self, detector, make_candle) -> None:
        candles = [
            make_candle(i, Decimal("210") - Decimal(close)) for i, close in enumerate(_BULL_FLAG)
        ]
        pattern = detector.bear_flag(candles)
        assert pattern is not None
        assert pattern.kind.bias is Direction.SHORT
        assert pattern.target == Decimal("96")
        assert detector.bull_flag(candles) is None

    def test_short_series(self, detector, make_candle) -> None:
        candles = [make_candle(i, close) for i, close in enumerate(_BULL_FLAG[:3])]
        assert detector.bull_flag(candles) is None


class TestDetect:
    def test_one_entry_per_found_kind(self, detector, make_candle) -> None:
        candles = [make_candle(i, close) for i, close in enumerate(_BULL_FLAG)]
        assert [p.kind for p in detector.detect(candles)] == [PatternKind.BULL_FLAG]

    def test_flat_series_has_no_patterns(self, detector, make_candle) -> None:
        assert detector.detect([make_candle(i, "100") for i in range(30)]) == ()


class TestConfiguration:
    def test_trend_period_too_short(self) -> None:
        with pytest.raises(InvalidConfiguration):
            PatternDetector(PatternSettings(trend_period=1))

    def test_zero_tolerance(self) -> None:
        with pytest.raises(InvalidConfiguration):
            PatternDetector(PatternSettings(double_tolerance=Decimal("0")))
