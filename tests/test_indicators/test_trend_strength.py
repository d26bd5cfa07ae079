"""Tests for ADX."""

from decimal import Decimal

import pytest

from trader.exceptions import InsufficientData
from trader.indicators.trend import adx


class TestADX:
    def test_pure_uptrend_is_100(self, make_candle) -> None:
        """Only +DM is ever positive, so every DX is 100."""
        candles = [
            make_candle(i, str(9 + i), high=str(10 + i), low=str(8 + i)) for i in range(4)
        ]
        assert adx(candles, period=2) == Decimal("100")

    def test_pure_downtrend_is_100(self, make_candle) -> None:
        candles = [
            make_candle(i, str(20 - i), high=str(21 - i), low=str(19 - i)) for i in range(4)
        ]
        assert adx(candles, period=2) == Decimal("100")

    def test_no_range_is_0(self, make_candle) -> None:
        candles = [make_candle(i, "10") for i in range(6)]
        assert adx(candles, period=3) == Decimal("0")

    def test_needs_two_periods(self, make_candle) -> None:
        candles = [make_candle(i, "10") for i in range(27)]
        with pytest.raises(InsufficientData):
            adx(candles, period=14)
