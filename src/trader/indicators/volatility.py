"""Volatility measures: Bollinger Bands, ATR and the ATR volatility score.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from trader.config import check_positive
from trader.exceptions import InsufficientData
from trader.indicators.models import BollingerBands
from trader.indicators.window import (
    HUNDRED,
    ZERO,
    quantize,
    require_length,
    require_period,
    scaled_quantum,
)
from trader.models import Candle


def bollinger_bands(
    closes: Sequence[Decimal],
    period: int = 20,
    num_std: Decimal = Decimal("2"),
) -> BollingerBands:
    """Compute Bollinger Bands over the last ``period`` closes.

    middle = SMA(period); upper/lower = middle +/- num_std * population stddev.
    Bandwidth = (upper - lower) / middle, which is never negative because
    candle prices are positive.

    Raises:
        InsufficientData: If fewer than ``period`` closes are supplied.
    """
    require_period("bollinger", period)
    check_positive("bollinger num_std", num_std)
    require_length("bollinger", closes, period)

    window = closes[-period:]
    divisor = Decimal(period)
    middle = sum(window, ZERO) / divisor
    variance = sum(((c - middle) ** 2 for c in window), ZERO) / divisor
    offset = num_std * variance.sqrt()

    q = scaled_quantum(window)
    upper = quantize(middle + offset, q)
    lower = quantize(middle - offset, q)
    middle = quantize(middle, q)
    return BollingerBands(
        upper=upper,
        middle=middle,
        lower=lower,
        bandwidth=quantize((upper - lower) / middle),
    )


def true_ranges(candles: Sequence[Candle]) -> list[Decimal]:
    """True range for every candle after the first.

    TR = max(high - low, |high - prev_close|, |low - prev_close|)
    """
    return [
        max(
            curr.high - curr.low,
            abs(curr.high - prev.close),
            abs(curr.low - prev.close),
        )
        for prev, curr in zip(candles, candles[1:])
    ]


def atr(candles: Sequence[Candle], period: int = 14) -> Decimal:
    """Compute the latest Average True Range with Wilder's smoothing.

    Raises:
        InsufficientData: If fewer than ``period + 1`` candles are supplied,
            or if recent true ranges vanish under rounding.
    """
    require_period("atr", period)
    require_length("atr", candles, period + 1)

    ranges = true_ranges(candles)
    q = scaled_quantum(c.high for c in candles)
    divisor = Decimal(period)
    value = quantize(sum(ranges[:period], ZERO) / divisor, q)
    for tr in ranges[period:]:
        value = quantize((value * (divisor - 1) + tr) / divisor, q)
    if value == ZERO and any(ranges[-period:]):
        raise InsufficientData(f"atr ranges are below the {q} rounding step")
    return value


def volatility_score(candles: Sequence[Candle], period: int = 14) -> Decimal:
    """ATR expressed as a percentage of the last close.

    Raises:
        InsufficientData: If fewer than ``period + 1`` candles are supplied.
    """
    return quantize(atr(candles, period) / candles[-1].close * HUNDRED)
