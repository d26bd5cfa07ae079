"""Volume indicators: VWAP, on-balance volume and relative volume.

CRITICAL: All values use Decimal. Never use float for volumes.
"""

from collections.abc import Sequence
from decimal import Decimal

from trader.exceptions import InsufficientData
from trader.indicators.window import (
    ZERO,
    quantize,
    require_length,
    require_period,
    scaled_quantum,
)
from trader.models import Candle

_THREE = Decimal("3")


def vwap(candles: Sequence[Candle]) -> Decimal:
    """Volume-weighted average of the typical price (high + low + close) / 3.

    Raises:
        InsufficientData: If no candles are supplied or total volume is zero.
    """
    require_length("vwap", candles, 1)

    total_volume = sum((c.volume for c in candles), ZERO)
    if total_volume == ZERO:
        raise InsufficientData("vwap needs non-zero total volume")

    weighted = sum(((c.high + c.low + c.close) / _THREE * c.volume for c in candles), ZERO)
    return quantize(weighted / total_volume, scaled_quantum(c.high for c in candles))


def obv(candles: Sequence[Candle]) -> Decimal:
    """On-balance volume accumulated across the window.

    Adds the candle's volume on an up close, subtracts it on a down close,
    leaves the total unchanged on an equal close.

    Raises:
        InsufficientData: If fewer than 2 candles are supplied.
    """
    require_length("obv", candles, 2)

    total = ZERO
    for prev, curr in zip(candles, candles[1:]):
        if curr.close > prev.close:
            total += curr.volume
        elif curr.close < prev.close:
            total -= curr.volume
    return total


def volume_ratio(candles: Sequence[Candle], period: int = 20) -> Decimal:
    """Last candle's volume relative to the average of the last ``period`` candles.

    Returns Decimal("0") when the average volume is zero (nothing traded,
    so nothing is above average).

    Raises:
        InsufficientData: If fewer than ``period`` candles are supplied.
    """
    require_period("volume ratio", period)
    require_length("volume ratio", candles, period)

    window = candles[-period:]
    average = sum((c.volume for c in window), ZERO) / Decimal(period)
    if average == ZERO:
        return ZERO
    return quantize(window[-1].volume / average)
