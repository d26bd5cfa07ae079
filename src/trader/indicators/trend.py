"""Trend strength: Average Directional Index (ADX).

Standard Wilder directional-movement formula:
1. +DM / -DM and true range per candle pair.
2. Wilder sums over ``period`` (seed = plain sum, then S - S/period + x),
   rounded relative to the price level.
3. +DI = 100 * S(+DM) / S(TR), -DI likewise.
4. DX = 100 * |+DI - -DI| / (+DI + -DI).
5. ADX = Wilder average of DX (seed = mean of first ``period`` DX values).

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from trader.indicators.volatility import true_ranges
from trader.indicators.window import (
    HUNDRED,
    ZERO,
    quantize,
    require_length,
    require_period,
    scaled_quantum,
)
from trader.models import Candle


def _directional_movement(candles: Sequence[Candle]) -> tuple[list[Decimal], list[Decimal]]:
    plus_dm: list[Decimal] = []
    minus_dm: list[Decimal] = []
    for prev, curr in zip(candles, candles[1:]):
        up_move = curr.high - prev.high
        down_move = prev.low - curr.low
        plus_dm.append(up_move if up_move > down_move and up_move > ZERO else ZERO)
        minus_dm.append(down_move if down_move > up_move and down_move > ZERO else ZERO)
    return plus_dm, minus_dm


def _dx(smoothed_plus: Decimal, smoothed_minus: Decimal, smoothed_tr: Decimal) -> Decimal:
    if smoothed_tr == ZERO:
        return ZERO
    plus_di = HUNDRED * smoothed_plus / smoothed_tr
    minus_di = HUNDRED * smoothed_minus / smoothed_tr
    di_sum = plus_di + minus_di
    if di_sum == ZERO:
        return ZERO
    return quantize(HUNDRED * abs(plus_di - minus_di) / di_sum)


def adx(candles: Sequence[Candle], period: int = 14) -> Decimal:
    """Compute the latest Average Directional Index (0-100).

    Raises:
        InsufficientData: If fewer than ``2 * period`` candles are supplied.
    """
    require_period("adx", period)
    require_length("adx", candles, 2 * period)

    ranges = true_ranges(candles)
    plus_dm, minus_dm = _directional_movement(candles)
    divisor = Decimal(period)
    q = scaled_quantum(c.high for c in candles)

    s_tr = sum(ranges[:period], ZERO)
    s_plus = sum(plus_dm[:period], ZERO)
    s_minus = sum(minus_dm[:period], ZERO)
    dx_values = [_dx(s_plus, s_minus, s_tr)]
    for i in range(period, len(ranges)):
        s_tr = quantize(s_tr - s_tr / divisor + ranges[i], q)
        s_plus = quantize(s_plus - s_plus / divisor + plus_dm[i], q)
        s_minus = quantize(s_minus - s_minus / divisor + minus_dm[i], q)
        dx_values.append(_dx(s_plus, s_minus, s_tr))

    value = quantize(sum(dx_values[:period], ZERO) / divisor)
    for dx in dx_values[period:]:
        value = quantize((value * (divisor - 1) + dx) / divisor)
    return value
