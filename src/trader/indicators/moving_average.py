"""Simple and exponential moving averages.

Both return a series aligned to the END of the input: element ``i`` of the
output corresponds to input index ``period - 1 + i``. The EMA is seeded
with the SMA of its first ``period`` values to avoid cold-start bias.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from trader.indicators.window import (
    ZERO,
    quantize,
    require_length,
    require_period,
    scaled_quantum,
)


def sma(
    values: Sequence[Decimal], period: int, quantum: Decimal | None = None
) -> list[Decimal]:
    """Compute a rolling Simple Moving Average.

    Args:
        values: Ordered values (oldest first).
        period: Window length.
        quantum: Rounding step; scaled to the magnitude of ``values`` when omitted.

    Returns:
        ``len(values) - period + 1`` SMA values.

    Raises:
        InsufficientData: If fewer than ``period`` values are supplied.
    """
    require_period("sma", period)
    require_length("sma", values, period)

    q = quantum if quantum is not None else scaled_quantum(values)
    divisor = Decimal(period)
    window_sum = sum(values[:period], ZERO)
    result = [quantize(window_sum / divisor, q)]
    for i in range(period, len(values)):
        window_sum += values[i] - values[i - period]
        result.append(quantize(window_sum / divisor, q))
    return result


def ema(
    values: Sequence[Decimal], period: int, quantum: Decimal | None = None
) -> list[Decimal]:
    """Compute an SMA-seeded Exponential Moving Average.

    Uses the standard recursive formula:
        alpha = 2 / (period + 1)
        EMA_t = alpha * value_t + (1 - alpha) * EMA_{t-1}

    The first EMA value is the SMA of the first ``period`` values. Each
    intermediate result is quantized to 12 decimal places relative to
    the magnitude of the input.

    Args:
        values: Ordered values (oldest first).
        period: Smoothing period.
        quantum: Rounding step; scaled to the magnitude of ``values`` when omitted.

    Returns:
        ``len(values) - period + 1`` EMA values.

    Raises:
        InsufficientData: If fewer than ``period`` values are supplied.
    """
    require_period("ema", period)
    require_length("ema", values, period)

    alpha = Decimal("2") / (Decimal(period) + Decimal("1"))
    one_minus_alpha = Decimal("1") - alpha

    q = quantum if quantum is not None else scaled_quantum(values)
    result = [quantize(sum(values[:period], ZERO) / Decimal(period), q)]
    for v in values[period:]:
        result.append(quantize(alpha * v + one_minus_alpha * result[-1], q))
    return result
