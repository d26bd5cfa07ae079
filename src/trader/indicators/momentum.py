"""Momentum oscillators: RSI, MACD and stochastic.

RSI uses Wilder's smoothing: the first average gain/loss is the plain mean
of the first ``period`` changes, then each step is
``avg = (avg * (period - 1) + current) / period``.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from trader.exceptions import InsufficientData, InvalidConfiguration
from trader.indicators.models import MACDResult, StochasticResult
from trader.indicators.moving_average import ema
from trader.indicators.window import (
    HUNDRED,
    ZERO,
    quantize,
    require_length,
    require_period,
    scaled_quantum,
)
from trader.models import Candle

_FIFTY = Decimal("50")


def rsi(closes: Sequence[Decimal], period: int = 14) -> Decimal:
    """Compute the latest Relative Strength Index.

    Edge cases:
    - No losses and at least one gain in the smoothed window: 100.
    - Completely flat window (no gains, no losses): 50.

    Averages keep 12 decimal places relative to the price level, so a
    sub-unit series smooths as precisely as a dollar-priced one.

    Args:
        closes: Closing prices ordered oldest-first.
        period: Smoothing period. Default 14.

    Returns:
        RSI in [0, 100].

    Raises:
        InsufficientData: If fewer than ``period + 1`` closes are supplied,
            or if the price moves are too small to survive rounding.
    """
    require_period("rsi", period)
    require_length("rsi", closes, period + 1)

    deltas = [curr - prev for prev, curr in zip(closes, closes[1:])]
    gains = [max(d, ZERO) for d in deltas]
    losses = [max(-d, ZERO) for d in deltas]

    q = scaled_quantum(closes)
    divisor = Decimal(period)
    avg_gain = quantize(sum(gains[:period], ZERO) / divisor, q)
    avg_loss = quantize(sum(losses[:period], ZERO) / divisor, q)
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = quantize((avg_gain * (divisor - 1) + gain) / divisor, q)
        avg_loss = quantize((avg_loss * (divisor - 1) + loss) / divisor, q)

    if avg_gain == ZERO and avg_loss == ZERO and any(deltas):
        raise InsufficientData(
            f"rsi price moves are below the {q} rounding step"
        )
    if avg_loss == ZERO:
        return HUNDRED if avg_gain > ZERO else _FIFTY

    rs = avg_gain / avg_loss
    return quantize(HUNDRED - HUNDRED / (Decimal("1") + rs))


def _macd_lines(
    closes: Sequence[Decimal], fast: int, slow: int, signal: int
) -> tuple[list[Decimal], list[Decimal]]:
    """Return the MACD line and signal line, both aligned to the input end."""
    for name, period in (("macd fast", fast), ("macd slow", slow), ("macd signal", signal)):
        require_period(name, period)
    if fast >= slow:
        raise InvalidConfiguration(
            f"macd fast period ({fast}) must be shorter than slow period ({slow})"
        )
    require_length("macd", closes, slow + signal - 1)

    q = scaled_quantum(closes)
    fast_line = ema(closes, fast, q)
    slow_line = ema(closes, slow, q)
    macd_line = [f - s for f, s in zip(fast_line[-len(slow_line):], slow_line)]
    signal_line = ema(macd_line, signal, q)
    return macd_line[-len(signal_line):], signal_line


def macd(
    closes: Sequence[Decimal],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDResult:
    """Compute the latest MACD triple.

    MACD line = EMA(fast) - EMA(slow); signal = EMA(signal) of the MACD line;
    histogram = line - signal.

    Raises:
        InsufficientData: If fewer than ``slow + signal - 1`` closes are supplied.
        InvalidConfiguration: If ``fast >= slow`` or any period is non-positive.
    """
    macd_line, signal_line = _macd_lines(closes, fast, slow, signal)
    line = macd_line[-1]
    sig = signal_line[-1]
    return MACDResult(line=line, signal=sig, histogram=line - sig)


def macd_crossover(
    closes: Sequence[Decimal],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> int:
    """Detect a MACD/signal-line crossover on the last close.

    Returns:
        +1 if the MACD line crossed above the signal line on the last bar,
        -1 if it crossed below, 0 otherwise.

    Raises:
        InsufficientData: If fewer than ``slow + signal`` closes are supplied
            (two signal-line points are needed).
    """
    require_length("macd crossover", closes, slow + signal)
    macd_line, signal_line = _macd_lines(closes, fast, slow, signal)

    prev_diff = macd_line[-2] - signal_line[-2]
    last_diff = macd_line[-1] - signal_line[-1]
    if prev_diff < ZERO < last_diff:
        return 1
    if prev_diff > ZERO > last_diff:
        return -1
    return 0


def _percent_k(window: Sequence[Candle]) -> Decimal:
    lowest = min(c.low for c in window)
    highest = max(c.high for c in window)
    if highest == lowest:
        return _FIFTY
    return quantize((window[-1].close - lowest) / (highest - lowest) * HUNDRED)


def stochastic(
    candles: Sequence[Candle],
    k_period: int = 14,
    d_period: int = 3,
) -> StochasticResult:
    """Compute the latest stochastic oscillator.

    %K = (close - lowest low) / (highest high - lowest low) * 100 over
    ``k_period`` candles; %D is the SMA of the last ``d_period`` %K values.
    %K is 50 when the window has no range.

    Raises:
        InsufficientData: If fewer than ``k_period + d_period - 1`` candles
            are supplied.
    """
    require_period("stochastic %K", k_period)
    require_period("stochastic %D", d_period)
    require_length("stochastic", candles, k_period + d_period - 1)

    n = len(candles)
    k_values = [
        _percent_k(candles[end - k_period : end])
        for end in range(n - d_period + 1, n + 1)
    ]
    d = quantize(sum(k_values, ZERO) / Decimal(d_period))
    return StochasticResult(k=k_values[-1], d=d)
