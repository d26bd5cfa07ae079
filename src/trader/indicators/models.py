"""Indicator result models.

CRITICAL: All indicator values use Decimal. Never use float for indicator computations.
"""

from dataclasses import dataclass
from decimal import Decimal

from trader.indicators.window import HUNDRED, quantize


@dataclass(frozen=True)
class MACDResult:
    """Latest MACD line, signal line and histogram."""

    line: Decimal
    signal: Decimal
    histogram: Decimal


@dataclass(frozen=True)
class StochasticResult:
    """Latest stochastic %K and its %D smoothing (both 0-100)."""

    k: Decimal
    d: Decimal


@dataclass(frozen=True)
class BollingerBands:
    """Bollinger triple plus relative bandwidth ((upper - lower) / middle)."""

    upper: Decimal
    middle: Decimal
    lower: Decimal
    bandwidth: Decimal


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Every indicator value for the last candle of one window.

    Derived and recomputed per analysis; never mutated in place.
    """

    timestamp_ms: int
    open: Decimal
    close: Decimal
    volume: Decimal
    rsi: Decimal
    macd: MACDResult
    stochastic: StochasticResult
    ema_short: Decimal
    ema_long: Decimal
    sma: Decimal
    adx: Decimal
    bollinger: BollingerBands
    atr: Decimal
    vwap: Decimal
    obv: Decimal
    volume_ratio: Decimal  # last volume / average volume over the volume period

    @property
    def volatility(self) -> Decimal:
        """ATR as a percentage of the close."""
        return quantize(self.atr / self.close * HUNDRED)
