"""Market regime classification for a single timeframe.

A regime summarizes one series along three axes:

- trend: BULLISH when the short, medium and long simple moving averages
  are stacked short > medium > long, BEARISH when stacked the other way,
  SIDEWAYS otherwise.
- volatility: root mean square of the last ``volatility_window`` simple
  returns, compared against the high/low thresholds.
- momentum: sum of the last ``momentum_window`` simple returns; STRONG
  when positive.

Support and resistance are the lowest low and highest high over the last
``ma_long`` candles.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from trader.config import RegimeSettings, check_positive
from trader.exceptions import InvalidConfiguration
from trader.indicators.window import ZERO, quantize, require_length, scaled_quantum
from trader.models import Candle


class TrendRegime(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    SIDEWAYS = "sideways"


class VolatilityRegime(str, Enum):
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class MomentumRegime(str, Enum):
    STRONG = "strong"
    WEAK = "weak"


@dataclass(frozen=True)
class MarketRegime:
    """Regime of one series at its last candle."""

    trend: TrendRegime
    volatility: VolatilityRegime
    momentum: MomentumRegime
    volatility_value: Decimal  # RMS of simple returns
    momentum_value: Decimal  # sum of simple returns
    support: Decimal
    resistance: Decimal


def simple_returns(closes: Sequence[Decimal]) -> list[Decimal]:
    """``(close_t - close_t-1) / close_t-1`` for each consecutive pair."""
    return [quantize((curr - prev) / prev) for prev, curr in zip(closes, closes[1:])]


def _mean(values: Sequence[Decimal]) -> Decimal:
    return sum(values, ZERO) / Decimal(len(values))


class RegimeClassifier:
    """Classifies trend, volatility and momentum of a candle series.

    Args:
        settings: Moving-average periods, return windows and volatility
            thresholds.

    Raises:
        InvalidConfiguration: If a period is non-positive, the moving
            averages are not ordered short < medium < long, or the low
            volatility threshold is not below the high one.
    """

    def __init__(self, settings: RegimeSettings) -> None:
        check_positive("regime ma_short", settings.ma_short)
        check_positive("regime volatility_window", settings.volatility_window)
        check_positive("regime momentum_window", settings.momentum_window)
        check_positive("regime low_volatility", settings.low_volatility)
        if not settings.ma_short < settings.ma_medium < settings.ma_long:
            raise InvalidConfiguration(
                f"Regime moving averages must satisfy short < medium < long, got "
                f"{settings.ma_short}/{settings.ma_medium}/{settings.ma_long}"
            )
        if settings.low_volatility >= settings.high_volatility:
            raise InvalidConfiguration(
                f"low_volatility {settings.low_volatility} must be below "
                f"high_volatility {settings.high_volatility}"
            )
        self._settings = settings

    @property
    def required_candles(self) -> int:
        s = self._settings
        return max(s.ma_long, s.volatility_window + 1, s.momentum_window + 1)

    def classify(self, candles: Sequence[Candle]) -> MarketRegime:
        """Classify the regime at the last candle.

        Raises:
            InsufficientData: If fewer than ``required_candles`` candles are given.
        """
        s = self._settings
        require_length("regime", candles, self.required_candles)
        closes = [c.close for c in candles]

        trend = self._trend(closes)

        returns = simple_returns(closes[-(s.volatility_window + 1) :])
        volatility_value = quantize(_mean([r * r for r in returns]).sqrt())
        if volatility_value > s.high_volatility:
            volatility = VolatilityRegime.HIGH
        elif volatility_value < s.low_volatility:
            volatility = VolatilityRegime.LOW
        else:
            volatility = VolatilityRegime.NORMAL

        momentum_value = sum(simple_returns(closes[-(s.momentum_window + 1) :]), ZERO)
        momentum = MomentumRegime.STRONG if momentum_value > ZERO else MomentumRegime.WEAK

        window = candles[-s.ma_long :]
        return MarketRegime(
            trend=trend,
            volatility=volatility,
            momentum=momentum,
            volatility_value=volatility_value,
            momentum_value=momentum_value,
            support=min(c.low for c in window),
            resistance=max(c.high for c in window),
        )

    def _trend(self, closes: Sequence[Decimal]) -> TrendRegime:
        s = self._settings
        q = scaled_quantum(closes[-s.ma_long :])
        short = quantize(_mean(closes[-s.ma_short :]), q)
        medium = quantize(_mean(closes[-s.ma_medium :]), q)
        long = quantize(_mean(closes[-s.ma_long :]), q)
        if short > medium > long:
            return TrendRegime.BULLISH
        if short < medium < long:
            return TrendRegime.BEARISH
        return TrendRegime.SIDEWAYS
