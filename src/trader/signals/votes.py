"""Per-timeframe component votes (setup, momentum, volume) and the model vote.

Each component maps one aspect of an IndicatorSnapshot to -1, 0 or +1:

- setup: oversold RSI with bullish EMA alignment (close > EMA short > EMA
  long) votes +1; overbought RSI with bearish alignment votes -1.
- momentum: sign of the MACD histogram.
- volume: when the volume ratio reaches the spike threshold, the candle's
  own direction (close vs open); otherwise 0.

CRITICAL: All computations use Decimal. Never use float.
"""

from decimal import Decimal

from trader.config import SignalSettings
from trader.indicators.models import IndicatorSnapshot
from trader.indicators.window import ZERO
from trader.signals.models import ModelHint, TimeframeVote


def _sign(value: Decimal) -> int:
    if value > ZERO:
        return 1
    if value < ZERO:
        return -1
    return 0


def setup_vote(snapshot: IndicatorSnapshot, settings: SignalSettings) -> int:
    """RSI extreme confirmed by EMA trend alignment."""
    close = snapshot.close
    if (
        snapshot.rsi < settings.rsi_oversold
        and close > snapshot.ema_short > snapshot.ema_long
    ):
        return 1
    if (
        snapshot.rsi > settings.rsi_overbought
        and close < snapshot.ema_short < snapshot.ema_long
    ):
        return -1
    return 0


def momentum_vote(snapshot: IndicatorSnapshot) -> int:
    return _sign(snapshot.macd.histogram)


def volume_vote(snapshot: IndicatorSnapshot, settings: SignalSettings) -> int:
    """Candle direction when volume spikes, else 0. A doji votes 0."""
    if snapshot.volume_ratio < settings.volume_threshold:
        return 0
    return _sign(snapshot.close - snapshot.open)


def timeframe_vote(
    interval: str,
    snapshot: IndicatorSnapshot,
    weight: Decimal,
    settings: SignalSettings,
) -> TimeframeVote:
    """Collect the three component votes for one timeframe snapshot."""
    return TimeframeVote(
        interval=interval,
        setup=setup_vote(snapshot, settings),
        momentum=momentum_vote(snapshot),
        volume=volume_vote(snapshot, settings),
        weight=weight,
    )


def model_vote(hint: ModelHint | None, settings: SignalSettings) -> Decimal:
    """Weighted model contribution; 0 when absent or below the probability floor."""
    if hint is None or hint.probability < settings.model_min_probability:
        return ZERO
    return settings.model_weight * hint.direction.sign
