"""Multi-timeframe confluence analyzer.

The SignalAnalyzer is the top-level coordinator that:
1. Computes the main snapshot and support/resistance levels
2. Truncates each auxiliary series to the main candle's timestamp and
   computes its snapshot
3. Collects per-timeframe votes and weights them (main 1.0, each auxiliary
   1/number of auxiliaries)
4. Adds the optional model hint vote
5. Converts the weighted sum into a direction and a confidence
6. Logs the breakdown at INFO level

Short or missing auxiliary data is never degraded to a neutral default:
InsufficientData propagates so the caller decides whether to skip the
timeframe.

CRITICAL: All computations use Decimal. Never use float for signal scores.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

import structlog

from trader.config import (
    IndicatorSettings,
    LevelSettings,
    SignalSettings,
    check_fraction,
    check_positive,
)
from trader.exceptions import InvalidConfiguration
from trader.indicators.engine import IndicatorEngine
from trader.indicators.models import IndicatorSnapshot
from trader.indicators.window import ZERO, quantize
from trader.levels.detector import SupportResistanceDetector
from trader.logging import get_logger
from trader.market.series import TimeframeSeries
from trader.models import Direction
from trader.signals.models import ModelHint, Signal, StrategyKind
from trader.signals.votes import model_vote, timeframe_vote

#: Number of component votes per timeframe.
COMPONENTS = 3

_ONE = Decimal("1")


def compute_confidence(weighted_sum: Decimal, main_weight: Decimal) -> Decimal:
    """Normalize ``|weighted_sum|`` by the main timeframe's maximum vote, clamped to [0, 1]."""
    confidence = abs(weighted_sum) / (main_weight * COMPONENTS)
    return quantize(min(confidence, _ONE))


def resolve_direction(
    weighted_sum: Decimal, confidence: Decimal, min_confidence: Decimal
) -> Direction:
    """LONG/SHORT by sign of the sum; NEUTRAL at zero or below ``min_confidence``."""
    if weighted_sum == ZERO or confidence < min_confidence:
        return Direction.NEUTRAL
    return Direction.LONG if weighted_sum > ZERO else Direction.SHORT


class SignalAnalyzer:
    """Scores a main series plus auxiliary series into a single Signal.

    Args:
        indicator_settings: Indicator periods for every timeframe snapshot.
        level_settings: Support/resistance parameters (main timeframe only).
        signal_settings: Vote thresholds, weights and confidence floor.
        logger: Bound logger for the ``signal_analyzed`` event.

    Raises:
        InvalidConfiguration: If any threshold or weight is out of range.
    """

    def __init__(
        self,
        indicator_settings: IndicatorSettings,
        level_settings: LevelSettings,
        signal_settings: SignalSettings,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        check_positive("main_weight", signal_settings.main_weight)
        check_positive("volume_threshold", signal_settings.volume_threshold)
        check_positive("model_weight", signal_settings.model_weight)
        check_fraction("min_confidence", signal_settings.min_confidence)
        check_fraction("model_min_probability", signal_settings.model_min_probability)
        if not ZERO < signal_settings.rsi_oversold < signal_settings.rsi_overbought < 100:
            raise InvalidConfiguration(
                "rsi thresholds must satisfy 0 < oversold < overbought < 100"
            )

        self._settings = signal_settings
        self._indicators = IndicatorEngine(indicator_settings)
        self._levels = SupportResistanceDetector(level_settings)
        self._log = logger or get_logger(__name__)

    def analyze(
        self,
        main: TimeframeSeries,
        subs: Sequence[TimeframeSeries] = (),
        model_hint: ModelHint | None = None,
    ) -> Signal:
        """Produce the confluence Signal for the main series' latest candle.

        Args:
            main: Main timeframe candles.
            subs: Auxiliary (finer) timeframes. Each is truncated to candles
                not after the main series' latest timestamp.
            model_hint: Optional external prediction.

        Returns:
            Signal with direction, confidence and the full vote breakdown.

        Raises:
            InsufficientData: If the main series or any auxiliary series is
                too short for a snapshot.
        """
        s = self._settings
        latest = main.latest
        main_snapshot = self._indicators.snapshot(main.candles)
        levels = self._levels.detect(main.candles)

        votes = [timeframe_vote(main.interval, main_snapshot, s.main_weight, s)]
        sub_snapshots: dict[str, IndicatorSnapshot] = {}
        if subs:
            sub_weight = _ONE / Decimal(len(subs))
            for sub in subs:
                aligned = sub.until(latest.timestamp_ms)
                snapshot = self._indicators.snapshot(aligned.candles)
                sub_snapshots[sub.interval] = snapshot
                votes.append(timeframe_vote(sub.interval, snapshot, sub_weight, s))

        weighted_sum = quantize(
            sum((v.weighted for v in votes), ZERO) + model_vote(model_hint, s)
        )
        confidence = compute_confidence(weighted_sum, s.main_weight)
        direction = resolve_direction(weighted_sum, confidence, s.min_confidence)

        self._log.info(
            "signal_analyzed",
            interval=main.interval,
            timestamp_ms=latest.timestamp_ms,
            direction=direction.value,
            confidence=str(confidence),
            weighted_sum=str(weighted_sum),
            votes={v.interval: v.total for v in votes},
            support=str(levels.nearest_support.price) if levels.nearest_support else None,
            resistance=(
                str(levels.nearest_resistance.price) if levels.nearest_resistance else None
            ),
        )

        return Signal(
            direction=direction,
            confidence=confidence,
            entry_price=latest.close,
            timestamp_ms=latest.timestamp_ms,
            main=main_snapshot,
            levels=levels,
            votes=tuple(votes),
            weighted_sum=weighted_sum,
            strategy=StrategyKind.CONFLUENCE,
            subs=tuple(sub_snapshots.items()),
            model_hint=model_hint,
        )
