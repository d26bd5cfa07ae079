"""Strategy variants selected by configuration.

Every variant shares the same capability set: ``compute_signal`` for a
trade decision and ``handle_fill`` once a position from that decision is
open. The variant is a StrategyKind tag, not a subclass.

- CONFLUENCE: the SignalAnalyzer's multi-timeframe vote, unchanged.
- MACD_CROSSOVER: LONG/SHORT with confidence 1 when the MACD line crosses
  the signal line on the main series' last candle, NEUTRAL with
  confidence 0 otherwise. Snapshot and levels come from the analyzer.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from decimal import Decimal

import structlog

from trader.config import AppSettings, IndicatorSettings
from trader.indicators.momentum import macd_crossover
from trader.logging import get_logger
from trader.market.series import TimeframeSeries
from trader.models import Direction, Position
from trader.signals.analyzer import SignalAnalyzer
from trader.signals.models import ModelHint, Signal, StrategyKind

_CROSSOVER_DIRECTIONS: dict[int, Direction] = {
    1: Direction.LONG,
    -1: Direction.SHORT,
    0: Direction.NEUTRAL,
}


class Strategy:
    """A signal strategy tagged by StrategyKind.

    Args:
        kind: Which variant to run.
        analyzer: Shared confluence analyzer (snapshots, levels, votes).
        indicator_settings: MACD periods for the crossover variant.
        logger: Bound logger for ``order_filled``.
    """

    def __init__(
        self,
        kind: StrategyKind,
        analyzer: SignalAnalyzer,
        indicator_settings: IndicatorSettings,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._kind = kind
        self._analyzer = analyzer
        self._indicators = indicator_settings
        self._log = logger or get_logger(__name__)

    @property
    def kind(self) -> StrategyKind:
        return self._kind

    def compute_signal(
        self,
        main: TimeframeSeries,
        subs: Sequence[TimeframeSeries] = (),
        model_hint: ModelHint | None = None,
    ) -> Signal:
        """Run the configured variant against the main and auxiliary series.

        Raises:
            InsufficientData: If any series is too short.
        """
        signal = self._analyzer.analyze(main, subs, model_hint)
        if self._kind is StrategyKind.CONFLUENCE:
            return signal

        s = self._indicators
        window = main.closes[-s.lookback :]
        cross = macd_crossover(window, s.macd_fast, s.macd_slow, s.macd_signal)
        return replace(
            signal,
            direction=_CROSSOVER_DIRECTIONS[cross],
            confidence=Decimal(abs(cross)),
            weighted_sum=Decimal(cross),
            strategy=self._kind,
        )

    def handle_fill(self, position: Position) -> None:
        """Record that a position opened from this strategy's signal was filled."""
        self._log.info(
            "order_filled",
            strategy=self._kind.value,
            position_id=position.id,
            symbol=position.symbol,
            direction=position.direction.value,
            entry_price=str(position.entry_price),
            size=str(position.size),
            leverage=position.leverage,
        )


def build_strategy(
    settings: AppSettings,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> Strategy:
    """Construct the strategy named by ``settings.signal.strategy``."""
    analyzer = SignalAnalyzer(
        settings.indicators, settings.levels, settings.signal, logger=logger
    )
    return Strategy(
        StrategyKind(settings.signal.strategy),
        analyzer,
        settings.indicators,
        logger=logger,
    )
