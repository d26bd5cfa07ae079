"""Signal data models for multi-timeframe confluence analysis.

CRITICAL: All score and price values use Decimal. Never use float for signal computations.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from trader.indicators.models import IndicatorSnapshot
from trader.levels.models import LevelSet
from trader.models import Direction


class StrategyKind(str, Enum):
    """Selectable signal strategy variants."""

    CONFLUENCE = "confluence"
    MACD_CROSSOVER = "macd_crossover"


@dataclass(frozen=True)
class ModelHint:
    """Direction and probability supplied by an external prediction model."""

    direction: Direction
    probability: Decimal  # 0-1


@dataclass(frozen=True)
class TimeframeVote:
    """Component votes for one timeframe.

    Each component is -1, 0 or +1, so ``total`` lies in [-3, 3].
    """

    interval: str
    setup: int  # RSI extreme confirmed by EMA alignment
    momentum: int  # MACD histogram sign
    volume: int  # candle direction on a volume spike
    weight: Decimal

    @property
    def total(self) -> int:
        return self.setup + self.momentum + self.volume

    @property
    def weighted(self) -> Decimal:
        return self.weight * Decimal(self.total)


@dataclass(frozen=True)
class Signal:
    """Trade signal for the last candle of the main timeframe.

    Derived and never mutated; re-running the analysis on the same
    inputs yields an equal Signal.
    """

    direction: Direction
    confidence: Decimal  # 0-1
    entry_price: Decimal
    timestamp_ms: int
    main: IndicatorSnapshot
    levels: LevelSet
    votes: tuple[TimeframeVote, ...]
    weighted_sum: Decimal
    strategy: StrategyKind = StrategyKind.CONFLUENCE
    subs: tuple[tuple[str, IndicatorSnapshot], ...] = ()  # (interval, snapshot)
    model_hint: ModelHint | None = None

    @property
    def is_actionable(self) -> bool:
        return self.direction is not Direction.NEUTRAL

    @property
    def sub_intervals(self) -> tuple[str, ...]:
        return tuple(interval for interval, _ in self.subs)

    def sub(self, interval: str) -> IndicatorSnapshot | None:
        """Snapshot of the auxiliary timeframe ``interval``, if it was analyzed."""
        for name, snapshot in self.subs:
            if name == interval:
                return snapshot
        return None
