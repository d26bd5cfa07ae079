"""Support/resistance level models.

CRITICAL: All price values use Decimal. Never use float for level prices.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from trader.models import Direction


class LevelKind(str, Enum):
    """Which side of the current price a level sits on."""

    SUPPORT = "support"
    RESISTANCE = "resistance"


class SwingKind(str, Enum):
    """Swing point type."""

    HIGH = "high"
    LOW = "low"


@dataclass(frozen=True)
class SwingPoint:
    """A local extremum in a candle window."""

    timestamp_ms: int
    price: Decimal
    kind: SwingKind


@dataclass(frozen=True)
class SupportResistanceLevel:
    """A clustered price level.

    ``touches`` is the number of swing points merged into the level;
    ``lookback`` is the window length the level was derived from.
    """

    price: Decimal
    kind: LevelKind
    touches: int
    lookback: int


@dataclass(frozen=True)
class LevelSet:
    """Support and resistance levels ordered closest-first to the reference price."""

    support: tuple[SupportResistanceLevel, ...] = ()
    resistance: tuple[SupportResistanceLevel, ...] = ()
    lookback: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.support and not self.resistance

    @property
    def nearest_support(self) -> SupportResistanceLevel | None:
        return self.support[0] if self.support else None

    @property
    def nearest_resistance(self) -> SupportResistanceLevel | None:
        return self.resistance[0] if self.resistance else None


class PatternKind(str, Enum):
    """Chart pattern type."""

    HEAD_AND_SHOULDERS = "head_and_shoulders"
    DOUBLE_TOP = "double_top"
    DOUBLE_BOTTOM = "double_bottom"
    BULL_FLAG = "bull_flag"
    BEAR_FLAG = "bear_flag"

    @property
    def bias(self) -> Direction:
        """Direction the pattern projects price toward."""
        if self in (PatternKind.DOUBLE_BOTTOM, PatternKind.BULL_FLAG):
            return Direction.LONG
        return Direction.SHORT


@dataclass(frozen=True)
class ChartPattern:
    """A detected pattern spanning candle indices ``start_index..end_index``.

    ``strength`` is relative to price (e.g. head height over the neckline);
    ``target`` is the projected price once the pattern completes.
    """

    kind: PatternKind
    start_index: int
    end_index: int
    strength: Decimal
    target: Decimal
