"""Support/resistance level and chart pattern detection."""

from trader.levels.detector import SupportResistanceDetector, cluster_prices, find_swing_points
from trader.levels.models import (
    ChartPattern,
    LevelKind,
    LevelSet,
    PatternKind,
    SupportResistanceLevel,
    SwingKind,
    SwingPoint,
)
from trader.levels.patterns import PatternDetector, find_pivots, regression

__all__ = [
    "ChartPattern",
    "LevelKind",
    "LevelSet",
    "PatternDetector",
    "PatternKind",
    "SupportResistanceDetector",
    "SupportResistanceLevel",
    "SwingKind",
    "SwingPoint",
    "cluster_prices",
    "find_pivots",
    "find_swing_points",
    "regression",
]
