"""Market data containers consumed by the engine."""

from trader.market.regime import (
    MarketRegime,
    MomentumRegime,
    RegimeClassifier,
    TrendRegime,
    VolatilityRegime,
)
from trader.market.series import TimeframeSeries

__all__ = [
    "MarketRegime",
    "MomentumRegime",
    "RegimeClassifier",
    "TimeframeSeries",
    "TrendRegime",
    "VolatilityRegime",
]
