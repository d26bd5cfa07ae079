"""Technical indicator library.

Stateless Decimal functions over ordered closes or candles, plus the
IndicatorEngine that assembles them into an IndicatorSnapshot.
"""

from trader.indicators.engine import IndicatorEngine, compute_snapshot, required_window
from trader.indicators.models import (
    BollingerBands,
    IndicatorSnapshot,
    MACDResult,
    StochasticResult,
)
from trader.indicators.momentum import macd, macd_crossover, rsi, stochastic
from trader.indicators.moving_average import ema, sma
from trader.indicators.trend import adx
from trader.indicators.volatility import atr, bollinger_bands, true_ranges, volatility_score
from trader.indicators.volume import obv, volume_ratio, vwap

__all__ = [
    "BollingerBands",
    "IndicatorEngine",
    "IndicatorSnapshot",
    "MACDResult",
    "StochasticResult",
    "adx",
    "atr",
    "bollinger_bands",
    "compute_snapshot",
    "ema",
    "macd",
    "macd_crossover",
    "obv",
    "required_window",
    "rsi",
    "sma",
    "stochastic",
    "true_ranges",
    "volatility_score",
    "volume_ratio",
    "vwap",
]
