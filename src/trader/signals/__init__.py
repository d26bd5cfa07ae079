"""Multi-timeframe signal analysis and strategy variants."""

from trader.signals.analyzer import SignalAnalyzer, compute_confidence, resolve_direction
from trader.signals.models import ModelHint, Signal, StrategyKind, TimeframeVote
from trader.signals.strategy import Strategy, build_strategy

__all__ = [
    "ModelHint",
    "Signal",
    "SignalAnalyzer",
    "Strategy",
    "StrategyKind",
    "TimeframeVote",
    "build_strategy",
    "compute_confidence",
    "resolve_direction",
]
