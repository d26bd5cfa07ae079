"""Custom exceptions for the trading engine.

All indicator, signal and risk-layer exceptions live here to avoid
circular imports between modules. The engine never catches its own
errors; callers decide whether to widen a window, skip a timeframe,
or abort the trade decision.
"""


class TraderError(Exception):
    """Base exception for all engine errors."""


class InsufficientData(TraderError):
    """Raised when a window is too short (or too empty) to compute a value."""


class RiskExceeded(TraderError):
    """Raised when a requested trade violates a risk limit. No partial execution."""


class InvalidConfiguration(TraderError):
    """Raised at construction when a period, threshold or fraction is out of range."""


class PositionClosedError(TraderError):
    """Raised when a closed position is modified or closed again."""
