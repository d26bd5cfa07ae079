"""Trade-signal and position-risk engine for crypto perpetuals."""

__version__ = "0.1.0"
