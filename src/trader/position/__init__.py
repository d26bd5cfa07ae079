"""Position lifecycle: open, valuation, settlement and the serialized book."""

from trader.position.book import MarkResult, PositionBook
from trader.position.operations import open_position, settle, value_position

__all__ = [
    "MarkResult",
    "PositionBook",
    "open_position",
    "settle",
    "value_position",
]
