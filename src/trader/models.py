"""Shared data models for the trading engine.

CRITICAL: All monetary values use Decimal. Never use float for prices, sizes, balances or scores.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from trader.exceptions import PositionClosedError


class Direction(str, Enum):
    """Trade direction."""

    LONG = "long"
    SHORT = "short"
    NEUTRAL = "neutral"

    @property
    def sign(self) -> Decimal:
        """+1 for LONG, -1 for SHORT, 0 for NEUTRAL."""
        if self is Direction.LONG:
            return Decimal("1")
        if self is Direction.SHORT:
            return Decimal("-1")
        return Decimal("0")


class PositionStatus(str, Enum):
    """Position lifecycle state. OPEN -> CLOSED is the only transition."""

    OPEN = "open"
    CLOSED = "closed"


class ExitReason(str, Enum):
    """Why a position was closed."""

    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    MANUAL = "manual"


@dataclass(frozen=True)
class Candle:
    """A single OHLCV bar. Immutable once recorded."""

    timestamp_ms: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal

    def __post_init__(self) -> None:
        if min(self.open, self.high, self.low, self.close) <= 0:
            raise ValueError(f"Candle prices must be positive at {self.timestamp_ms}")
        if self.volume < 0:
            raise ValueError(f"Candle volume must be non-negative at {self.timestamp_ms}")
        if self.low > min(self.open, self.close) or self.high < max(self.open, self.close):
            raise ValueError(f"Candle high/low do not bound open/close at {self.timestamp_ms}")


@dataclass(frozen=True)
class RiskParameters:
    """Exit levels and sizing for one trade.

    ``compute_exit_levels`` produces an unsized instance (size 0, leverage 1);
    ``PositionSizer.size_trade`` fills in size, risk amount and leverage.
    """

    stop_loss: Decimal
    take_profit: Decimal
    stop_distance: Decimal
    risk_amount: Decimal = Decimal("0")
    size: Decimal = Decimal("0")
    leverage: int = 1

    @property
    def is_sized(self) -> bool:
        return self.size > 0


@dataclass
class Position:
    """Open trade state.

    Mutated only by valuation ticks (exposure, percentage, trailing stop)
    and by ``close``. Once CLOSED, every attribute assignment raises
    PositionClosedError.
    """

    id: str
    symbol: str
    direction: Direction
    entry_price: Decimal
    size: Decimal
    leverage: int
    initial_margin: Decimal
    exposure: Decimal
    liquidation_price: Decimal
    stop_loss: Decimal
    take_profit: Decimal
    opened_at: float
    percentage: Decimal = Decimal("0")
    status: PositionStatus = PositionStatus.OPEN
    exit_price: Decimal | None = None
    exit_reason: ExitReason | None = None
    realized_pnl: Decimal | None = None
    closed_at: float | None = None

    def __post_init__(self) -> None:
        if self.status is PositionStatus.CLOSED:
            object.__setattr__(self, "_sealed", True)

    def __setattr__(self, name: str, value: Any) -> None:
        if self.__dict__.get("_sealed", False):
            raise PositionClosedError(f"Position {self.id} is closed and immutable")
        super().__setattr__(name, value)

    @property
    def is_open(self) -> bool:
        return self.status is PositionStatus.OPEN

    def close(
        self,
        exit_price: Decimal,
        realized_pnl: Decimal,
        reason: ExitReason,
        closed_at: float,
    ) -> None:
        """Transition OPEN -> CLOSED and freeze the position."""
        if not self.is_open:
            raise PositionClosedError(f"Position {self.id} is already closed")
        self.exit_price = exit_price
        self.realized_pnl = realized_pnl
        self.exit_reason = reason
        self.closed_at = closed_at
        self.status = PositionStatus.CLOSED
        object.__setattr__(self, "_sealed", True)


@dataclass(frozen=True)
class PositionValuation:
    """Mark-to-market result for one position at one price."""

    exposure: Decimal
    unrealized_pnl: Decimal
    percentage: Decimal  # unrealized P&L relative to initial margin, in percent


@dataclass(frozen=True)
class InjectionEvent:
    """Record of a capital injection triggered by a settlement."""

    settlement_id: str
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal


@dataclass(frozen=True)
class AccountState:
    """Account balance and injection history.

    Frozen: every update returns a new instance, so a settlement either
    fully applies or not at all.
    """

    balance: Decimal
    reserved_margin: Decimal = Decimal("0")
    injected_total: Decimal = Decimal("0")
    injections: tuple[InjectionEvent, ...] = ()
    settled_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def available(self) -> Decimal:
        """Balance not locked up as margin by open positions."""
        return self.balance - self.reserved_margin


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of settling a closed position against the account."""

    account: AccountState
    injection_occurred: bool
    realized_pnl: Decimal
    position: Position
