"""Balance history with peak and drawdown tracking.

Every balance change is recorded with a reason (TRADE, INJECTION, DEPOSIT).
Drawdown is measured from the running peak as a fraction of that peak, so
an injection that lifts the balance to a new high resets the reference
point for later losses.

CRITICAL: All computations use Decimal. Never use float for balances.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from trader.indicators.window import ZERO, quantize
from trader.models import SettlementResult


class BalanceReason(str, Enum):
    """Why the balance changed."""

    TRADE = "trade"
    INJECTION = "injection"
    DEPOSIT = "deposit"


@dataclass(frozen=True)
class BalanceUpdate:
    """One entry of the balance history."""

    timestamp: float
    balance: Decimal
    change: Decimal
    reason: BalanceReason
    details: str = ""


@dataclass(frozen=True)
class BalanceMetrics:
    """Summary of the balance history."""

    initial_balance: Decimal
    current_balance: Decimal
    peak_balance: Decimal
    max_drawdown: Decimal  # fraction of peak, 0-1
    current_drawdown: Decimal
    trade_pnl: Decimal
    injected: Decimal
    trades: int


class BalanceTracker:
    """Records balance changes and derives peak and drawdown.

    Args:
        initial_balance: Starting capital, recorded as a DEPOSIT.
        clock: Time source for update timestamps.
    """

    def __init__(
        self,
        initial_balance: Decimal,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if initial_balance < ZERO:
            raise ValueError(f"Initial balance must be non-negative, got {initial_balance}")
        self._clock = clock
        self._initial = initial_balance
        self._balance = initial_balance
        self._peak = initial_balance
        self._max_drawdown = ZERO
        self._history: list[BalanceUpdate] = [
            BalanceUpdate(
                timestamp=clock(),
                balance=initial_balance,
                change=initial_balance,
                reason=BalanceReason.DEPOSIT,
                details="initial balance",
            )
        ]

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def peak_balance(self) -> Decimal:
        return self._peak

    @property
    def max_drawdown(self) -> Decimal:
        return self._max_drawdown

    @property
    def history(self) -> list[BalanceUpdate]:
        return list(self._history)

    def current_drawdown(self) -> Decimal:
        if self._peak <= ZERO:
            return ZERO
        return quantize((self._peak - self._balance) / self._peak)

    def record(self, change: Decimal, reason: BalanceReason, details: str = "") -> BalanceUpdate:
        """Apply a balance change and update peak/drawdown."""
        self._balance += change
        update = BalanceUpdate(
            timestamp=self._clock(),
            balance=self._balance,
            change=change,
            reason=reason,
            details=details,
        )
        self._history.append(update)

        if self._balance > self._peak:
            self._peak = self._balance
        else:
            self._max_drawdown = max(self._max_drawdown, self.current_drawdown())
        return update

    def record_settlement(self, result: SettlementResult) -> None:
        """Record a settlement's trade P&L and any injection it triggered."""
        self.record(result.realized_pnl, BalanceReason.TRADE, details=result.position.id)
        if result.injection_occurred:
            event = result.account.injections[-1]
            self.record(event.amount, BalanceReason.INJECTION, details=event.settlement_id)

    def metrics(self) -> BalanceMetrics:
        trades = [u for u in self._history if u.reason is BalanceReason.TRADE]
        injected = sum(
            (u.change for u in self._history if u.reason is BalanceReason.INJECTION), ZERO
        )
        return BalanceMetrics(
            initial_balance=self._initial,
            current_balance=self._balance,
            peak_balance=self._peak,
            max_drawdown=self._max_drawdown,
            current_drawdown=self.current_drawdown(),
            trade_pnl=sum((u.change for u in trades), ZERO),
            injected=injected,
            trades=len(trades),
        )
