"""Serialized owner of the account state and open positions.

The PositionBook is the single place where AccountState changes. Every
mutation (open, valuation tick, close) runs under one asyncio.Lock, so
concurrent callers can never interleave a settlement with an open and
observe a half-applied balance or a double injection.

Position flow:
1. open: optional pre-trade risk gate, then reserve margin and track
2. mark: recompute exposure/percentage, trail the stop, report whether
   the stop or target was crossed
3. close: settle against the account and drop the position from the
   open set
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal

import structlog

from trader.account.capital import CapitalInjectionPolicy
from trader.account.tracker import BalanceTracker
from trader.exceptions import PositionClosedError, RiskExceeded
from trader.logging import get_logger
from trader.models import (
    AccountState,
    ExitReason,
    Position,
    PositionValuation,
    RiskParameters,
    SettlementResult,
)
from trader.position.operations import open_position, settle, value_position
from trader.risk.exits import ExitLevelCalculator, check_exit
from trader.risk.liquidation import LiquidationModel
from trader.risk.manager import RiskManager
from trader.risk.metrics import PortfolioRisk, portfolio_risk
from trader.signals.models import Signal


@dataclass(frozen=True)
class MarkResult:
    """Outcome of one valuation tick."""

    valuation: PositionValuation
    stop_loss: Decimal
    exit_reason: ExitReason | None


class PositionBook:
    """Tracks open positions and the account they draw margin from.

    Args:
        account: Starting account state.
        exits: Trails stops on valuation ticks.
        policy: Capital-injection policy applied on settlement.
        liquidation_model: Prices liquidation levels on open.
        risk_manager: Optional pre-trade gate (position count, duplicate
            symbol, volatility-adjusted leverage).
        tracker: Optional balance history fed on every settlement.
        logger: Bound logger shared by all book events.
        clock: Time source for open/close timestamps.
    """

    def __init__(
        self,
        account: AccountState,
        exits: ExitLevelCalculator,
        policy: CapitalInjectionPolicy,
        liquidation_model: LiquidationModel,
        risk_manager: RiskManager | None = None,
        tracker: BalanceTracker | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._account = account
        self._exits = exits
        self._policy = policy
        self._liquidation = liquidation_model
        self._risk_manager = risk_manager
        self._tracker = tracker
        self._log = logger or get_logger(__name__)
        self._clock = clock
        self._positions: dict[str, Position] = {}
        self._lock = asyncio.Lock()

    @property
    def account(self) -> AccountState:
        return self._account

    @property
    def open_positions(self) -> list[Position]:
        return list(self._positions.values())

    def get(self, position_id: str) -> Position | None:
        return self._positions.get(position_id)

    def risk(self) -> PortfolioRisk:
        return portfolio_risk(self.open_positions, self._account.balance)

    def _require_open(self, position_id: str) -> Position:
        position = self._positions.get(position_id)
        if position is None:
            raise PositionClosedError(f"Position {position_id} is not open")
        return position

    async def open(
        self,
        signal: Signal,
        params: RiskParameters,
        symbol: str,
        position_id: str | None = None,
    ) -> Position:
        """Open and track a position.

        The volatility fed to the risk gate is the signal's ATR as a
        percentage of its close.

        Raises:
            RiskExceeded: If the risk gate rejects the trade or the open
                itself violates a limit.
        """
        async with self._lock:
            if self._risk_manager is not None:
                allowed, reason = self._risk_manager.check_can_open(
                    symbol, params.leverage, signal.main.volatility, self.open_positions
                )
                if not allowed:
                    raise RiskExceeded(reason)

            position, account = open_position(
                signal,
                params,
                self._account,
                symbol,
                self._liquidation,
                position_id=position_id,
                opened_at=self._clock(),
                log=self._log,
            )
            self._account = account
            self._positions[position.id] = position
            return position

    async def mark(self, position_id: str, price: Decimal) -> MarkResult:
        """Valuation tick: update exposure/percentage, trail the stop, check exits.

        Does not close the position; the caller decides whether to act on
        the returned exit reason.

        Raises:
            PositionClosedError: If no open position has this id.
        """
        async with self._lock:
            position = self._require_open(position_id)
            valuation = value_position(position, price)
            position.exposure = valuation.exposure
            position.percentage = valuation.percentage

            new_stop = self._exits.trail_stop(
                position.direction, position.entry_price, position.stop_loss, price
            )
            if new_stop != position.stop_loss:
                self._log.info(
                    "trailing_stop_moved",
                    position_id=position.id,
                    old_stop=str(position.stop_loss),
                    new_stop=str(new_stop),
                    price=str(price),
                )
                position.stop_loss = new_stop

            exit_reason = check_exit(position, price)
            self._log.debug(
                "position_marked",
                position_id=position.id,
                price=str(price),
                unrealized_pnl=str(valuation.unrealized_pnl),
                percentage=str(valuation.percentage),
                exit_reason=exit_reason.value if exit_reason else None,
            )
            return MarkResult(
                valuation=valuation,
                stop_loss=position.stop_loss,
                exit_reason=exit_reason,
            )

    async def close(
        self,
        position_id: str,
        exit_price: Decimal,
        reason: ExitReason = ExitReason.MANUAL,
    ) -> SettlementResult:
        """Settle a position against the account and stop tracking it.

        Raises:
            PositionClosedError: If no open position has this id.
        """
        async with self._lock:
            position = self._require_open(position_id)
            result = settle(
                position,
                exit_price,
                self._account,
                self._policy,
                reason=reason,
                closed_at=self._clock(),
                log=self._log,
            )
            self._account = result.account
            del self._positions[position_id]
            if self._tracker is not None:
                self._tracker.record_settlement(result)
            return result
