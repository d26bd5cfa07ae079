"""Position open, valuation and settlement.

Position flow:
1. open_position reserves ``size * entry / leverage`` of the available
   balance as initial margin and prices the liquidation level
2. value_position marks the position to a price (pure, idempotent)
3. settle realizes P&L (floored at the initial margin: isolated margin
   never loses more than it posted), releases the margin, closes the
   position and runs the capital-injection policy once

Settlement is keyed by position id: settling an id the account already
recorded returns the account unchanged.

CRITICAL: All monetary values use Decimal. Never use float.
"""

from __future__ import annotations

import time
from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import structlog

from trader.account.capital import CapitalInjectionPolicy
from trader.exceptions import PositionClosedError, RiskExceeded
from trader.indicators.window import HUNDRED, ZERO, quantize, scaled_quantum
from trader.logging import get_logger
from trader.models import (
    AccountState,
    Direction,
    ExitReason,
    Position,
    PositionValuation,
    RiskParameters,
    SettlementResult,
)
from trader.risk.liquidation import LiquidationModel
from trader.signals.models import Signal

logger = get_logger(__name__)


def value_position(position: Position, price: Decimal) -> PositionValuation:
    """Mark a position to ``price``.

    exposure = size * entry; unrealized = (price - entry) * size * sign;
    percentage = unrealized / initial_margin * 100.

    Raises:
        ValueError: If price is non-positive.
    """
    if price <= ZERO:
        raise ValueError(f"Price must be positive, got {price}")
    unrealized = (price - position.entry_price) * position.size * position.direction.sign
    percentage = (
        quantize(unrealized / position.initial_margin * HUNDRED)
        if position.initial_margin > ZERO
        else ZERO
    )
    return PositionValuation(
        exposure=position.size * position.entry_price,
        unrealized_pnl=unrealized,
        percentage=percentage,
    )


def open_position(
    signal: Signal,
    params: RiskParameters,
    account: AccountState,
    symbol: str,
    liquidation_model: LiquidationModel,
    position_id: str | None = None,
    opened_at: float | None = None,
    log: structlog.stdlib.BoundLogger | None = None,
) -> tuple[Position, AccountState]:
    """Open a position from a signal and sized risk parameters.

    Args:
        signal: LONG or SHORT signal; its entry price is the fill price.
        params: Sized exit levels from ``PositionSizer.size_trade``.
        account: Current account state.
        symbol: Instrument symbol.
        liquidation_model: Prices the liquidation level.
        position_id: Explicit id; a random one is generated when omitted.
        opened_at: Open timestamp; defaults to now.
        log: Bound logger for ``position_opened``.

    Returns:
        Tuple of (new Position, account with the margin reserved).

    Raises:
        RiskExceeded: If the signal is NEUTRAL, params are unsized, the stop
            or target is on the wrong side of entry, the stop lies beyond
            liquidation, or the margin exceeds the available balance.
    """
    direction = signal.direction
    entry = signal.entry_price
    if direction is Direction.NEUTRAL:
        raise RiskExceeded("Cannot open a position from a NEUTRAL signal")
    if not params.is_sized:
        raise RiskExceeded("Risk parameters are not sized")

    sign = direction.sign
    if (entry - params.stop_loss) * sign <= ZERO:
        raise RiskExceeded(
            f"Stop {params.stop_loss} is on the wrong side of entry {entry} for {direction.value}"
        )
    if (params.take_profit - entry) * sign <= ZERO:
        raise RiskExceeded(
            f"Target {params.take_profit} is on the wrong side of entry {entry} "
            f"for {direction.value}"
        )

    liquidation_price = liquidation_model.liquidation_price(entry, direction, params.leverage)
    if (params.stop_loss - liquidation_price) * sign <= ZERO:
        raise RiskExceeded(
            f"Stop {params.stop_loss} lies beyond liquidation {liquidation_price}"
        )

    notional_margin = params.size * entry / Decimal(params.leverage)
    margin = quantize(notional_margin, scaled_quantum((notional_margin,)))
    if margin > account.available:
        raise RiskExceeded(
            f"Margin {margin} exceeds available balance {account.available}"
        )

    position = Position(
        id=position_id or str(uuid4()),
        symbol=symbol,
        direction=direction,
        entry_price=entry,
        size=params.size,
        leverage=params.leverage,
        initial_margin=margin,
        exposure=params.size * entry,
        liquidation_price=liquidation_price,
        stop_loss=params.stop_loss,
        take_profit=params.take_profit,
        opened_at=opened_at if opened_at is not None else time.time(),
    )
    (log or logger).info(
        "position_opened",
        position_id=position.id,
        symbol=symbol,
        direction=direction.value,
        entry_price=str(entry),
        size=str(position.size),
        leverage=position.leverage,
        margin=str(margin),
        stop_loss=str(position.stop_loss),
        take_profit=str(position.take_profit),
        liquidation_price=str(liquidation_price),
    )
    return position, replace(account, reserved_margin=account.reserved_margin + margin)


def settle(
    position: Position,
    exit_price: Decimal,
    account: AccountState,
    policy: CapitalInjectionPolicy,
    reason: ExitReason = ExitReason.MANUAL,
    closed_at: float | None = None,
    log: structlog.stdlib.BoundLogger | None = None,
) -> SettlementResult:
    """Close a position at ``exit_price`` and apply the result to the account.

    Args:
        position: The open position to settle.
        exit_price: Fill price of the closing trade.
        account: Account state holding the position's reserved margin.
        policy: Capital-injection policy applied once after the P&L.
        reason: Why the position is closed.
        closed_at: Close timestamp; defaults to now.
        log: Bound logger.

    Returns:
        SettlementResult. For an already-settled position id the account is
        returned unchanged with ``injection_occurred=False``.

    Raises:
        PositionClosedError: If the position is closed but this account
            never settled it. Checked before any P&L or capital-injection
            work, so a rejected settlement logs nothing.
        ValueError: If exit price is non-positive.
    """
    log = log or logger
    if position.id in account.settled_ids:
        log.info("settlement_replayed", position_id=position.id)
        return SettlementResult(
            account=account,
            injection_occurred=False,
            realized_pnl=position.realized_pnl if position.realized_pnl is not None else ZERO,
            position=position,
        )
    if not position.is_open:
        raise PositionClosedError(f"Position {position.id} is already closed")
    if exit_price <= ZERO:
        raise ValueError(f"Exit price must be positive, got {exit_price}")

    raw_pnl = (exit_price - position.entry_price) * position.size * position.direction.sign
    pnl = max(raw_pnl, -position.initial_margin)

    released = replace(
        account,
        balance=account.balance + pnl,
        reserved_margin=max(account.reserved_margin - position.initial_margin, ZERO),
    )
    injected, injection_occurred = policy.apply(released, position.id)
    final = replace(injected, settled_ids=injected.settled_ids | {position.id})

    position.close(
        exit_price=exit_price,
        realized_pnl=pnl,
        reason=reason,
        closed_at=closed_at if closed_at is not None else time.time(),
    )
    log.info(
        "position_closed",
        position_id=position.id,
        symbol=position.symbol,
        reason=reason.value,
        exit_price=str(exit_price),
        realized_pnl=str(pnl),
        balance=str(final.balance),
        injection_occurred=injection_occurred,
    )
    return SettlementResult(
        account=final,
        injection_occurred=injection_occurred,
        realized_pnl=pnl,
        position=position,
    )
