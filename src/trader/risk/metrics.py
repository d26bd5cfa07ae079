"""Portfolio-level exposure metrics.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from trader.indicators.window import HUNDRED, ZERO, quantize
from trader.models import Position


@dataclass(frozen=True)
class PortfolioRisk:
    """Aggregate exposure of all open positions against the account balance."""

    total_exposure: Decimal
    total_margin: Decimal
    effective_leverage: Decimal  # total exposure / balance
    exposure_pct: Decimal  # total exposure as percent of balance
    open_positions: int


def portfolio_risk(positions: Sequence[Position], balance: Decimal) -> PortfolioRisk:
    """Compute exposure metrics over the open positions.

    Closed positions are ignored. With a non-positive balance, leverage and
    exposure percentage are reported as 0.
    """
    open_positions = [p for p in positions if p.is_open]
    total_exposure = sum((p.exposure for p in open_positions), ZERO)
    total_margin = sum((p.initial_margin for p in open_positions), ZERO)

    if balance > ZERO:
        effective_leverage = quantize(total_exposure / balance)
        exposure_pct = quantize(total_exposure / balance * HUNDRED)
    else:
        effective_leverage = ZERO
        exposure_pct = ZERO

    return PortfolioRisk(
        total_exposure=total_exposure,
        total_margin=total_margin,
        effective_leverage=effective_leverage,
        exposure_pct=exposure_pct,
        open_positions=len(open_positions),
    )
