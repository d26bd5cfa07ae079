"""Liquidation price models.

The engine only needs "at what price does this position get liquidated";
how that price is derived is pluggable. Two models ship:

- IsolatedMarginLiquidation: the whole initial margin is lost at
  ``entry * (1 -/+ 1/leverage)``.
- MaintenanceMarginLiquidation: liquidation triggers once equity falls to
  the maintenance margin, at ``entry * (1 -/+ (1/leverage - mmr))``.

Neither models tiered exchange maintenance-margin schedules.
"""

from decimal import Decimal
from typing import Protocol

from trader.config import RiskSettings, check_fraction
from trader.exceptions import RiskExceeded
from trader.indicators.window import ZERO, quantize, scaled_quantum
from trader.models import Direction

_ONE = Decimal("1")


class LiquidationModel(Protocol):
    """Anything that can price a liquidation."""

    def liquidation_price(
        self, entry_price: Decimal, direction: Direction, leverage: int
    ) -> Decimal: ...


def _price_at_fraction(entry_price: Decimal, direction: Direction, fraction: Decimal) -> Decimal:
    if direction is Direction.NEUTRAL:
        raise ValueError("NEUTRAL positions have no liquidation price")
    return quantize(
        entry_price * (_ONE - direction.sign * fraction), scaled_quantum((entry_price,))
    )


class IsolatedMarginLiquidation:
    """Liquidation when the adverse move equals the initial margin."""

    def liquidation_price(
        self, entry_price: Decimal, direction: Direction, leverage: int
    ) -> Decimal:
        if leverage < 1:
            raise RiskExceeded(f"Leverage must be at least 1, got {leverage}")
        return _price_at_fraction(entry_price, direction, _ONE / Decimal(leverage))


class MaintenanceMarginLiquidation:
    """Liquidation when equity falls to ``maintenance_margin_rate`` of notional.

    Args:
        maintenance_margin_rate: Fraction of notional held as maintenance margin.
    """

    def __init__(self, maintenance_margin_rate: Decimal) -> None:
        check_fraction("maintenance_margin_rate", maintenance_margin_rate)
        self._mmr = maintenance_margin_rate

    def liquidation_price(
        self, entry_price: Decimal, direction: Direction, leverage: int
    ) -> Decimal:
        if leverage < 1:
            raise RiskExceeded(f"Leverage must be at least 1, got {leverage}")
        fraction = _ONE / Decimal(leverage) - self._mmr
        if fraction <= ZERO:
            raise RiskExceeded(
                f"Leverage {leverage} leaves no room above maintenance margin {self._mmr}"
            )
        return _price_at_fraction(entry_price, direction, fraction)


def build_liquidation_model(settings: RiskSettings) -> LiquidationModel:
    """Construct the model named by ``settings.liquidation_model``."""
    if settings.liquidation_model == "maintenance":
        return MaintenanceMarginLiquidation(settings.maintenance_margin_rate)
    return IsolatedMarginLiquidation()
