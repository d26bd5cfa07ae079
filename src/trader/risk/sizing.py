"""Risk-bounded position size calculation.

All calculations use Decimal arithmetic exclusively -- no float conversions.

Position sizing flow:
1. Reject risk fractions above MAX_RISK and leverage outside [1, max_leverage]
2. Reject stops at or beyond the liquidation distance
3. raw_size = min(balance * risk / stop_distance, balance * leverage / entry)
4. Round down to qty_step
5. Reject sizes below min_qty
6. Optionally cap the risk budget by market volatility:
   size <= balance * max_risk * factor / stop_distance, where
   factor = 1 - min(volatility% / 100, max_volatility_reduction)

Rounding is always DOWN, so ``size * stop_distance <= balance * max_risk``
holds for every accepted trade.
"""

from dataclasses import replace
from decimal import Decimal

from trader.config import RiskSettings, check_fraction, check_positive
from trader.exceptions import InvalidConfiguration, RiskExceeded
from trader.indicators.window import HUNDRED, ZERO
from trader.models import Direction, RiskParameters
from trader.risk.liquidation import IsolatedMarginLiquidation, LiquidationModel


def round_to_step(value: Decimal, step: Decimal) -> Decimal:
    """Round a value down to the nearest step increment.

    Uses integer division to ensure we always round DOWN (never up),
    which prevents exceeding the risk or margin budget.

    Args:
        value: The raw quantity to round.
        step: The minimum increment (e.g., 0.001 for BTC).

    Returns:
        The value rounded down to the nearest step.
    """
    return (value // step) * step


class PositionSizer:
    """Calculates position sizes bounded by risk, margin and liquidation distance.

    Args:
        settings: Risk settings containing max risk, leverage bounds and
            quantity constraints.
        liquidation_model: Used for the liquidation distance check.
            Defaults to isolated margin (``entry / leverage``).

    Raises:
        InvalidConfiguration: If limits are out of range.
    """

    def __init__(
        self,
        settings: RiskSettings,
        liquidation_model: LiquidationModel | None = None,
    ) -> None:
        check_fraction("max_risk", settings.max_risk)
        check_positive("min_qty", settings.min_qty)
        check_positive("qty_step", settings.qty_step)
        check_positive("default_leverage", settings.default_leverage)
        check_positive("max_leverage", settings.max_leverage)
        check_fraction("max_volatility_reduction", settings.max_volatility_reduction)
        if settings.default_leverage > settings.max_leverage:
            raise InvalidConfiguration("default_leverage must not exceed max_leverage")
        self._settings = settings
        self._liquidation = liquidation_model or IsolatedMarginLiquidation()

    def liquidation_distance(self, entry_price: Decimal, leverage: int) -> Decimal:
        """Adverse move from entry that triggers liquidation."""
        liquidation = self._liquidation.liquidation_price(
            entry_price, Direction.LONG, leverage
        )
        return entry_price - liquidation

    def size_position(
        self,
        balance: Decimal,
        risk_fraction: Decimal,
        stop_distance: Decimal,
        leverage: int,
        entry_price: Decimal,
    ) -> Decimal:
        """Calculate the largest size that respects risk and margin budgets.

        Args:
            balance: Capital available for the trade.
            risk_fraction: Fraction of balance lost if the stop is hit.
            stop_distance: Absolute distance from entry to stop.
            leverage: Requested leverage.
            entry_price: Expected fill price.

        Returns:
            Size rounded down to qty_step.

        Raises:
            RiskExceeded: If the risk fraction or leverage exceeds its limit,
                the stop lies at or beyond liquidation, the balance is not
                positive, or the rounded size is below min_qty.
            ValueError: If stop distance or entry price is non-positive.
        """
        s = self._settings
        if stop_distance <= ZERO:
            raise ValueError(f"Stop distance must be positive, got {stop_distance}")
        if entry_price <= ZERO:
            raise ValueError(f"Entry price must be positive, got {entry_price}")
        if balance <= ZERO:
            raise RiskExceeded(f"No capital to risk: balance {balance}")
        if not ZERO < risk_fraction <= s.max_risk:
            raise RiskExceeded(
                f"Risk fraction {risk_fraction} outside (0, {s.max_risk}]"
            )
        if not 1 <= leverage <= s.max_leverage:
            raise RiskExceeded(f"Leverage {leverage} outside [1, {s.max_leverage}]")

        liquidation_distance = self.liquidation_distance(entry_price, leverage)
        if stop_distance >= liquidation_distance:
            raise RiskExceeded(
                f"Stop distance {stop_distance} reaches liquidation distance "
                f"{liquidation_distance} at {leverage}x"
            )

        by_risk = balance * risk_fraction / stop_distance
        by_margin = balance * Decimal(leverage) / entry_price
        size = round_to_step(min(by_risk, by_margin), s.qty_step)

        if size < s.min_qty:
            raise RiskExceeded(
                f"Size {size} below minimum quantity {s.min_qty}: the smallest "
                f"tradable unit would exceed the risk or margin budget"
            )
        return size

    def size_trade(
        self,
        params: RiskParameters,
        balance: Decimal,
        entry_price: Decimal,
        leverage: int | None = None,
        volatility: Decimal | None = None,
    ) -> RiskParameters:
        """Fill in size, risk amount and leverage on unsized exit levels.

        Risks the full ``max_risk`` fraction; leverage defaults to
        ``default_leverage``. With a volatility and ``volatility_sizing``
        enabled the result goes through ``adjust_for_volatility``.
        """
        lev = leverage if leverage is not None else self._settings.default_leverage
        size = self.size_position(
            balance, self._settings.max_risk, params.stop_distance, lev, entry_price
        )
        sized = replace(
            params,
            size=size,
            risk_amount=size * params.stop_distance,
            leverage=lev,
        )
        if volatility is not None and self._settings.volatility_sizing:
            return self.adjust_for_volatility(sized, balance, volatility)
        return sized

    def volatility_factor(self, volatility: Decimal) -> Decimal:
        """Fraction of the risk budget kept at a volatility (ATR % of price).

        Args:
            volatility: ATR as a percentage of price, e.g. 2 for 2%.

        Raises:
            ValueError: If volatility is negative.
        """
        if volatility < ZERO:
            raise ValueError(f"Volatility must be non-negative, got {volatility}")
        return 1 - min(volatility / HUNDRED, self._settings.max_volatility_reduction)

    def adjust_for_volatility(
        self,
        params: RiskParameters,
        balance: Decimal,
        volatility: Decimal,
    ) -> RiskParameters:
        """Shrink a sized trade so its stop-loss risk fits the volatility-scaled budget.

        Never grows the size. Risk amount is recomputed from the new size.

        Raises:
            RiskExceeded: If the capped size falls below min_qty.
        """
        s = self._settings
        factor = self.volatility_factor(volatility)
        cap = balance * s.max_risk * factor / params.stop_distance
        size = round_to_step(min(params.size, cap), s.qty_step)
        if size < s.min_qty:
            raise RiskExceeded(
                f"Size {size} below minimum quantity {s.min_qty} after "
                f"volatility cap at {volatility}%"
            )
        if size == params.size:
            return params
        return replace(params, size=size, risk_amount=size * params.stop_distance)
