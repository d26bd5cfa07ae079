"""Stop-loss, take-profit and trailing stop computation.

Initial stop distance is a fixed fraction of entry (``stop_loss_initial``).
When an ATR is supplied the distance widens to ``atr * atr_multiplier`` if
that is larger, but never beyond ``entry * max_stop_fraction``. The target
sits ``r_ratio`` stop distances away on the favorable side.

Trailing stops only ever tighten: once price has moved past entry in the
position's favor, the candidate ``price * (1 -/+ trailing_stop)`` replaces
the current stop only when it is more protective.

CRITICAL: All computations use Decimal. Never use float.
"""

from decimal import Decimal

from trader.config import ExitSettings, check_fraction, check_positive
from trader.exceptions import InvalidConfiguration
from trader.indicators.window import ZERO, quantize, scaled_quantum
from trader.models import Direction, ExitReason, Position, RiskParameters

_ONE = Decimal("1")


class ExitLevelCalculator:
    """Computes exit levels for new trades and trails stops on open ones.

    Args:
        settings: Stop, target and trailing parameters.

    Raises:
        InvalidConfiguration: If a fraction is outside (0, 1], the reward
            ratio or ATR multiplier is non-positive, or the initial stop is
            wider than the ATR cap.
    """

    def __init__(self, settings: ExitSettings) -> None:
        check_fraction("stop_loss_initial", settings.stop_loss_initial)
        check_fraction("trailing_stop", settings.trailing_stop)
        check_fraction("max_stop_fraction", settings.max_stop_fraction)
        check_positive("r_ratio", settings.r_ratio)
        check_positive("atr_multiplier", settings.atr_multiplier)
        if settings.stop_loss_initial > settings.max_stop_fraction:
            raise InvalidConfiguration(
                "stop_loss_initial must not exceed max_stop_fraction"
            )
        self._settings = settings

    def stop_distance(self, entry_price: Decimal, atr: Decimal | None = None) -> Decimal:
        """Absolute distance between entry and stop.

        Rounded to 12 decimal places relative to the entry price.

        Raises:
            ValueError: If the distance rounds to zero.
        """
        s = self._settings
        distance = entry_price * s.stop_loss_initial
        if atr is not None:
            distance = min(
                max(distance, atr * s.atr_multiplier),
                entry_price * s.max_stop_fraction,
            )
        distance = quantize(distance, scaled_quantum((entry_price,)))
        if distance <= ZERO:
            raise ValueError(f"Stop distance for entry {entry_price} rounds to zero")
        return distance

    def compute_exit_levels(
        self,
        entry_price: Decimal,
        direction: Direction,
        atr: Decimal | None = None,
    ) -> RiskParameters:
        """Compute unsized exit levels for a trade.

        Example: entry 65000 LONG with defaults -> stop 63700, target 68900.

        Args:
            entry_price: Expected fill price.
            direction: LONG or SHORT.
            atr: Optional ATR of the main timeframe to widen the stop.

        Returns:
            RiskParameters with stop, target and stop distance; size 0.

        Raises:
            ValueError: If direction is NEUTRAL, entry is non-positive, ATR is
                negative, or the stop distance rounds to zero.
        """
        if direction is Direction.NEUTRAL:
            raise ValueError("Cannot compute exit levels for a NEUTRAL direction")
        if entry_price <= ZERO:
            raise ValueError(f"Entry price must be positive, got {entry_price}")
        if atr is not None and atr < ZERO:
            raise ValueError(f"ATR must be non-negative, got {atr}")

        distance = self.stop_distance(entry_price, atr)
        sign = direction.sign
        return RiskParameters(
            stop_loss=entry_price - sign * distance,
            take_profit=entry_price + sign * distance * self._settings.r_ratio,
            stop_distance=distance,
        )

    def trail_stop(
        self,
        direction: Direction,
        entry_price: Decimal,
        current_stop: Decimal,
        price: Decimal,
    ) -> Decimal:
        """Return the tightened stop for ``price``; never looser than ``current_stop``.

        Raises:
            ValueError: If direction is NEUTRAL.
        """
        trail = self._settings.trailing_stop
        if direction is Direction.LONG:
            if price <= entry_price:
                return current_stop
            return max(current_stop, quantize(price * (_ONE - trail), scaled_quantum((price,))))
        if direction is Direction.SHORT:
            if price >= entry_price:
                return current_stop
            return min(current_stop, quantize(price * (_ONE + trail), scaled_quantum((price,))))
        raise ValueError("Cannot trail a stop for a NEUTRAL direction")


def check_exit(position: Position, price: Decimal) -> ExitReason | None:
    """Return the exit reason if ``price`` crosses the stop or the target."""
    if position.direction is Direction.LONG:
        if price <= position.stop_loss:
            return ExitReason.STOP_LOSS
        if price >= position.take_profit:
            return ExitReason.TAKE_PROFIT
    elif position.direction is Direction.SHORT:
        if price >= position.stop_loss:
            return ExitReason.STOP_LOSS
        if price <= position.take_profit:
            return ExitReason.TAKE_PROFIT
    return None
