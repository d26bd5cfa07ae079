"""Pre-trade risk gate.

Enforces:
  - Max simultaneous open positions
  - Duplicate symbol prevention (one open position per symbol)
  - Volatility-adjusted leverage cap: every full half-point of volatility
    score removes one unit of leverage, never going below 1x
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_FLOOR, Decimal

import structlog

from trader.config import RiskSettings, check_positive
from trader.indicators.window import ZERO
from trader.logging import get_logger
from trader.models import Position


class RiskManager:
    """Pre-trade risk manager.

    Args:
        settings: Risk settings containing all thresholds.
        logger: Bound logger for ``trade_rejected``.
    """

    def __init__(
        self,
        settings: RiskSettings,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        check_positive("max_leverage", settings.max_leverage)
        check_positive("max_simultaneous_positions", settings.max_simultaneous_positions)
        self._settings = settings
        self._log = logger or get_logger(__name__)

    def max_allowed_leverage(self, volatility: Decimal) -> int:
        """Leverage cap for a volatility score: ``max(1, max_leverage - floor(vol * 2))``."""
        if volatility < ZERO:
            raise ValueError(f"Volatility must be non-negative, got {volatility}")
        penalty = int((volatility * 2).to_integral_value(rounding=ROUND_FLOOR))
        return max(1, self._settings.max_leverage - penalty)

    def check_can_open(
        self,
        symbol: str,
        leverage: int,
        volatility: Decimal,
        positions: Sequence[Position],
    ) -> tuple[bool, str]:
        """Check if a new position can be opened.

        Args:
            symbol: Symbol for the proposed position.
            leverage: Requested leverage.
            volatility: Current volatility score of the symbol.
            positions: Currently open positions.

        Returns:
            Tuple of (allowed, reason). If allowed is True, reason is "".
        """
        open_positions = [p for p in positions if p.is_open]
        reason = ""

        if len(open_positions) >= self._settings.max_simultaneous_positions:
            reason = f"At max positions: {self._settings.max_simultaneous_positions}"
        elif symbol in {p.symbol for p in open_positions}:
            reason = f"Already have position in {symbol}"
        else:
            cap = self.max_allowed_leverage(volatility)
            if leverage > cap:
                reason = f"Leverage {leverage}x above volatility-adjusted cap {cap}x"

        if reason:
            self._log.warning(
                "trade_rejected",
                symbol=symbol,
                leverage=leverage,
                volatility=str(volatility),
                reason=reason,
            )
            return False, reason
        return True, ""
