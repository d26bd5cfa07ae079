"""Capital injection policy.

When a settlement leaves the balance below ``injection_trigger``, the
account is topped up by ``injection_amount`` and an InjectionEvent is
recorded. A settlement id that already produced an injection never
produces another, so replaying a settlement cannot double-inject.
"""

from __future__ import annotations

from dataclasses import replace

import structlog

from trader.config import CapitalSettings, check_positive
from trader.logging import get_logger
from trader.models import AccountState, InjectionEvent


class CapitalInjectionPolicy:
    """Tops up an account whose balance fell below the trigger.

    Args:
        settings: Trigger threshold and injection amount.
        logger: Bound logger for ``capital_injected``.

    Raises:
        InvalidConfiguration: If trigger or amount is non-positive.
    """

    def __init__(
        self,
        settings: CapitalSettings,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        check_positive("injection_trigger", settings.injection_trigger)
        check_positive("injection_amount", settings.injection_amount)
        self._settings = settings
        self._log = logger or get_logger(__name__)

    def apply(self, account: AccountState, settlement_id: str) -> tuple[AccountState, bool]:
        """Inject capital if the balance is below the trigger.

        Example: balance 40 with defaults -> balance 540, injection occurred.

        Args:
            account: Account state after the settlement's P&L was applied.
            settlement_id: Identifier of the settlement being evaluated.

        Returns:
            Tuple of (new account state, injection_occurred).
        """
        if any(e.settlement_id == settlement_id for e in account.injections):
            return account, False
        if account.balance >= self._settings.injection_trigger:
            return account, False

        amount = self._settings.injection_amount
        event = InjectionEvent(
            settlement_id=settlement_id,
            amount=amount,
            balance_before=account.balance,
            balance_after=account.balance + amount,
        )
        self._log.info(
            "capital_injected",
            settlement_id=settlement_id,
            amount=str(amount),
            balance_before=str(event.balance_before),
            balance_after=str(event.balance_after),
        )
        return (
            replace(
                account,
                balance=event.balance_after,
                injected_total=account.injected_total + amount,
                injections=(*account.injections, event),
            ),
            True,
        )
