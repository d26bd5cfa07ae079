"""Tests for position open, valuation and settlement.

Verifies:
- value_position is pure and idempotent
- open_position reserves margin and rejects invalid trades
- settle floors losses at the initial margin, releases margin and
  applies the capital-injection policy exactly once
- a settled position is immutable
"""

from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from trader.account.capital import CapitalInjectionPolicy
from trader.exceptions import PositionClosedError, RiskExceeded
from trader.models import AccountState, Direction, ExitReason, PositionStatus, RiskParameters
from trader.position.operations import open_position, settle, value_position
from trader.risk.liquidation import IsolatedMarginLiquidation


@pytest.fixture
def policy(capital_settings) -> CapitalInjectionPolicy:
    return CapitalInjectionPolicy(capital_settings)


@pytest.fixture
def btc_params() -> RiskParameters:
    """Sized levels for a 65000 LONG on a 500 balance at 5x."""
    return RiskParameters(
        stop_loss=Decimal("63700"),
        take_profit=Decimal("68900"),
        stop_distance=Decimal("1300"),
        risk_amount=Decimal("9.1"),
        size=Decimal("0.007"),
        leverage=5,
    )


class TestValuePosition:
    def test_long_profit(self, make_position) -> None:
        position = make_position(Direction.LONG, entry="100", size="2", leverage=5)
        valuation = value_position(position, Decimal("110"))
        assert valuation.exposure == Decimal("200")
        assert valuation.unrealized_pnl == Decimal("20")
        assert valuation.percentage == Decimal("50")

    def test_short_loss(self, make_position) -> None:
        position = make_position(Direction.SHORT, entry="100", size="2", leverage=5)
        valuation = value_position(position, Decimal("110"))
        assert valuation.unrealized_pnl == Decimal("-20")
        assert valuation.percentage == Decimal("-50")

    def test_idempotent(self, make_position) -> None:
        position = make_position()
        assert value_position(position, Decimal("103")) == value_position(position, Decimal("103"))

    def test_non_positive_price(self, make_position) -> None:
        with pytest.raises(ValueError):
            value_position(make_position(), Decimal("0"))


class TestOpenPosition:
    def test_reserves_margin(self, make_signal, btc_params) -> None:
        account = AccountState(balance=Decimal("500"))
        position, after = open_position(
            make_signal(Direction.LONG, entry="65000"),
            btc_params,
            account,
            "BTC/USDT:USDT",
            IsolatedMarginLiquidation(),
            position_id="btc-1",
        )
        assert position.id == "btc-1"
        assert position.status is PositionStatus.OPEN
        assert position.initial_margin == Decimal("91")
        assert position.exposure == Decimal("455")
        assert position.liquidation_price == Decimal("52000")
        assert after.balance == Decimal("500")
        assert after.reserved_margin == Decimal("91")
        assert after.available == Decimal("409")
        assert account.reserved_margin == Decimal("0")

    def test_neutral_signal_rejected(self, make_signal, btc_params) -> None:
        with pytest.raises(RiskExceeded):
            open_position(
                make_signal(Direction.NEUTRAL),
                btc_params,
                AccountState(balance=Decimal("500")),
                "BTC/USDT:USDT",
                IsolatedMarginLiquidation(),
            )

    def test_unsized_params_rejected(self, make_signal) -> None:
        params = RiskParameters(
            stop_loss=Decimal("63700"), take_profit=Decimal("68900"), stop_distance=Decimal("1300")
        )
        with pytest.raises(RiskExceeded):
            open_position(
                make_signal(),
                params,
                AccountState(balance=Decimal("500")),
                "BTC/USDT:USDT",
                IsolatedMarginLiquidation(),
            )

    def test_stop_on_wrong_side_rejected(self, make_signal, btc_params) -> None:
        with pytest.raises(RiskExceeded):
            open_position(
                make_signal(Direction.SHORT),
                btc_params,
                AccountState(balance=Decimal("500")),
                "BTC/USDT:USDT",
                IsolatedMarginLiquidation(),
            )

    def test_margin_above_available_rejected(self, make_signal, btc_params) -> None:
        account = AccountState(balance=Decimal("500"), reserved_margin=Decimal("450"))
        with pytest.raises(RiskExceeded):
            open_position(
                make_signal(), btc_params, account, "BTC/USDT:USDT", IsolatedMarginLiquidation()
            )


class TestSettle:
    def test_take_profit(self, make_signal, btc_params, policy) -> None:
        position, account = open_position(
            make_signal(),
            btc_params,
            AccountState(balance=Decimal("500")),
            "BTC/USDT:USDT",
            IsolatedMarginLiquidation(),
        )
        result = settle(position, Decimal("68900"), account, policy, ExitReason.TAKE_PROFIT)

        assert result.realized_pnl == Decimal("27.3")
        assert result.account.balance == Decimal("527.3")
        assert result.account.reserved_margin == Decimal("0")
        assert not result.injection_occurred
        assert position.status is PositionStatus.CLOSED
        assert position.exit_reason is ExitReason.TAKE_PROFIT
        assert position.realized_pnl == Decimal("27.3")

    def test_loss_floored_at_initial_margin(self, make_position, policy) -> None:
        position = make_position(Direction.LONG, entry="100", size="1", leverage=5)
        account = AccountState(balance=Decimal("500"), reserved_margin=Decimal("20"))
        result = settle(position, Decimal("50"), account, policy)
        assert result.realized_pnl == Decimal("-20")
        assert result.account.balance == Decimal("480")

    def test_injection_after_loss(self, make_position, policy) -> None:
        """60 - 20 = 40 is below the trigger: topped up to 540."""
        position = make_position(Direction.LONG, entry="100", size="1", leverage=5)
        account = AccountState(balance=Decimal("60"), reserved_margin=Decimal("20"))
        result = settle(position, Decimal("80"), account, policy, ExitReason.STOP_LOSS)
        assert result.injection_occurred
        assert result.account.balance == Decimal("540")
        assert result.account.injected_total == Decimal("500")
        assert result.account.injections[0].balance_before == Decimal("40")

    def test_replay_is_noop(self, make_position, policy) -> None:
        position = make_position(Direction.LONG, entry="100", size="1", leverage=5)
        account = AccountState(balance=Decimal("60"), reserved_margin=Decimal("20"))
        first = settle(position, Decimal("80"), account, policy)
        second = settle(position, Decimal("80"), first.account, policy)
        assert second.account == first.account
        assert not second.injection_occurred
        assert second.realized_pnl == Decimal("-20")

    def test_closed_position_is_immutable(self, make_position, policy) -> None:
        position = make_position()
        settle(position, Decimal("101"), AccountState(balance=Decimal("500")), policy)
        with pytest.raises(PositionClosedError):
            position.stop_loss = Decimal("99")
        with pytest.raises(PositionClosedError):
            settle(position, Decimal("101"), AccountState(balance=Decimal("500")), policy)

    def test_closed_position_rejected_before_injection(self, make_position, policy) -> None:
        """A position closed elsewhere never reaches the injection policy."""
        position = make_position()
        position.close(Decimal("100"), Decimal("0"), ExitReason.MANUAL, 1.0)
        account = AccountState(balance=Decimal("10"))

        with capture_logs() as logs:
            with pytest.raises(PositionClosedError):
                settle(position, Decimal("100"), account, policy)

        assert [entry["event"] for entry in logs] == []
        assert account.injections == ()
