"""Tests for PositionBook serialization and lifecycle.

Verifies:
- open reserves margin and passes through the risk gate
- mark updates exposure/percentage, trails stops and reports exits
- close settles, removes the position and feeds the balance tracker
- concurrent closes leave a consistent account
"""

import asyncio
from decimal import Decimal

import pytest

from trader.account.capital import CapitalInjectionPolicy
from trader.account.tracker import BalanceReason, BalanceTracker
from trader.exceptions import PositionClosedError, RiskExceeded
from trader.models import AccountState, ExitReason, RiskParameters
from trader.position.book import PositionBook
from trader.risk.exits import ExitLevelCalculator
from trader.risk.liquidation import IsolatedMarginLiquidation
from trader.risk.manager import RiskManager


@pytest.fixture
def tracker() -> BalanceTracker:
    return BalanceTracker(Decimal("500"), clock=lambda: 0.0)


@pytest.fixture
def book(exit_settings, capital_settings, risk_settings, tracker) -> PositionBook:
    return PositionBook(
        AccountState(balance=Decimal("500")),
        ExitLevelCalculator(exit_settings),
        CapitalInjectionPolicy(capital_settings),
        IsolatedMarginLiquidation(),
        risk_manager=RiskManager(risk_settings),
        tracker=tracker,
        clock=lambda: 1_700_000_000.0,
    )


@pytest.fixture
def btc_params() -> RiskParameters:
    return RiskParameters(
        stop_loss=Decimal("63700"),
        take_profit=Decimal("68900"),
        stop_distance=Decimal("1300"),
        risk_amount=Decimal("9.1"),
        size=Decimal("0.007"),
        leverage=5,
    )


@pytest.fixture
def eth_params() -> RiskParameters:
    return RiskParameters(
        stop_loss=Decimal("2940"),
        take_profit=Decimal("3180"),
        stop_distance=Decimal("60"),
        risk_amount=Decimal("6"),
        size=Decimal("0.1"),
        leverage=5,
    )


class TestOpen:
    @pytest.mark.asyncio
    async def test_open_tracks_position(self, book, make_signal, btc_params) -> None:
        position = await book.open(make_signal(), btc_params, "BTC/USDT:USDT", position_id="btc")
        assert book.get("btc") is position
        assert position.opened_at == 1_700_000_000.0
        assert book.account.reserved_margin == Decimal("91")
        assert book.risk().total_exposure == Decimal("455")

    @pytest.mark.asyncio
    async def test_duplicate_symbol_rejected(self, book, make_signal, btc_params) -> None:
        await book.open(make_signal(), btc_params, "BTC/USDT:USDT")
        with pytest.raises(RiskExceeded):
            await book.open(make_signal(), btc_params, "BTC/USDT:USDT")
        assert len(book.open_positions) == 1

    @pytest.mark.asyncio
    async def test_volatile_market_caps_leverage(self, book, make_signal, btc_params) -> None:
        """ATR at 5% of price: cap is max(1, 10 - 10) = 1x, so 5x is rejected."""
        with pytest.raises(RiskExceeded):
            await book.open(make_signal(atr="3250"), btc_params, "BTC/USDT:USDT")
        assert book.account.reserved_margin == Decimal("0")


class TestMark:
    @pytest.mark.asyncio
    async def test_trails_stop_and_updates_valuation(self, book, make_signal, btc_params) -> None:
        await book.open(make_signal(), btc_params, "BTC/USDT:USDT", position_id="btc")
        result = await book.mark("btc", Decimal("66000"))

        assert result.stop_loss == Decimal("64680")
        assert result.exit_reason is None
        assert result.valuation.unrealized_pnl == Decimal("7")
        position = book.get("btc")
        assert position.stop_loss == Decimal("64680")
        assert position.percentage == result.valuation.percentage

    @pytest.mark.asyncio
    async def test_reports_take_profit(self, book, make_signal, btc_params) -> None:
        await book.open(make_signal(), btc_params, "BTC/USDT:USDT", position_id="btc")
        result = await book.mark("btc", Decimal("70000"))
        assert result.exit_reason is ExitReason.TAKE_PROFIT
        assert book.get("btc").is_open

    @pytest.mark.asyncio
    async def test_reports_stop_loss(self, book, make_signal, btc_params) -> None:
        await book.open(make_signal(), btc_params, "BTC/USDT:USDT", position_id="btc")
        result = await book.mark("btc", Decimal("63000"))
        assert result.exit_reason is ExitReason.STOP_LOSS
        assert result.stop_loss == Decimal("63700")

    @pytest.mark.asyncio
    async def test_unknown_position(self, book) -> None:
        with pytest.raises(PositionClosedError):
            await book.mark("missing", Decimal("1"))


class TestClose:
    @pytest.mark.asyncio
    async def test_close_settles_and_removes(
        self, book, tracker, make_signal, btc_params
    ) -> None:
        await book.open(make_signal(), btc_params, "BTC/USDT:USDT", position_id="btc")
        await book.mark("btc", Decimal("66000"))
        result = await book.close("btc", Decimal("64680"), ExitReason.STOP_LOSS)

        assert result.realized_pnl == Decimal("-2.24")
        assert book.account.balance == Decimal("497.76")
        assert book.account.reserved_margin == Decimal("0")
        assert book.get("btc") is None
        assert tracker.balance == Decimal("497.76")
        assert tracker.history[-1].reason is BalanceReason.TRADE

        with pytest.raises(PositionClosedError):
            await book.close("btc", Decimal("64680"))

    @pytest.mark.asyncio
    async def test_concurrent_closes_are_serialized(
        self, book, make_signal, btc_params, eth_params
    ) -> None:
        await book.open(make_signal(), btc_params, "BTC/USDT:USDT", position_id="btc")
        await book.open(
            make_signal(entry="3000", atr="30"), eth_params, "ETH/USDT:USDT", position_id="eth"
        )
        assert book.account.reserved_margin == Decimal("151")

        btc, eth = await asyncio.gather(
            book.close("btc", Decimal("68900")),
            book.close("eth", Decimal("2940")),
        )
        assert btc.realized_pnl == Decimal("27.3")
        assert eth.realized_pnl == Decimal("-6")
        assert book.account.balance == Decimal("521.3")
        assert book.account.reserved_margin == Decimal("0")
        assert book.account.settled_ids == frozenset({"btc", "eth"})
        assert book.open_positions == []
