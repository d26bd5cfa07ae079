"""Tests for the pre-trade RiskManager gate."""

from decimal import Decimal

import pytest

from trader.config import RiskSettings
from trader.models import Direction
from trader.risk.manager import RiskManager


@pytest.fixture
def manager() -> RiskManager:
    return RiskManager(RiskSettings(max_simultaneous_positions=2))


class TestLeverageCap:
    def test_calm_market_allows_max(self, manager) -> None:
        assert manager.max_allowed_leverage(Decimal("0")) == 10

    def test_cap_drops_per_half_point(self, manager) -> None:
        """floor(1.6 * 2) = 3 -> 10 - 3."""
        assert manager.max_allowed_leverage(Decimal("1.6")) == 7

    def test_never_below_one(self, manager) -> None:
        assert manager.max_allowed_leverage(Decimal("10")) == 1


class TestCheckCanOpen:
    def test_allowed(self, manager) -> None:
        assert manager.check_can_open("BTC/USDT:USDT", 5, Decimal("1"), []) == (True, "")

    def test_duplicate_symbol(self, manager, make_position) -> None:
        existing = make_position(symbol="BTC/USDT:USDT")
        allowed, reason = manager.check_can_open("BTC/USDT:USDT", 5, Decimal("1"), [existing])
        assert not allowed
        assert "BTC/USDT:USDT" in reason

    def test_max_positions(self, manager, make_position) -> None:
        positions = [
            make_position(symbol="ETH/USDT:USDT", position_id="a"),
            make_position(Direction.SHORT, symbol="SOL/USDT:USDT", position_id="b"),
        ]
        allowed, reason = manager.check_can_open("BTC/USDT:USDT", 5, Decimal("1"), positions)
        assert not allowed
        assert "max positions" in reason

    def test_leverage_above_volatility_cap(self, manager) -> None:
        allowed, reason = manager.check_can_open("BTC/USDT:USDT", 8, Decimal("1.6"), [])
        assert not allowed
        assert "7x" in reason
