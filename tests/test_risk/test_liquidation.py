"""Tests for liquidation price models."""

from decimal import Decimal

import pytest

from trader.config import RiskSettings
from trader.exceptions import InvalidConfiguration, RiskExceeded
from trader.models import Direction
from trader.risk.liquidation import (
    IsolatedMarginLiquidation,
    MaintenanceMarginLiquidation,
    build_liquidation_model,
)


class TestIsolatedMargin:
    def test_long_and_short(self) -> None:
        model = IsolatedMarginLiquidation()
        assert model.liquidation_price(Decimal("100"), Direction.LONG, 5) == Decimal("80")
        assert model.liquidation_price(Decimal("100"), Direction.SHORT, 5) == Decimal("120")

    def test_reference_trade(self) -> None:
        model = IsolatedMarginLiquidation()
        assert model.liquidation_price(Decimal("65000"), Direction.LONG, 5) == Decimal("52000")

    def test_neutral_raises(self) -> None:
        with pytest.raises(ValueError):
            IsolatedMarginLiquidation().liquidation_price(Decimal("100"), Direction.NEUTRAL, 5)


class TestMaintenanceMargin:
    def test_long_and_short(self) -> None:
        model = MaintenanceMarginLiquidation(Decimal("0.005"))
        assert model.liquidation_price(Decimal("100"), Direction.LONG, 10) == Decimal("90.5")
        assert model.liquidation_price(Decimal("100"), Direction.SHORT, 10) == Decimal("109.5")

    def test_leverage_eating_all_margin(self) -> None:
        model = MaintenanceMarginLiquidation(Decimal("0.005"))
        with pytest.raises(RiskExceeded):
            model.liquidation_price(Decimal("100"), Direction.LONG, 200)

    def test_invalid_rate(self) -> None:
        with pytest.raises(InvalidConfiguration):
            MaintenanceMarginLiquidation(Decimal("0"))


class TestBuildLiquidationModel:
    def test_default_is_isolated(self) -> None:
        assert isinstance(build_liquidation_model(RiskSettings()), IsolatedMarginLiquidation)

    def test_maintenance_selected(self) -> None:
        model = build_liquidation_model(RiskSettings(liquidation_model="maintenance"))
        assert isinstance(model, MaintenanceMarginLiquidation)
