"""Exit levels, sizing, liquidation and pre-trade risk checks."""

from trader.risk.exits import ExitLevelCalculator, check_exit
from trader.risk.liquidation import (
    IsolatedMarginLiquidation,
    LiquidationModel,
    MaintenanceMarginLiquidation,
    build_liquidation_model,
)
from trader.risk.manager import RiskManager
from trader.risk.metrics import PortfolioRisk, portfolio_risk
from trader.risk.sizing import PositionSizer, round_to_step

__all__ = [
    "ExitLevelCalculator",
    "IsolatedMarginLiquidation",
    "LiquidationModel",
    "MaintenanceMarginLiquidation",
    "PortfolioRisk",
    "PositionSizer",
    "RiskManager",
    "build_liquidation_model",
    "check_exit",
    "portfolio_risk",
    "round_to_step",
]
