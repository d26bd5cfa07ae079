"""Trading engine: the library's external interface.

The TradingEngine is an explicit context object. It builds every component
from one AppSettings instance and a bound logger, and holds no other
state: account state is passed in and returned, so two engines built from
the same settings give identical answers for identical inputs.

Typical flow:
1. analyze: main + auxiliary series -> Signal
   (classify_regime and detect_patterns give per-series context)
2. plan_trade: Signal + account -> sized RiskParameters
3. open_position: reserve margin, create the Position
4. value_position on every tick
5. settle: realize P&L, release margin, maybe inject capital
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

import structlog

from trader.account.capital import CapitalInjectionPolicy
from trader.account.tracker import BalanceTracker
from trader.config import AppSettings
from trader.exceptions import RiskExceeded
from trader.logging import get_logger
from trader.levels.models import ChartPattern
from trader.levels.patterns import PatternDetector
from trader.market.regime import MarketRegime, RegimeClassifier
from trader.market.series import TimeframeSeries
from trader.models import (
    AccountState,
    Direction,
    ExitReason,
    Position,
    PositionValuation,
    RiskParameters,
)
from trader.position import operations
from trader.position.book import PositionBook
from trader.risk.exits import ExitLevelCalculator
from trader.risk.liquidation import build_liquidation_model
from trader.risk.manager import RiskManager
from trader.risk.sizing import PositionSizer
from trader.signals.models import ModelHint, Signal
from trader.signals.strategy import build_strategy


class TradingEngine:
    """Entry point tying signals, exits, sizing and settlement together.

    Args:
        settings: Full application settings.
        logger: Bound logger handed to every component. Defaults to a
            logger named after this module.

    Raises:
        InvalidConfiguration: If any settings group is out of range.
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._log = logger or get_logger(__name__)

        self._strategy = build_strategy(self._settings, logger=self._log)
        self._exits = ExitLevelCalculator(self._settings.exits)
        self._liquidation = build_liquidation_model(self._settings.risk)
        self._sizer = PositionSizer(self._settings.risk, self._liquidation)
        self._risk_manager = RiskManager(self._settings.risk, logger=self._log)
        self._policy = CapitalInjectionPolicy(self._settings.capital, logger=self._log)
        self._regime = RegimeClassifier(self._settings.regime)
        self._patterns = PatternDetector(self._settings.patterns)

    @property
    def settings(self) -> AppSettings:
        return self._settings

    def new_account(self) -> AccountState:
        """Fresh account funded with the configured initial capital."""
        return AccountState(balance=self._settings.capital.initial)

    def new_book(self, account: AccountState | None = None) -> PositionBook:
        """PositionBook wired to this engine's components and a balance tracker."""
        account = account or self.new_account()
        return PositionBook(
            account,
            self._exits,
            self._policy,
            self._liquidation,
            risk_manager=self._risk_manager,
            tracker=BalanceTracker(account.balance),
            logger=self._log,
        )

    def analyze(
        self,
        main: TimeframeSeries,
        subs: Sequence[TimeframeSeries] = (),
        model_hint: ModelHint | None = None,
    ) -> Signal:
        """Run the configured strategy. Raises InsufficientData on short series."""
        return self._strategy.compute_signal(main, subs, model_hint)

    def classify_regime(self, series: TimeframeSeries) -> MarketRegime:
        """Trend, volatility and momentum regime at the series' last candle.

        Raises:
            InsufficientData: If the series is shorter than the long moving average.
        """
        return self._regime.classify(series.candles)

    def detect_patterns(self, series: TimeframeSeries) -> tuple[ChartPattern, ...]:
        return self._patterns.detect(series.candles)

    def compute_exit_levels(
        self,
        entry_price: Decimal,
        direction: Direction,
        atr: Decimal | None = None,
    ) -> RiskParameters:
        return self._exits.compute_exit_levels(entry_price, direction, atr)

    def plan_trade(
        self,
        signal: Signal,
        account: AccountState,
        leverage: int | None = None,
    ) -> RiskParameters:
        """Exit levels from the signal's ATR, sized against the available balance.

        The size is capped by the main timeframe's volatility when
        ``risk.volatility_sizing`` is on.

        Raises:
            RiskExceeded: If the signal is NEUTRAL or sizing breaches a limit.
        """
        if not signal.is_actionable:
            raise RiskExceeded("Cannot plan a trade for a NEUTRAL signal")
        params = self._exits.compute_exit_levels(
            signal.entry_price, signal.direction, signal.main.atr
        )
        return self._sizer.size_trade(
            params,
            account.available,
            signal.entry_price,
            leverage,
            volatility=signal.main.volatility,
        )

    def open_position(
        self,
        signal: Signal,
        risk_params: RiskParameters,
        account: AccountState,
        symbol: str,
    ) -> tuple[Position, AccountState]:
        position, new_account = operations.open_position(
            signal, risk_params, account, symbol, self._liquidation, log=self._log
        )
        self._strategy.handle_fill(position)
        return position, new_account

    def value_position(self, position: Position, price: Decimal) -> PositionValuation:
        return operations.value_position(position, price)

    def settle(
        self,
        position: Position,
        exit_price: Decimal,
        account: AccountState,
        reason: ExitReason = ExitReason.MANUAL,
    ) -> tuple[AccountState, bool]:
        """Settle a position; returns (new account, injection_occurred)."""
        result = operations.settle(
            position, exit_price, account, self._policy, reason=reason, log=self._log
        )
        return result.account, result.injection_occurred
