"""Shared test fixtures for the trading engine."""

from collections.abc import Callable, Sequence
from decimal import Decimal

import pytest

from trader.config import (
    AppSettings,
    CapitalSettings,
    ExitSettings,
    IndicatorSettings,
    LevelSettings,
    RiskSettings,
    SignalSettings,
)
from trader.indicators.models import (
    BollingerBands,
    IndicatorSnapshot,
    MACDResult,
    StochasticResult,
)
from trader.levels.models import LevelSet
from trader.market.series import TimeframeSeries
from trader.models import Candle, Direction, Position
from trader.signals.models import Signal

HOUR_MS = 3_600_000


def _d(value: object) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def build_candle(
    timestamp_ms: int,
    close: object,
    open_: object | None = None,
    high: object | None = None,
    low: object | None = None,
    volume: object = "100",
) -> Candle:
    close_d = _d(close)
    open_d = _d(open_) if open_ is not None else close_d
    return Candle(
        timestamp_ms=timestamp_ms,
        open=open_d,
        high=_d(high) if high is not None else max(open_d, close_d),
        low=_d(low) if low is not None else min(open_d, close_d),
        close=close_d,
        volume=_d(volume),
    )


@pytest.fixture
def make_candle() -> Callable[..., Candle]:
    """Candle builder: open defaults to close, high/low default to the body."""
    return build_candle


@pytest.fixture
def make_series() -> Callable[..., TimeframeSeries]:
    """Series builder from closes: doji candles with a fixed high/low spread."""

    def _series(
        closes: Sequence[object],
        interval: str = "1h",
        start_ms: int = 0,
        step_ms: int = HOUR_MS,
        spread: object = "0.5",
        volume: object = "100",
    ) -> TimeframeSeries:
        spread_d = _d(spread)
        candles = [
            build_candle(
                start_ms + i * step_ms,
                close,
                high=_d(close) + spread_d,
                low=_d(close) - spread_d,
                volume=volume,
            )
            for i, close in enumerate(closes)
        ]
        return TimeframeSeries.from_candles(interval, candles)

    return _series


@pytest.fixture
def make_snapshot() -> Callable[..., IndicatorSnapshot]:
    """Neutral IndicatorSnapshot builder; override fields by keyword."""

    def _snapshot(**overrides: object) -> IndicatorSnapshot:
        close = _d(overrides.pop("close", "100"))
        histogram = _d(overrides.pop("histogram", "0"))
        fields: dict[str, object] = {
            "timestamp_ms": 0,
            "open": close,
            "close": close,
            "volume": Decimal("100"),
            "rsi": Decimal("50"),
            "macd": MACDResult(line=histogram, signal=Decimal("0"), histogram=histogram),
            "stochastic": StochasticResult(k=Decimal("50"), d=Decimal("50")),
            "ema_short": close,
            "ema_long": close,
            "sma": close,
            "adx": Decimal("20"),
            "bollinger": BollingerBands(
                upper=close, middle=close, lower=close, bandwidth=Decimal("0")
            ),
            "atr": Decimal("1"),
            "vwap": close,
            "obv": Decimal("0"),
            "volume_ratio": Decimal("1"),
        }
        fields.update({k: _d(v) if isinstance(v, str) else v for k, v in overrides.items()})
        return IndicatorSnapshot(**fields)  # type: ignore[arg-type]

    return _snapshot


@pytest.fixture
def make_signal(make_snapshot: Callable[..., IndicatorSnapshot]) -> Callable[..., Signal]:
    """Signal builder with a main snapshot at the entry price."""

    def _signal(
        direction: Direction = Direction.LONG,
        entry: object = "65000",
        atr: object = "650",
    ) -> Signal:
        entry_d = _d(entry)
        return Signal(
            direction=direction,
            confidence=Decimal("0.5") if direction is not Direction.NEUTRAL else Decimal("0"),
            entry_price=entry_d,
            timestamp_ms=0,
            main=make_snapshot(close=entry_d, atr=_d(atr)),
            levels=LevelSet(),
            votes=(),
            weighted_sum=Decimal("0"),
        )

    return _signal


@pytest.fixture
def make_position() -> Callable[..., Position]:
    """Open Position builder with margin = size * entry / leverage."""

    def _position(
        direction: Direction = Direction.LONG,
        entry: object = "100",
        size: object = "1",
        leverage: int = 5,
        stop_loss: object | None = None,
        take_profit: object | None = None,
        symbol: str = "BTC/USDT:USDT",
        position_id: str = "pos-1",
    ) -> Position:
        entry_d = _d(entry)
        size_d = _d(size)
        sign = direction.sign
        return Position(
            id=position_id,
            symbol=symbol,
            direction=direction,
            entry_price=entry_d,
            size=size_d,
            leverage=leverage,
            initial_margin=size_d * entry_d / Decimal(leverage),
            exposure=size_d * entry_d,
            liquidation_price=entry_d * (1 - sign / Decimal(leverage)),
            stop_loss=_d(stop_loss) if stop_loss is not None else entry_d * (1 - sign * Decimal("0.02")),
            take_profit=(
                _d(take_profit) if take_profit is not None else entry_d * (1 + sign * Decimal("0.06"))
            ),
            opened_at=0.0,
        )

    return _position


@pytest.fixture
def indicator_settings() -> IndicatorSettings:
    return IndicatorSettings()


@pytest.fixture
def small_indicator_settings() -> IndicatorSettings:
    """Short periods so a handful of candles is a full window."""
    return IndicatorSettings(
        rsi_period=2,
        macd_fast=1,
        macd_slow=3,
        macd_signal=3,
        stoch_k_period=2,
        stoch_d_period=2,
        ema_short=2,
        ema_long=3,
        sma_period=2,
        bollinger_period=2,
        atr_period=2,
        adx_period=2,
        volume_period=2,
        lookback=6,
    )


@pytest.fixture
def level_settings() -> LevelSettings:
    return LevelSettings()


@pytest.fixture
def signal_settings() -> SignalSettings:
    return SignalSettings()


@pytest.fixture
def exit_settings() -> ExitSettings:
    return ExitSettings()


@pytest.fixture
def risk_settings() -> RiskSettings:
    return RiskSettings()


@pytest.fixture
def capital_settings() -> CapitalSettings:
    return CapitalSettings()


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults."""
    return AppSettings(log_level="DEBUG")
