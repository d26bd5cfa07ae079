"""Configuration system using pydantic-settings with environment variable loading.

Every tunable of the indicator, level, signal and risk layers lives here.
Settings are plain value holders; each component validates the fields it
uses at construction via ``check_positive`` / ``check_fraction`` so a bad
value fails fast with InvalidConfiguration rather than mid-analysis.
"""

from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from trader.exceptions import InvalidConfiguration


def check_positive(name: str, value: int | Decimal) -> None:
    """Raise InvalidConfiguration unless ``value`` is strictly positive."""
    if value <= 0:
        raise InvalidConfiguration(f"{name} must be positive, got {value}")


def check_fraction(name: str, value: Decimal) -> None:
    """Raise InvalidConfiguration unless ``value`` lies in (0, 1]."""
    if not Decimal("0") < value <= Decimal("1"):
        raise InvalidConfiguration(f"{name} must be in (0, 1], got {value}")


class IndicatorSettings(BaseSettings):
    """Indicator periods for snapshot computation."""

    model_config = SettingsConfigDict(env_prefix="INDICATOR_")

    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    stoch_k_period: int = 14
    stoch_d_period: int = 3
    ema_short: int = 9
    ema_long: int = 21
    sma_period: int = 20
    bollinger_period: int = 20
    bollinger_std: Decimal = Decimal("2")
    atr_period: int = 14
    adx_period: int = 14
    volume_period: int = 20
    lookback: int = 200  # candles fed to each snapshot


class LevelSettings(BaseSettings):
    """Support/resistance detection parameters."""

    model_config = SettingsConfigDict(env_prefix="LEVELS_")

    lookback: int = 100
    sensitivity: Decimal = Decimal("0.02")  # 2% relative distance per cluster
    swing_neighborhood: int = 2  # candles each side of a swing point


class SignalSettings(BaseSettings):
    """Confluence scoring configuration.

    Controls per-timeframe vote thresholds, timeframe weighting, the optional
    model-hint vote and the minimum confidence below which a signal is
    forced NEUTRAL. All fields configurable via SIGNAL_ environment prefix.
    """

    model_config = SettingsConfigDict(env_prefix="SIGNAL_")

    strategy: Literal["confluence", "macd_crossover"] = "confluence"

    rsi_oversold: Decimal = Decimal("30")
    rsi_overbought: Decimal = Decimal("70")
    volume_threshold: Decimal = Decimal("1.5")  # x average volume

    main_weight: Decimal = Decimal("1.0")
    min_confidence: Decimal = Decimal("0.3")

    # Model hint vote (weight applies only when a hint is supplied)
    model_weight: Decimal = Decimal("0.5")
    model_min_probability: Decimal = Decimal("0.55")


class ExitSettings(BaseSettings):
    """Stop-loss, take-profit and trailing stop parameters."""

    model_config = SettingsConfigDict(env_prefix="EXIT_")

    stop_loss_initial: Decimal = Decimal("0.02")  # 2% initial stop
    r_ratio: Decimal = Decimal("3")  # reward:risk 3:1
    trailing_stop: Decimal = Decimal("0.02")  # 2% trail once in profit
    atr_multiplier: Decimal = Decimal("1.5")
    max_stop_fraction: Decimal = Decimal("0.05")  # ATR stops never wider than 5%


class RiskSettings(BaseSettings):
    """Position sizing and pre-trade risk limits."""

    model_config = SettingsConfigDict(env_prefix="RISK_")

    max_risk: Decimal = Decimal("0.02")  # max 2% of balance lost at the stop
    default_leverage: int = 5
    max_leverage: int = 10
    min_qty: Decimal = Decimal("0.001")
    qty_step: Decimal = Decimal("0.001")
    max_simultaneous_positions: int = 5
    liquidation_model: Literal["isolated", "maintenance"] = "isolated"
    maintenance_margin_rate: Decimal = Decimal("0.005")

    # Volatility size cap: size shrinks by volatility% / 100, at most by this fraction
    volatility_sizing: bool = True
    max_volatility_reduction: Decimal = Decimal("0.5")


class RegimeSettings(BaseSettings):
    """Per-timeframe market regime classification."""

    model_config = SettingsConfigDict(env_prefix="REGIME_")

    ma_short: int = 20
    ma_medium: int = 50
    ma_long: int = 200
    volatility_window: int = 20  # returns in the RMS volatility
    momentum_window: int = 14  # returns summed for momentum
    high_volatility: Decimal = Decimal("0.02")
    low_volatility: Decimal = Decimal("0.01")


class PatternSettings(BaseSettings):
    """Chart pattern detection thresholds."""

    model_config = SettingsConfigDict(env_prefix="PATTERNS_")

    pivot_window: int = 5  # bars each side of a pivot
    min_pattern_bars: int = 5  # bars between the two peaks of a double top/bottom
    shoulder_tolerance: Decimal = Decimal("0.02")
    double_tolerance: Decimal = Decimal("0.01")
    trend_period: int = 14
    flag_window: int = 20
    channel_slope_tolerance: Decimal = Decimal("0.001")  # per-bar slope gap as a fraction of price


class CapitalSettings(BaseSettings):
    """Account capital and injection policy."""

    model_config = SettingsConfigDict(env_prefix="CAPITAL_")

    initial: Decimal = Decimal("500")
    injection_trigger: Decimal = Decimal("50")  # inject when balance falls below
    injection_amount: Decimal = Decimal("500")


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    indicators: IndicatorSettings = IndicatorSettings()
    levels: LevelSettings = LevelSettings()
    regime: RegimeSettings = RegimeSettings()
    patterns: PatternSettings = PatternSettings()
    signal: SignalSettings = SignalSettings()
    exits: ExitSettings = ExitSettings()
    risk: RiskSettings = RiskSettings()
    capital: CapitalSettings = CapitalSettings()
