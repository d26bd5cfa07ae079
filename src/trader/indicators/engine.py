"""Indicator engine building a full IndicatorSnapshot from a candle window.

The engine fixes the periods from IndicatorSettings, validates them once at
construction, and computes every indicator over the last ``lookback``
candles. A window shorter than the largest single requirement raises
InsufficientData before anything is computed, so callers never receive a
partially-filled snapshot.
"""

from collections.abc import Sequence

from trader.config import IndicatorSettings, check_positive
from trader.exceptions import InsufficientData, InvalidConfiguration
from trader.indicators.models import IndicatorSnapshot
from trader.indicators.momentum import macd, rsi, stochastic
from trader.indicators.moving_average import ema, sma
from trader.indicators.trend import adx
from trader.indicators.volatility import atr, bollinger_bands
from trader.indicators.volume import obv, volume_ratio, vwap
from trader.models import Candle


def required_window(settings: IndicatorSettings) -> int:
    """Minimum number of candles needed to compute every indicator."""
    return max(
        settings.rsi_period + 1,
        settings.macd_slow + settings.macd_signal - 1,
        settings.stoch_k_period + settings.stoch_d_period - 1,
        settings.ema_short,
        settings.ema_long,
        settings.sma_period,
        settings.bollinger_period,
        settings.atr_period + 1,
        2 * settings.adx_period,
        settings.volume_period,
        2,  # OBV
    )


class IndicatorEngine:
    """Computes IndicatorSnapshots with a fixed indicator configuration.

    Args:
        settings: Indicator periods and snapshot lookback.

    Raises:
        InvalidConfiguration: If a period is non-positive, the MACD fast
            period is not shorter than the slow one, or ``lookback`` is
            smaller than the required window.
    """

    def __init__(self, settings: IndicatorSettings) -> None:
        for name in (
            "rsi_period",
            "macd_fast",
            "macd_slow",
            "macd_signal",
            "stoch_k_period",
            "stoch_d_period",
            "ema_short",
            "ema_long",
            "sma_period",
            "bollinger_period",
            "bollinger_std",
            "atr_period",
            "adx_period",
            "volume_period",
            "lookback",
        ):
            check_positive(name, getattr(settings, name))
        if settings.macd_fast >= settings.macd_slow:
            raise InvalidConfiguration("macd_fast must be shorter than macd_slow")
        if settings.ema_short >= settings.ema_long:
            raise InvalidConfiguration("ema_short must be shorter than ema_long")

        self._settings = settings
        self._required = required_window(settings)
        if settings.lookback < self._required:
            raise InvalidConfiguration(
                f"lookback ({settings.lookback}) is below the required "
                f"indicator window ({self._required})"
            )

    @property
    def required_window(self) -> int:
        return self._required

    def snapshot(self, candles: Sequence[Candle]) -> IndicatorSnapshot:
        """Compute every indicator for the last candle of ``candles``.

        Args:
            candles: Candles ordered oldest-first. Only the last ``lookback``
                are used.

        Raises:
            InsufficientData: If fewer than ``required_window`` candles are supplied.
        """
        s = self._settings
        window = list(candles[-s.lookback :])
        if len(window) < self._required:
            raise InsufficientData(
                f"indicator snapshot needs at least {self._required} candles, "
                f"got {len(window)}"
            )

        closes = [c.close for c in window]
        last = window[-1]
        return IndicatorSnapshot(
            timestamp_ms=last.timestamp_ms,
            open=last.open,
            close=last.close,
            volume=last.volume,
            rsi=rsi(closes, s.rsi_period),
            macd=macd(closes, s.macd_fast, s.macd_slow, s.macd_signal),
            stochastic=stochastic(window, s.stoch_k_period, s.stoch_d_period),
            ema_short=ema(closes, s.ema_short)[-1],
            ema_long=ema(closes, s.ema_long)[-1],
            sma=sma(closes, s.sma_period)[-1],
            adx=adx(window, s.adx_period),
            bollinger=bollinger_bands(closes, s.bollinger_period, s.bollinger_std),
            atr=atr(window, s.atr_period),
            vwap=vwap(window),
            obv=obv(window),
            volume_ratio=volume_ratio(window, s.volume_period),
        )


def compute_snapshot(
    candles: Sequence[Candle], settings: IndicatorSettings
) -> IndicatorSnapshot:
    """One-shot snapshot without keeping an engine around."""
    return IndicatorEngine(settings).snapshot(candles)
