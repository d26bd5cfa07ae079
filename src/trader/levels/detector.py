"""Support/resistance detection from swing-point clusters.

Algorithm:
1. Take the last ``lookback`` candles.
2. Find swing highs/lows: a candle whose high (low) is strictly above
   (below) every other high (low) within ``swing_neighborhood`` candles on
   each side. Edge candles without a full neighborhood never qualify.
3. Pool all swing prices, sort ascending and cluster greedily: a price
   joins the current cluster when its relative distance from the cluster
   mean is within ``sensitivity``. Each cluster becomes its mean price.
4. Split by the reference price: at-or-below is support, above is
   resistance, each sorted closest-first.

Fewer than 2 swing points yields an empty LevelSet. That is a valid
"no levels" outcome, not an error.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from trader.config import LevelSettings, check_fraction, check_positive
from trader.indicators.window import ZERO, quantize, scaled_quantum
from trader.levels.models import (
    LevelKind,
    LevelSet,
    SupportResistanceLevel,
    SwingKind,
    SwingPoint,
)
from trader.models import Candle


def find_swing_points(candles: Sequence[Candle], neighborhood: int = 2) -> list[SwingPoint]:
    """Find strict local highs and lows.

    Args:
        candles: Candles ordered oldest-first.
        neighborhood: Candles compared on each side.

    Returns:
        Swing points in chronological order (a candle can be both a swing
        high and a swing low, e.g. an outside bar).
    """
    points: list[SwingPoint] = []
    for i in range(neighborhood, len(candles) - neighborhood):
        candle = candles[i]
        neighbors = [
            candles[j]
            for j in range(i - neighborhood, i + neighborhood + 1)
            if j != i
        ]
        if all(candle.high > n.high for n in neighbors):
            points.append(SwingPoint(candle.timestamp_ms, candle.high, SwingKind.HIGH))
        if all(candle.low < n.low for n in neighbors):
            points.append(SwingPoint(candle.timestamp_ms, candle.low, SwingKind.LOW))
    return points


def cluster_prices(
    prices: Sequence[Decimal], sensitivity: Decimal
) -> list[tuple[Decimal, int]]:
    """Greedily cluster prices within a relative distance of the running mean.

    Args:
        prices: Prices in any order.
        sensitivity: Maximum relative distance from the cluster mean.

    Returns:
        (mean price, member count) per cluster, ascending by price.
    """
    clusters: list[list[Decimal]] = []
    for price in sorted(prices):
        if clusters:
            current = clusters[-1]
            mean = sum(current, ZERO) / Decimal(len(current))
            if (price - mean) / mean <= sensitivity:
                current.append(price)
                continue
        clusters.append([price])

    q = scaled_quantum(prices)
    return [
        (quantize(sum(members, ZERO) / Decimal(len(members)), q), len(members))
        for members in clusters
    ]


class SupportResistanceDetector:
    """Derives support and resistance levels from a candle window.

    Args:
        settings: Lookback, clustering sensitivity and swing neighborhood.

    Raises:
        InvalidConfiguration: If lookback or neighborhood is non-positive or
            sensitivity is outside (0, 1].
    """

    def __init__(self, settings: LevelSettings) -> None:
        check_positive("levels lookback", settings.lookback)
        check_positive("levels swing_neighborhood", settings.swing_neighborhood)
        check_fraction("levels sensitivity", settings.sensitivity)
        self._settings = settings

    def detect(
        self,
        candles: Sequence[Candle],
        current_price: Decimal | None = None,
    ) -> LevelSet:
        """Compute the level set for the last ``lookback`` candles.

        Args:
            candles: Candles ordered oldest-first.
            current_price: Reference price for the support/resistance split.
                Defaults to the last close.

        Returns:
            LevelSet with support (descending) and resistance (ascending).
            Empty when fewer than 2 swing points are found.
        """
        window = list(candles[-self._settings.lookback :])
        lookback = len(window)
        swings = find_swing_points(window, self._settings.swing_neighborhood)
        if len(swings) < 2:
            return LevelSet(lookback=lookback)

        reference = current_price if current_price is not None else window[-1].close
        clusters = cluster_prices([s.price for s in swings], self._settings.sensitivity)

        support = [
            SupportResistanceLevel(price, LevelKind.SUPPORT, touches, lookback)
            for price, touches in clusters
            if price <= reference
        ]
        resistance = [
            SupportResistanceLevel(price, LevelKind.RESISTANCE, touches, lookback)
            for price, touches in clusters
            if price > reference
        ]
        support.sort(key=lambda level: reference - level.price)
        resistance.sort(key=lambda level: level.price - reference)
        return LevelSet(
            support=tuple(support),
            resistance=tuple(resistance),
            lookback=lookback,
        )
