"""Window checks and precision control shared by all indicator functions.

Smoothed intermediates keep 12 decimal places relative to the magnitude of
the prices they are computed from: series at or above 1 round to the plain
``QUANTUM``, sub-unit series shift the quantum down by their order of
magnitude so a 1E-10 price keeps as many digits as a 1.0 price.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Iterable, Sized
from decimal import Decimal

from trader.exceptions import InsufficientData, InvalidConfiguration

#: Precision limit for smoothed intermediate results (12 decimal places).
#: Prevents Decimal division from producing arbitrarily long representations.
QUANTUM = Decimal("0.000000000001")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def scaled_quantum(values: Iterable[Decimal]) -> Decimal:
    """Quantum holding 12 decimal places relative to the largest magnitude in ``values``."""
    largest = max((abs(v) for v in values), default=ZERO)
    if largest == ZERO or largest >= 1:
        return QUANTUM
    return QUANTUM.scaleb(largest.adjusted())


def quantize(value: Decimal, quantum: Decimal = QUANTUM) -> Decimal:
    """Round ``value`` to ``quantum`` (the shared 12-decimal precision by default)."""
    return value.quantize(quantum)


def require_period(name: str, period: int) -> None:
    """Raise InvalidConfiguration for a non-positive period."""
    if period <= 0:
        raise InvalidConfiguration(f"{name} period must be positive, got {period}")


def require_length(name: str, data: Sized, required: int) -> None:
    """Raise InsufficientData when ``data`` holds fewer than ``required`` points."""
    if len(data) < required:
        raise InsufficientData(
            f"{name} needs at least {required} data points, got {len(data)}"
        )
