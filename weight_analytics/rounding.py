"""
One-decimal rounding shared by every calculation that produces kilograms.

Two strategies are supported:

- ``decimal`` (default): values enter as ``Decimal(str(x))`` and are
  quantized with ROUND_HALF_UP, i.e. half away from zero on the scaled
  value. ``70.05 - 70.0`` rounds to ``0.1``.
- ``float``: legacy parity with the previous web client,
  ``floor(x * 10 + 0.5) / 10`` on binary floats. ``70.05 - 70.0`` is
  ``0.04999...`` there and rounds to ``0.0``. Halves round toward
  positive infinity, not away from zero: ``-0.25`` becomes ``-0.2``
  while the decimal strategy gives ``-0.3``.

The same strategy must be used for create, read and update paths.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

from .constants import (
    DEFAULT_ROUNDING_STRATEGY,
    ROUNDING_DECIMAL,
    ROUNDING_FLOAT,
    ROUNDING_STRATEGIES,
)

Number = Union[int, float, Decimal]

_ONE_DECIMAL = Decimal('0.1')


def validate_strategy(strategy: str) -> str:
    if strategy not in ROUNDING_STRATEGIES:
        raise ValueError(
            f"Unknown rounding strategy '{strategy}', expected one of {ROUNDING_STRATEGIES}"
        )
    return strategy


def to_decimal(value: Number) -> Decimal:
    """Convert via the shortest repr so 70.1 stays 70.1."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Cannot convert non-finite value {value!r}")
    return Decimal(str(value))


def as_number(value: Number, strategy: str = DEFAULT_ROUNDING_STRATEGY) -> Number:
    """Lift a value into the arithmetic domain of the strategy."""
    if strategy == ROUNDING_DECIMAL:
        return to_decimal(value)
    return float(value)


def round1(value: Number, strategy: str = DEFAULT_ROUNDING_STRATEGY) -> float:
    """Round to one decimal place and return a plain float."""
    validate_strategy(strategy)

    if strategy == ROUNDING_FLOAT:
        result = math.floor(float(value) * 10 + 0.5) / 10
    else:
        result = float(to_decimal(value).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))

    # Normalize -0.0
    if result == 0:
        return 0.0
    return result


def subtract(a: Number, b: Number, strategy: str = DEFAULT_ROUNDING_STRATEGY) -> Number:
    """Unrounded ``a - b`` in the strategy's arithmetic."""
    return as_number(a, strategy) - as_number(b, strategy)


def mean(values: Iterable[Number], strategy: str = DEFAULT_ROUNDING_STRATEGY) -> Number:
    """Unrounded arithmetic mean, summed left to right."""
    items = [as_number(v, strategy) for v in values]
    if not items:
        raise ValueError("mean() of an empty window")
    total = sum(items, as_number(0, strategy))
    return total / len(items)
