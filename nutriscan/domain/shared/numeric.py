"""Half-up rounding helpers on Decimal.

Floats go through ``Decimal(str(x))`` so values that were already rounded
to one decimal stay exact through scaling and averaging.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

Number = Union[int, float, Decimal]

_ONE = Decimal("1")
_TENTH = Decimal("0.1")


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_int(value: Number) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(to_decimal(value).quantize(_ONE, rounding=ROUND_HALF_UP))


def round1(value: Number) -> float:
    """Round to one decimal place, halves away from zero."""
    return float(to_decimal(value).quantize(_TENTH, rounding=ROUND_HALF_UP))


def mean(values: Iterable[Number]) -> Decimal:
    """Arithmetic mean as an exact Decimal.

    Raises:
        ValueError: If values is empty
    """
    items = [to_decimal(v) for v in values]
    if not items:
        raise ValueError("mean() of an empty sequence")
    return sum(items, Decimal(0)) / len(items)


def scale(value: Number, pct: int) -> Decimal:
    """Multiply by a percentage factor without float drift."""
    return to_decimal(value) * pct / 100
