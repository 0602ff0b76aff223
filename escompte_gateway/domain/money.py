"""
Money arithmetic in integer minor units (cents).

Binary floats cannot represent most decimal amounts, so every operation
converts its operands to whole cents, works on integers and converts back.
Degenerate inputs (None, NaN, infinities) count as zero so callers never
see an exception or a NaN from this module.
"""

import math
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Union

Number = Union[int, float, Decimal]

CENTS_PER_UNIT = 100
_HALF = Decimal("0.5")


def _as_decimal(value: Number | None) -> Decimal | None:
    """Decimal view of a numeric value, or None when it is missing or not finite"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        # str() keeps the shortest decimal form of a float: 0.1 -> Decimal("0.1")
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not result.is_finite():
        return None
    return result


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves towards +infinity (JavaScript Math.round)"""
    return int((value + _HALF).to_integral_value(rounding=ROUND_FLOOR))


def to_minor_units(amount: Number | None) -> int:
    """
    Convert a currency amount to integer cents.

    Examples:
        to_minor_units(0.1) -> 10
        to_minor_units(45000) -> 4500000
        to_minor_units(float("nan")) -> 0
    """
    value = _as_decimal(amount)
    if value is None:
        return 0
    return round_half_up(value * CENTS_PER_UNIT)


def from_minor_units(cents: Number | None) -> float:
    """Convert integer cents back to a currency amount"""
    value = _as_decimal(cents)
    if value is None:
        return 0.0
    return int(value) / CENTS_PER_UNIT


def add(a: Number | None, b: Number | None) -> float:
    return from_minor_units(to_minor_units(a) + to_minor_units(b))


def subtract(a: Number | None, b: Number | None) -> float:
    return from_minor_units(to_minor_units(a) - to_minor_units(b))


def multiply(amount: Number | None, coefficient: Number | None) -> float:
    """Multiply an amount by a coefficient, rounding the cent product half-up"""
    factor = _as_decimal(coefficient)
    if factor is None:
        return 0.0
    return from_minor_units(round_half_up(to_minor_units(amount) * factor))
