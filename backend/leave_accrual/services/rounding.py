from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal
from fractions import Fraction

_TENTHS = Decimal(10)
_HALF = Decimal("0.5")


def to_decimal(value: float | int | Fraction | Decimal) -> Decimal:
    """Convert a day amount to Decimal without picking up binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, Fraction):
        return Decimal(value.numerator) / Decimal(value.denominator)
    return Decimal(str(value))


def round_one_decimal(value: float | int | Fraction | Decimal) -> float:
    """Round to one decimal place, halves rounding up (toward +inf).

    Non-finite input (NaN, infinity) yields 0.0.
    """
    numeric = to_decimal(value)
    if not numeric.is_finite():
        return 0.0
    tenths = (numeric * _TENTHS + _HALF).to_integral_value(rounding=ROUND_FLOOR)
    return float(tenths / _TENTHS)
