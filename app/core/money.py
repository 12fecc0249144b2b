"""Monetary rounding helpers.

All money in the engine is ``Decimal`` rounded half-up to 2 places.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

TWO_PLACES = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce ints, floats, strings and None into a Decimal."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # go through str so 0.1 stays 0.1
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Any) -> Decimal:
    """Round to 2 decimal places using half-up rounding."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Any]) -> Decimal:
    """Sum already-rounded values and round the result."""
    return round_money(sum((to_decimal(v) for v in values), Decimal("0")))
