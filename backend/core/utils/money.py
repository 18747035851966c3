"""
Decimal helpers for rupee amounts
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

Money = Decimal

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def D(x: Any) -> Money:
    """Coerce ints, floats, strings and None to Decimal. Unparseable input becomes 0."""
    if isinstance(x, Decimal):
        return x
    if x is None or x == "":
        return ZERO
    try:
        return Decimal(str(x))
    except (InvalidOperation, ValueError):
        return ZERO


def round_money(x: Any) -> Money:
    return D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def clamp(x: Money, low: Money, high: Money) -> Money:
    return max(low, min(x, high))
