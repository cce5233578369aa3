"""
Monetary helpers
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Union[Decimal, int, float, str, None]) -> Decimal:
    """Convert a number to Decimal via its string form so floats keep their printed value"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Union[Decimal, int, float, str]) -> Decimal:
    """Round to two decimal places, half away from zero (0.005 -> 0.01)"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
