"""
Exact decimal arithmetic helpers.

All amounts and prices are `decimal.Decimal`. Addition, subtraction and
multiplication are exact; division is rounded to DIVISION_SCALE fractional
digits (ROUND_HALF_UP) so that average prices do not drift between runs.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any

from pnl_report.core.exceptions import DataSourceError

DIVISION_SCALE = 8
ZERO = Decimal("0")
ONE = Decimal("1")

_QUANTUM = Decimal(1).scaleb(-DIVISION_SCALE)


def to_decimal(value: Any) -> Decimal:
    """Parse a number (string, int or Decimal). Raises DataSourceError on malformed input."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        raise DataSourceError("Invalid number format: None")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        raise DataSourceError(f"Invalid number format: {value}")
    if not result.is_finite():
        raise DataSourceError(f"Invalid number format: {value}")
    return result


def divide(dividend: Decimal, divisor: Decimal) -> Decimal:
    if divisor == ZERO:
        raise ZeroDivisionError(f"Division of {dividend} by zero")
    with localcontext() as ctx:
        ctx.prec = 60
        return (dividend / divisor).quantize(_QUANTUM, rounding=ROUND_HALF_UP)


def nice_string(value: Decimal) -> str:
    """Plain notation without trailing zeros: Decimal('1.500') -> '1.5', Decimal('1E+2') -> '100'."""
    if value == ZERO:
        return "0"
    return format(value.normalize(), "f")
