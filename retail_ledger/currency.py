"""
Amount Handling Module

Parses caller-supplied amounts into Decimal and formats them for display.
NEVER uses float for monetary values; floats are routed through str first.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Any, Optional

# Set global decimal context for financial precision
getcontext().prec = 28

CURRENCY_SYMBOL = "R"  # South African Rand
DISPLAY_PRECISION = 2
ZERO = Decimal('0')


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Convert caller input to a Decimal.

    Returns None for anything that is not a finite number (bools, garbage
    strings, NaN, infinities), so callers can report an invalid amount
    instead of raising.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not amount.is_finite():
        return None
    return amount


def quantize(amount: Decimal, places: int) -> Decimal:
    """Round half-up to a fixed number of decimal places"""
    return amount.quantize(Decimal('0.1') ** places, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal) -> str:
    """
    Format for display, e.g. R1,234.56 or -R200.00
    """
    rounded = quantize(amount, DISPLAY_PRECISION)
    sign = "-" if rounded < ZERO else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(rounded):,.{DISPLAY_PRECISION}f}"


def format_rate(rate: Decimal) -> str:
    """Format an annual rate as a percentage, e.g. 2.50 %"""
    return f"{quantize(rate * 100, 2)} %"
