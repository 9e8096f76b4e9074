"""Rounding helpers.

Percentages shown to learners round halves up (2.5 -> 3), which differs from
Python's built-in ``round`` (banker's rounding).
"""

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def percent_of(part: int, total: int) -> int:
    """Integer percentage of ``part`` in ``total`` (0 when total is 0)."""
    if total <= 0:
        return 0
    return round_half_up(Decimal(100 * part) / Decimal(total))
