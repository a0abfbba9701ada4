"""
Response rounding.

Computations stay unrounded; figures are rounded only when a response
model is built:

  money         whole euros
  areas         2 decimals
  ratios        4 decimals
  percentages   1 decimal

Halves round away from zero (2.5 → 3, 0.125 → 0.13), applied to the
shortest decimal repr of the float. Built-in `round` would round halves
to even and give 2 for 2.5.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves away from zero. Returns an int when digits is 0."""
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if digits == 0:
        return int(rounded)
    return float(rounded)


def round_money(value: Optional[float]) -> Optional[float]:
    return round_half_up(value) if value is not None else None


def round_area(value: float) -> float:
    return round_half_up(value, 2)


def round_ratio(value: Optional[float]) -> Optional[float]:
    return round_half_up(value, 4) if value is not None else None
