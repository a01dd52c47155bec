"""
Currency rounding for PropLab.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal, localcontext
from enum import Enum


class RoundingPolicy(Enum):
    """Rounding policies for currency calculations."""

    BANKERS = ROUND_HALF_EVEN
    HALF_UP = ROUND_HALF_UP


def round_currency(
    amount: float, decimals: int = 0, policy: RoundingPolicy = RoundingPolicy.HALF_UP
) -> float:
    """
    Round an amount to a number of decimals.

    The default is whole currency units with ties rounded away from zero, so
    ``2.5`` becomes ``3.0`` and ``-2.5`` becomes ``-3.0``. Amounts of any
    magnitude are rounded; infinities and NaN are returned unchanged.
    """
    amount = float(amount)
    if not math.isfinite(amount):
        return amount
    quantum = Decimal("1").scaleb(-decimals)  # 1 for 0 dp, 0.01 for 2 dp
    value = Decimal(repr(amount))
    with localcontext() as ctx:
        # Enough digits for the integer part plus the kept decimals
        ctx.prec = max(ctx.prec, value.adjusted() + decimals + 2)
        return float(value.quantize(quantum, rounding=policy.value))
