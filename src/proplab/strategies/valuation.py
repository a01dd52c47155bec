"""
Property value growth model.
"""

from __future__ import annotations

import math

from proplab.core.calendar import DateSelection
from proplab.core.currency import round_currency
from proplab.core.specs import PropertySpec


def growth_factor(annual_growth_pct: float) -> float:
    """Yearly value multiplier for a growth rate in percent."""
    return 1 + annual_growth_pct / 100


def full_years_elapsed(purchase_idx: int, target_idx: int) -> int:
    """Completed years between two absolute months (0 when target precedes purchase)."""
    if target_idx < purchase_idx:
        return 0
    return (target_idx - purchase_idx) // 12


def compound_value(purchase_price: float, annual_growth_pct: float, years: int) -> float:
    """
    Unrounded value after compounding growth once per completed year.

    This is the single formula for property value: the forecast engine sets a
    property's running value from it on every purchase anniversary and
    :func:`estimate_value` rounds it for display.
    """
    factor = growth_factor(annual_growth_pct)
    try:
        return purchase_price * factor**years
    except OverflowError:
        sign = -1 if factor < 0 and years % 2 else 1
        return sign * purchase_price * math.inf


def estimate_value(prop: PropertySpec, target_date: DateSelection) -> float:
    """
    Estimated value of a property at a future month, in whole currency units.

    Growth only accrues for completed years since purchase; partial years do
    not count. A target month before the purchase returns the purchase price.

    Args:
        prop: The property configuration
        target_date: Month to value the property at

    Returns:
        Rounded value estimate
    """
    purchase_idx = prop.purchase_date.index
    target_idx = target_date.index
    if target_idx < purchase_idx:
        return prop.purchase_price

    years = full_years_elapsed(purchase_idx, target_idx)
    return round_currency(compound_value(prop.purchase_price, prop.annual_growth, years))


def sale_estimate_difference(prop: PropertySpec) -> float | None:
    """
    Manual sale price minus the estimated value at the sale month.

    Returns ``None`` when the property has no sale or the sale has no positive
    manual price. A positive result means the agreed price beats the estimate.
    """
    if prop.sale is None or not prop.sale.has_manual_price:
        return None
    return prop.sale.manual_sale_price - estimate_value(prop, prop.sale.sale_date)
