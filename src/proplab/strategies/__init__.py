"""
Financial formulas used by the forecast engine.
"""

from .amortization import PaymentSplit, monthly_payment, monthly_rate, split_payment
from .valuation import (
    compound_value,
    estimate_value,
    full_years_elapsed,
    growth_factor,
    sale_estimate_difference,
)

__all__ = [
    "PaymentSplit",
    "monthly_payment",
    "monthly_rate",
    "split_payment",
    "compound_value",
    "estimate_value",
    "full_years_elapsed",
    "growth_factor",
    "sale_estimate_difference",
]
