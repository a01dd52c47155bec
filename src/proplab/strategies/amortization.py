"""
Fixed-rate, fixed-term loan amortization.
"""

from __future__ import annotations

from typing import NamedTuple

from proplab.core.errors import ConfigurationError


class PaymentSplit(NamedTuple):
    """Interest and principal portions of one loan installment."""

    interest_paid: float
    principal_paid: float


def monthly_rate(annual_rate_pct: float) -> float:
    """Monthly interest rate as a fraction for an annual rate in percent."""
    return annual_rate_pct / 100 / 12


def monthly_payment(principal: float, annual_rate_pct: float, term_years: float) -> float:
    """
    Constant monthly installment that repays ``principal`` over ``term_years``.

    The payment is computed once from the original loan amount and does not
    change as the balance falls. A zero rate repays the principal linearly.

    Args:
        principal: Original loan amount
        annual_rate_pct: Annual interest rate in percent (6.5 for 6.5%)
        term_years: Loan term in years

    Returns:
        Monthly installment amount

    Raises:
        ConfigurationError: If ``term_years`` is not positive
    """
    if term_years <= 0:
        raise ConfigurationError(
            "Loan term must be positive", problems=[f"term_years={term_years}"]
        )

    n_total = term_years * 12
    r_m = monthly_rate(annual_rate_pct)
    try:
        growth = (1 + r_m) ** n_total
    except OverflowError:
        # Limit of the annuity formula as (1 + r)^n grows without bound
        return principal * r_m
    # Rates too small to move (1 + r)^n are treated as zero
    if r_m == 0 or growth == 1:
        return principal / n_total

    return principal * r_m / (1 - 1 / growth)


def split_payment(
    loan_balance: float,
    offset_total: float,
    monthly_rate: float,
    fixed_payment: float,
) -> PaymentSplit:
    """
    Split an installment into interest and principal.

    Interest accrues only on the part of the balance not covered by offset
    accounts. The principal portion is not clamped to the balance; callers
    floor the resulting balance at zero.
    """
    interestable = max(0.0, loan_balance - offset_total)
    interest = interestable * monthly_rate
    return PaymentSplit(interest_paid=interest, principal_paid=fixed_payment - interest)
