"""
Configuration dataclasses for PropLab forecasts.

These are immutable inputs. The engine never mutates them; all run-time state
lives in :mod:`proplab.core.state`.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .calendar import DateSelection


class ExpenseFrequency(str, Enum):
    """How often a property expense falls due."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"

    @property
    def interval_months(self) -> int:
        return _FREQUENCY_MONTHS[self]


_FREQUENCY_MONTHS = {
    ExpenseFrequency.MONTHLY: 1,
    ExpenseFrequency.QUARTERLY: 3,
    ExpenseFrequency.ANNUALLY: 12,
}


@dataclass(frozen=True)
class RentalPeriod:
    """Rent received every month between two months (both inclusive)."""

    monthly_amount: float
    start_date: DateSelection
    end_date: DateSelection
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "monthly_amount": self.monthly_amount,
            "start_date": self.start_date.to_dict(),
            "end_date": self.end_date.to_dict(),
        }


@dataclass(frozen=True)
class OffsetAccount:
    """
    Cash parked against a property's loan.

    The balance is funded from cash in the start month and returned to cash in
    the end month. While held it reduces the interest-bearing loan balance and,
    with ``use_for_repayments``, can pay the monthly loan installment.
    """

    initial_amount: float
    start_date: DateSelection
    end_date: DateSelection
    use_for_repayments: bool = False
    id: str | None = None

    def covers(self, month_idx: int) -> bool:
        """Whether the account window includes an absolute month."""
        return self.start_date.index <= month_idx <= self.end_date.index

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "initial_amount": self.initial_amount,
            "start_date": self.start_date.to_dict(),
            "end_date": self.end_date.to_dict(),
            "use_for_repayments": self.use_for_repayments,
        }


@dataclass(frozen=True)
class PropertyExpense:
    """Recurring running cost of a property (rates, strata, insurance)."""

    description: str
    amount: float
    frequency: ExpenseFrequency
    start_date: DateSelection
    id: str | None = None

    def __post_init__(self):
        if not isinstance(self.frequency, ExpenseFrequency):
            object.__setattr__(self, "frequency", ExpenseFrequency(self.frequency))

    def is_due(self, month_idx: int) -> bool:
        """Whether the expense is payable in an absolute month."""
        elapsed = month_idx - self.start_date.index
        if elapsed < 0:
            return False
        return elapsed % self.frequency.interval_months == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "amount": self.amount,
            "frequency": self.frequency.value,
            "start_date": self.start_date.to_dict(),
        }


@dataclass(frozen=True)
class SaleEvent:
    """
    Planned disposal of a property.

    Attributes:
        sale_date: Month the sale settles
        selling_costs: Agent and legal costs as a percentage of the gross price
        manual_sale_price: Agreed price; when absent or not positive the
            forecast uses its own estimate of the property value
    """

    sale_date: DateSelection
    selling_costs: float = 0.0
    manual_sale_price: float | None = None

    @property
    def has_manual_price(self) -> bool:
        return self.manual_sale_price is not None and self.manual_sale_price > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "sale_date": self.sale_date.to_dict(),
            "selling_costs": self.selling_costs,
            "manual_sale_price": self.manual_sale_price,
        }


@dataclass(frozen=True)
class PropertySpec:
    """
    One investment property with its financing and cash flows.

    Percentages are expressed as numbers (``6.5`` means 6.5%).

    Attributes:
        id: Unique property id
        name: Display name
        purchase_price: Contract price (> 0)
        purchase_date: Settlement month
        loan_ratio: Share of the price financed, 0..100
        interest_rate: Fixed annual interest rate in percent
        loan_term: Amortization term in years
        annual_growth: Annual value growth in percent (may be negative)
        rentals: Rental periods in configuration order
        offsets: Offset accounts in configuration order; the order decides
            which account funds repayments first
        expenses: Recurring property expenses
        sale: Optional planned sale
    """

    id: str
    name: str
    purchase_price: float
    purchase_date: DateSelection
    loan_ratio: float = 80.0
    interest_rate: float = 6.5
    loan_term: int = 30
    annual_growth: float = 4.0
    rentals: tuple[RentalPeriod, ...] = ()
    offsets: tuple[OffsetAccount, ...] = ()
    expenses: tuple[PropertyExpense, ...] = ()
    sale: SaleEvent | None = None

    def __post_init__(self):
        for name in ("rentals", "offsets", "expenses"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    @property
    def loan_amount(self) -> float:
        """Original loan principal drawn at purchase."""
        return self.purchase_price * (self.loan_ratio / 100)

    @property
    def deposit(self) -> float:
        """Cash paid at settlement."""
        return self.purchase_price * (1 - self.loan_ratio / 100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "purchase_price": self.purchase_price,
            "purchase_date": self.purchase_date.to_dict(),
            "loan_ratio": self.loan_ratio,
            "interest_rate": self.interest_rate,
            "loan_term": self.loan_term,
            "annual_growth": self.annual_growth,
            "rentals": [r.to_dict() for r in self.rentals],
            "offsets": [o.to_dict() for o in self.offsets],
            "expenses": [e.to_dict() for e in self.expenses],
            "sale": self.sale.to_dict() if self.sale else None,
        }


@dataclass(frozen=True)
class Assumptions:
    """Household-level assumptions shared by every property."""

    annual_salary: float = 80_000.0
    initial_cash: float = 50_000.0
    general_monthly_expenses: float = 2_000.0
    projection_years: int = 10

    @property
    def months(self) -> int:
        return int(self.projection_years) * 12

    def to_dict(self) -> dict[str, Any]:
        return {
            "annual_salary": self.annual_salary,
            "initial_cash": self.initial_cash,
            "general_monthly_expenses": self.general_monthly_expenses,
            "projection_years": self.projection_years,
        }


@dataclass(frozen=True)
class ForecastConfig:
    """
    Complete forecast input.

    Attributes:
        assumptions: Household assumptions
        properties: Properties in display order
        start: First projected month; ``None`` means the current month when
            the forecast runs
    """

    assumptions: Assumptions = field(default_factory=Assumptions)
    properties: tuple[PropertySpec, ...] = ()
    start: DateSelection | None = None

    def __post_init__(self):
        object.__setattr__(self, "properties", tuple(self.properties))

    def to_dict(self) -> dict[str, Any]:
        return {
            "assumptions": self.assumptions.to_dict(),
            "properties": [p.to_dict() for p in self.properties],
            "start": self.start.to_dict() if self.start else None,
        }

    def fingerprint(self) -> str:
        """Stable SHA-256 digest of the configuration, usable as a cache key."""
        payload = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
