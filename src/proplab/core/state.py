"""
Per-property run-time state for the forecast engine.

State is kept in an arena: a dense list of :class:`PropertyState` records in
configuration order plus an id -> index mapping built once per run. Nothing
outside a single engine run holds a reference to these records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from proplab.strategies.amortization import monthly_payment

from .specs import PropertySpec


class PropertyPhase(str, Enum):
    """Lifecycle of a property within one forecast run."""

    UNPURCHASED = "unpurchased"
    ACTIVE = "active"
    SOLD = "sold"


@dataclass
class PropertyState:
    """
    Mutable state of one property.

    Attributes:
        spec: The property configuration
        phase: Current lifecycle phase
        loan_balance: Outstanding loan principal; the original loan amount
            until the purchase month
        property_value: Running value estimate; the purchase price until
            the purchase month
        offset_balances: One balance per configured offset account, in
            configuration order; zero means not funded or drained
        payment: Fixed monthly installment derived from the original loan
    """

    spec: PropertySpec
    phase: PropertyPhase = PropertyPhase.UNPURCHASED
    loan_balance: float = 0.0
    property_value: float = 0.0
    offset_balances: list[float] = field(default_factory=list)
    payment: float = 0.0

    @classmethod
    def create(cls, spec: PropertySpec) -> PropertyState:
        payment = 0.0
        if spec.loan_amount > 0:
            payment = monthly_payment(spec.loan_amount, spec.interest_rate, spec.loan_term)
        return cls(
            spec=spec,
            loan_balance=spec.loan_amount,
            property_value=spec.purchase_price,
            offset_balances=[0.0] * len(spec.offsets),
            payment=payment,
        )

    @property
    def offset_total(self) -> float:
        return sum(self.offset_balances)

    def activate(self, value: float) -> None:
        """Enter the Active phase with the original loan and the given value."""
        self.phase = PropertyPhase.ACTIVE
        self.loan_balance = self.spec.loan_amount
        self.property_value = value

    def mark_sold(self) -> None:
        """Enter the terminal Sold phase; all balances become zero."""
        self.phase = PropertyPhase.SOLD
        self.loan_balance = 0.0
        self.property_value = 0.0
        self.offset_balances = [0.0] * len(self.offset_balances)

    def reported_balances(self) -> tuple[float, float, float]:
        """
        (loan balance, property value, offset total) as counted in ledger totals.

        A property that is not yet purchased still counts with its original
        loan and purchase price; a sold property counts as zero.
        """
        if self.phase is PropertyPhase.SOLD:
            return 0.0, 0.0, 0.0
        return self.loan_balance, self.property_value, self.offset_total


class StateArena:
    """Dense per-run store of :class:`PropertyState` records."""

    def __init__(self, specs: tuple[PropertySpec, ...] | list[PropertySpec]):
        self.states: list[PropertyState] = [PropertyState.create(s) for s in specs]
        self.index: dict[str, int] = {s.spec.id: i for i, s in enumerate(self.states)}

    def __iter__(self):
        return iter(self.states)

    def __len__(self) -> int:
        return len(self.states)

    def get(self, property_id: str) -> PropertyState:
        return self.states[self.index[property_id]]

    def totals(self) -> tuple[float, float, float]:
        """Summed (debt, assets, offset balances) across all properties."""
        debt = assets = offsets = 0.0
        for state in self.states:
            loan, value, offset = state.reported_balances()
            debt += loan
            assets += value
            offsets += offset
        return debt, assets, offsets

    def count(self, phase: PropertyPhase) -> int:
        return sum(1 for s in self.states if s.phase is phase)
