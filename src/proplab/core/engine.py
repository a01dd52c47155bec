"""
Month-by-month forecast engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from proplab.kpi import summarize
from proplab.strategies.amortization import monthly_rate, split_payment
from proplab.strategies.valuation import compound_value, full_years_elapsed

from .calendar import DateSelection, current_month, month_range
from .currency import round_currency
from .errors import SimulationCancelled
from .events import Event
from .results import ForecastResults, MonthlyLedgerEntry, PropertyMonthDetail
from .specs import ForecastConfig, PropertySpec
from .state import PropertyPhase, PropertyState, StateArena
from .validation import validate_config

logger = logging.getLogger(__name__)


class CancellationToken(Protocol):
    """Anything with an ``is_set()`` method, e.g. ``threading.Event``."""

    def is_set(self) -> bool: ...


@dataclass
class _MonthFlows:
    """Household cash movements accumulated while stepping one month."""

    rental_income: float = 0.0
    property_outflows: float = 0.0
    # Deposits, offset funding/returns and sale proceeds
    transfers: float = 0.0


def select_repayment_offset(
    prop: PropertySpec, balances: list[float], month_idx: int
) -> int | None:
    """
    Pick the offset account that funds this month's loan installment.

    The rule is: the first account in configuration order that is flagged
    ``use_for_repayments``, whose window covers the month and whose balance is
    positive. At most one account funds a given installment.

    Returns:
        Index of the account in ``prop.offsets``, or ``None``
    """
    for i, account in enumerate(prop.offsets):
        if account.use_for_repayments and account.covers(month_idx) and balances[i] > 0:
            return i
    return None


@dataclass
class Forecast:
    """
    Forecast engine for a household property portfolio.

    The engine advances every property one calendar month at a time and
    applies, per property and in this order: purchase deposit, annual growth,
    sale, offset account opening/closing, rent, property expenses and the
    loan installment. After all properties it settles household cash and
    appends one ledger entry.

    The run is a pure function of the configuration and the start month.

    Attributes:
        config: The forecast configuration
    """

    config: ForecastConfig

    def run(
        self,
        now: DateSelection | None = None,
        cancel: CancellationToken | None = None,
    ) -> ForecastResults:
        """
        Run the forecast.

        Args:
            now: First projected month. Defaults to ``config.start`` and then
                to the current calendar month.
            cancel: Optional token checked before every month

        Returns:
            ForecastResults with the ledger, summary and event log

        Raises:
            ConfigurationError: If the configuration is invalid (nothing is simulated)
            SimulationCancelled: If ``cancel`` fires during the run
        """
        config = self.config
        start = now or config.start or current_month()

        report = validate_config(config, start)
        report.raise_for_errors()
        report.emit_warnings()

        assumptions = config.assumptions
        months = assumptions.months
        logger.info(
            "Running forecast: %d properties, %d months from %s",
            len(config.properties),
            months,
            start,
        )

        arena = StateArena(config.properties)
        t_index = month_range(start, months)
        cash = float(assumptions.initial_cash)
        salary = assumptions.annual_salary / 12
        ledger: list[MonthlyLedgerEntry] = []
        events: list[Event] = []

        for i in range(months):
            if cancel is not None and cancel.is_set():
                logger.info("Forecast cancelled before month %d", i + 1)
                raise SimulationCancelled(i + 1)

            month = start.shift(i)
            month_idx = month.index
            flows = _MonthFlows()
            details: dict[str, PropertyMonthDetail] = {}

            for state in arena:
                details[state.spec.id] = self._step_property(
                    state, month_idx, t_index[i], flows, events
                )

            cash += (
                salary
                + flows.rental_income
                - assumptions.general_monthly_expenses
                - flows.property_outflows
                + flows.transfers
            )
            ledger.append(
                self._ledger_entry(
                    i + 1,
                    month,
                    cash,
                    salary,
                    assumptions.general_monthly_expenses,
                    flows,
                    arena,
                    details,
                )
            )

        summary = summarize(ledger, assumptions.initial_cash)
        logger.info(
            "Forecast finished: final net position %.0f, %d sold",
            summary.final_net_position,
            summary.properties_sold,
        )
        return ForecastResults(
            ledger,
            summary,
            events=events,
            property_ids=[p.id for p in config.properties],
        )

    def _step_property(
        self,
        state: PropertyState,
        month_idx: int,
        t: np.datetime64,
        flows: _MonthFlows,
        events: list[Event],
    ) -> PropertyMonthDetail:
        """Advance one property by one month and return its ledger detail."""
        prop = state.spec
        purchase_idx = prop.purchase_date.index

        if state.phase is PropertyPhase.SOLD:
            return PropertyMonthDetail(phase=PropertyPhase.SOLD.value)

        if state.phase is PropertyPhase.UNPURCHASED:
            if month_idx < purchase_idx:
                # Counted with its original loan and price, nothing else happens
                return PropertyMonthDetail(
                    loan_balance=state.loan_balance,
                    property_value=state.property_value,
                    phase=PropertyPhase.UNPURCHASED.value,
                )
            # Purchases before the projection start activate with the value
            # already compounded for the years held.
            years = full_years_elapsed(purchase_idx, month_idx)
            state.activate(compound_value(prop.purchase_price, prop.annual_growth, years))

        # Purchase
        if month_idx == purchase_idx:
            flows.transfers -= prop.deposit
            self._record(
                events,
                t,
                prop.id,
                "purchase",
                f"Purchase {prop.name}: deposit {prop.deposit:,.2f}, loan {prop.loan_amount:,.2f}",
                {"price": prop.purchase_price, "deposit": prop.deposit, "loan": prop.loan_amount},
            )

        # Annual growth
        elapsed = month_idx - purchase_idx
        if elapsed > 0 and elapsed % 12 == 0:
            state.property_value = compound_value(
                prop.purchase_price, prop.annual_growth, elapsed // 12
            )
            self._record(
                events,
                t,
                prop.id,
                "growth",
                f"{prop.name} revalued to {state.property_value:,.2f}",
                {"value": state.property_value, "years": elapsed // 12},
            )

        # Sale
        if prop.sale is not None and month_idx == prop.sale.sale_date.index:
            self._sell(state, t, flows, events)
            return PropertyMonthDetail(phase=PropertyPhase.SOLD.value)

        # Offset accounts
        for k, account in enumerate(prop.offsets):
            if month_idx == account.start_date.index:
                flows.transfers -= account.initial_amount
                state.offset_balances[k] = account.initial_amount
                self._record(
                    events,
                    t,
                    prop.id,
                    "offset_open",
                    f"Offset {account.id or k} funded with {account.initial_amount:,.2f}",
                    {"offset": k, "amount": account.initial_amount},
                )
            if month_idx == account.end_date.index and state.offset_balances[k] > 0:
                returned = state.offset_balances[k]
                flows.transfers += returned
                state.offset_balances[k] = 0.0
                self._record(
                    events,
                    t,
                    prop.id,
                    "offset_close",
                    f"Offset {account.id or k} closed, {returned:,.2f} returned to cash",
                    {"offset": k, "amount": returned},
                )

        # Rent
        for rental in prop.rentals:
            if rental.start_date.index <= month_idx <= rental.end_date.index:
                flows.rental_income += rental.monthly_amount

        # Property expenses
        for expense in prop.expenses:
            if expense.is_due(month_idx):
                flows.property_outflows += expense.amount

        # Loan installment
        principal_paid = interest_paid = 0.0
        if state.loan_balance > 0:
            payment = state.payment
            split = split_payment(
                state.loan_balance,
                state.offset_total,
                monthly_rate(prop.interest_rate),
                payment,
            )
            funding = select_repayment_offset(prop, state.offset_balances, month_idx)
            if funding is not None:
                from_offset = min(state.offset_balances[funding], payment)
                state.offset_balances[funding] -= from_offset
                flows.property_outflows += payment - from_offset
            else:
                flows.property_outflows += payment

            state.loan_balance = max(0.0, state.loan_balance - split.principal_paid)
            principal_paid = split.principal_paid
            interest_paid = split.interest_paid

        return PropertyMonthDetail(
            principal_paid=principal_paid,
            interest_paid=interest_paid,
            loan_balance=state.loan_balance,
            offset_balance=state.offset_total,
            property_value=state.property_value,
            phase=PropertyPhase.ACTIVE.value,
        )

    def _sell(
        self,
        state: PropertyState,
        t: np.datetime64,
        flows: _MonthFlows,
        events: list[Event],
    ) -> None:
        """Settle a sale: pay off the loan, release offsets, bank the rest."""
        prop = state.spec
        sale = prop.sale
        gross = sale.manual_sale_price if sale.has_manual_price else state.property_value
        costs = gross * (sale.selling_costs / 100)
        loan_payoff = state.loan_balance
        offsets_returned = state.offset_total
        net = gross - costs - loan_payoff + offsets_returned

        flows.transfers += net
        state.mark_sold()
        self._record(
            events,
            t,
            prop.id,
            "sale",
            f"{prop.name} sold for {gross:,.2f}, net {net:,.2f} to cash",
            {
                "gross": gross,
                "costs": costs,
                "loan_payoff": loan_payoff,
                "offsets_returned": offsets_returned,
                "net": net,
                "manual_price": sale.has_manual_price,
            },
        )

    @staticmethod
    def _record(
        events: list[Event],
        t: np.datetime64,
        property_id: str,
        kind: str,
        message: str,
        meta: dict,
    ) -> None:
        logger.debug("%s %s: %s", t, kind, message)
        events.append(Event(t, property_id, kind, message, meta))

    @staticmethod
    def _ledger_entry(
        month_number: int,
        month: DateSelection,
        cash: float,
        salary: float,
        general_expenses: float,
        flows: _MonthFlows,
        arena: StateArena,
        details: dict[str, PropertyMonthDetail],
    ) -> MonthlyLedgerEntry:
        debt, assets, offsets = arena.totals()
        cash_r = round_currency(cash)
        offsets_r = round_currency(offsets)
        debt_r = round_currency(debt)
        assets_r = round_currency(assets)
        total_cash = cash_r + offsets_r
        return MonthlyLedgerEntry(
            month=month_number,
            date=month,
            salary=salary,
            rental_income=flows.rental_income,
            general_expenses=general_expenses,
            property_outflows=flows.property_outflows,
            cash_on_hand=cash_r,
            total_cash=total_cash,
            total_debt=debt_r,
            total_assets=assets_r,
            net_position=assets_r + total_cash - debt_r,
            total_offset_balance=offsets_r,
            property_details=details,
        )


def run_forecast(
    config: ForecastConfig,
    now: DateSelection | None = None,
    cancel: CancellationToken | None = None,
) -> ForecastResults:
    """Run a forecast for ``config``. See :meth:`Forecast.run`."""
    return Forecast(config).run(now=now, cancel=cancel)
