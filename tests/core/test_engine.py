"""
Tests for the month-by-month forecast engine.
"""

import math
import threading

import pytest
from proplab import (
    ConfigurationError,
    DateSelection,
    ExpenseFrequency,
    Forecast,
    OffsetAccount,
    PropertyExpense,
    PropLabWarning,
    RentalPeriod,
    SaleEvent,
    SimulationCancelled,
    run_forecast,
)
from proplab.core.engine import select_repayment_offset
from proplab.strategies.amortization import monthly_payment

START = DateSelection(year=2026, month=0)


def _assert_identities(results):
    for entry in results.ledger:
        assert entry.total_cash == entry.cash_on_hand + entry.total_offset_balance
        assert entry.net_position == (
            entry.total_assets + entry.total_cash - entry.total_debt
        )


class TestHouseholdOnly:
    """Forecasts without properties."""

    def test_salary_minus_expenses_accumulates(self, make_config):
        results = run_forecast(make_config(years=1))
        assert len(results.ledger) == 12
        assert results.ledger[0].cash_on_hand == 54_667.0
        assert results.ledger[-1].cash_on_hand == 106_000.0
        assert results.summary.final_net_position == 106_000.0
        assert results.summary.final_total_equity == 0.0
        assert results.summary.peak_debt == 0.0
        _assert_identities(results)

    def test_months_are_numbered_and_labelled(self, make_config):
        results = run_forecast(make_config(years=2))
        assert [e.month for e in results.ledger] == list(range(1, 25))
        assert results.ledger[0].label == "01/2026"
        assert results.ledger[-1].label == "12/2027"
        assert results.ledger[13].date == DateSelection(2027, 1)

    def test_zero_year_projection(self, make_config):
        results = run_forecast(make_config(years=0, cash=1_234.0))
        assert results.ledger == ()
        assert results.summary.final_net_position == 1_234.0
        assert results.summary.final_total_cash == 1_234.0

    def test_start_defaults_to_config_then_argument(self, make_config):
        config = make_config()
        assert run_forecast(config).ledger[0].date == START
        later = DateSelection(2030, 5)
        assert run_forecast(config, now=later).ledger[0].date == later


class TestPurchaseAndLoan:
    """Purchase deposit and loan installments."""

    def test_first_month_of_a_financed_purchase(self, make_config, make_property):
        results = run_forecast(make_config(make_property()))
        first = results.ledger[0]
        detail = first.property_details["flat"]

        assert detail.phase == "active"
        assert detail.interest_paid == pytest.approx(2_000.0)
        assert detail.principal_paid == pytest.approx(398.20, abs=0.01)
        assert detail.loan_balance == pytest.approx(399_601.80, abs=0.01)
        assert first.property_outflows == pytest.approx(2_398.20, abs=0.01)
        # 50,000 + salary - expenses - 100,000 deposit - installment
        assert first.cash_on_hand == pytest.approx(-47_731.54, abs=1)
        assert first.total_debt == 399_602.0
        assert first.total_assets == 500_000.0
        _assert_identities(results)

    def test_loan_balance_never_increases(self, make_config, make_property):
        results = run_forecast(make_config(make_property(), years=5))
        balances = [e.property_details["flat"].loan_balance for e in results.ledger]
        assert all(b2 <= b1 for b1, b2 in zip(balances, balances[1:]))

    def test_zero_interest_loan_repays_linearly(self, make_config, make_property):
        prop = make_property(purchase_price=150_000.0, interest_rate=0.0, loan_term=10)
        results = run_forecast(make_config(prop))
        detail = results.ledger[0].property_details["flat"]
        assert detail.interest_paid == 0.0
        assert detail.principal_paid == pytest.approx(1_000.0)
        assert results.ledger[-1].property_details["flat"].loan_balance == pytest.approx(
            108_000.0
        )

    def test_loan_is_fully_repaid_and_stays_at_zero(self, make_config, make_property):
        prop = make_property(purchase_price=15_000.0, loan_term=1)
        results = run_forecast(make_config(prop, years=2))
        details = [e.property_details["flat"] for e in results.ledger]
        assert details[11].loan_balance == pytest.approx(0.0, abs=1e-6)
        assert all(d.loan_balance == pytest.approx(0.0, abs=1e-6) for d in details[12:])
        assert results.ledger[-1].total_debt == 0.0

    def test_unpurchased_months_count_original_loan_and_price(
        self, make_config, make_property
    ):
        prop = make_property(purchase_date=START.shift(3))
        results = run_forecast(make_config(prop))
        for entry in results.ledger[:3]:
            detail = entry.property_details["flat"]
            assert detail.phase == "unpurchased"
            assert detail.loan_balance == 400_000.0
            assert detail.property_value == 500_000.0
            assert detail.principal_paid == detail.interest_paid == 0.0
            assert entry.total_debt == 400_000.0
            assert entry.total_assets == 500_000.0
            assert entry.property_outflows == 0.0
            assert entry.net_position == entry.total_cash + 100_000.0
        assert results.summary.peak_debt == 400_000.0
        assert [e.kind for e in results.events][:1] == ["purchase"]
        assert str(results.events[0].t) == "2026-04"
        fourth = results.ledger[3]
        assert fourth.property_details["flat"].phase == "active"
        assert fourth.cash_on_hand - results.ledger[2].cash_on_hand == pytest.approx(
            80_000 / 12 - 2_000 - 100_000 - fourth.property_outflows, abs=1
        )

    def test_purchase_before_start_is_already_owned(self, make_config, make_property):
        prop = make_property(purchase_date=START.shift(-25))
        results = run_forecast(make_config(prop))
        first = results.ledger[0]
        detail = first.property_details["flat"]

        assert detail.phase == "active"
        assert detail.property_value == pytest.approx(540_800.0)
        # No deposit is taken for a purchase that happened before the window
        assert first.cash_on_hand == pytest.approx(
            50_000 + 80_000 / 12 - 2_000 - first.property_outflows, abs=1
        )
        # Third anniversary of the purchase falls in December 2026
        assert results.ledger[10].property_details["flat"].property_value == pytest.approx(540_800.0)
        assert results.ledger[11].property_details["flat"].property_value == pytest.approx(
            500_000 * 1.04**3
        )
        purchase_events = [e for e in results.events if e.kind == "purchase"]
        assert purchase_events == []


class TestGrowth:
    """Annual compounding of property values."""

    def test_value_steps_on_anniversaries_only(self, make_config, make_property):
        results = run_forecast(make_config(make_property(), years=3))
        values = [e.property_details["flat"].property_value for e in results.ledger]
        assert set(values[:12]) == {500_000.0}
        assert all(v == pytest.approx(520_000.0) for v in values[12:24])
        assert values[24] == pytest.approx(540_800.0)

    def test_negative_growth(self, make_config, make_property):
        results = run_forecast(make_config(make_property(annual_growth=-5.0), years=2))
        assert results.ledger[12].property_details["flat"].property_value == pytest.approx(
            475_000.0
        )

    def test_growth_events_are_recorded(self, make_config, make_property):
        results = run_forecast(make_config(make_property(), years=3))
        growth = [e for e in results.events if e.kind == "growth"]
        assert [e.meta["years"] for e in growth] == [1, 2]


class TestSale:
    """Sale settlement."""

    def _sold_config(self, make_config, make_property, **sale_kwargs):
        prop = make_property(
            purchase_price=300_000.0,
            loan_ratio=50.0,
            annual_growth=5.0,
            offsets=[OffsetAccount(20_000.0, START, START.shift(60))],
            sale=SaleEvent(sale_date=START.shift(24), **sale_kwargs),
        )
        return make_config(prop, years=3)

    def test_sale_at_estimated_value(self, make_config, make_property):
        results = run_forecast(self._sold_config(make_config, make_property, selling_costs=2.0))
        sale = next(e for e in results.events if e.kind == "sale")
        before = results.ledger[23]
        at_sale = results.ledger[24]

        assert sale.meta["gross"] == pytest.approx(330_750.0)
        assert sale.meta["costs"] == pytest.approx(6_615.0)
        assert sale.meta["offsets_returned"] == pytest.approx(20_000.0)
        assert sale.meta["loan_payoff"] == pytest.approx(
            before.property_details["flat"].loan_balance
        )
        assert sale.meta["net"] == pytest.approx(
            330_750.0 - 6_615.0 - sale.meta["loan_payoff"] + 20_000.0
        )
        # No installment is paid in the month of sale
        assert at_sale.property_outflows == 0.0
        assert at_sale.cash_on_hand - before.cash_on_hand == pytest.approx(
            80_000 / 12 - 2_000 + sale.meta["net"], abs=1
        )

    def test_sold_property_is_zeroed(self, make_config, make_property):
        results = run_forecast(self._sold_config(make_config, make_property))
        for entry in results.ledger[24:]:
            detail = entry.property_details["flat"]
            assert detail.phase == "sold"
            assert (detail.loan_balance, detail.property_value, detail.offset_balance) == (
                0,
                0,
                0,
            )
            assert entry.total_debt == 0.0
            assert entry.total_assets == 0.0
            assert entry.total_offset_balance == 0.0
        assert results.summary.properties_sold == 1
        assert results.summary.final_total_equity == 0.0
        _assert_identities(results)

    def test_manual_price_overrides_estimate(self, make_config, make_property):
        results = run_forecast(
            self._sold_config(make_config, make_property, manual_sale_price=400_000.0)
        )
        sale = next(e for e in results.events if e.kind == "sale")
        assert sale.meta["gross"] == 400_000.0
        assert sale.meta["manual_price"] is True

    def test_non_positive_manual_price_falls_back_to_estimate(
        self, make_config, make_property
    ):
        results = run_forecast(
            self._sold_config(make_config, make_property, manual_sale_price=0.0)
        )
        sale = next(e for e in results.events if e.kind == "sale")
        assert sale.meta["gross"] == pytest.approx(330_750.0)

    def test_sale_before_start_never_happens(self, make_config, make_property):
        prop = make_property(
            purchase_date=START.shift(-24), sale=SaleEvent(sale_date=START.shift(-1))
        )
        with pytest.warns(PropLabWarning, match="outside the projection"):
            results = run_forecast(make_config(prop))
        assert results.ledger[-1].property_details["flat"].phase == "active"
        assert results.summary.properties_sold == 0


class TestOffsets:
    """Offset accounts and repayment funding."""

    def test_repayment_offset_pays_installment(self, make_config, make_property):
        prop = make_property(
            purchase_price=200_000.0,
            offsets=[OffsetAccount(50_000.0, START, START.shift(120), use_for_repayments=True)],
        )
        results = run_forecast(make_config(prop))
        first = results.ledger[0]
        detail = first.property_details["flat"]
        payment = monthly_payment(160_000.0, 6.0, 30)

        assert payment == pytest.approx(959.28, abs=0.01)
        assert detail.interest_paid == pytest.approx(550.0)
        assert first.property_outflows == 0.0
        assert detail.offset_balance == pytest.approx(50_000.0 - payment)
        # Deposit and offset funding both leave cash
        assert first.cash_on_hand == pytest.approx(
            50_000 + 80_000 / 12 - 2_000 - 40_000 - 50_000, abs=1
        )
        _assert_identities(results)

    def test_shortfall_is_paid_from_cash(self, make_config, make_property):
        prop = make_property(
            purchase_price=200_000.0,
            offsets=[OffsetAccount(500.0, START, START.shift(120), use_for_repayments=True)],
        )
        results = run_forecast(make_config(prop))
        first = results.ledger[0]
        assert first.property_details["flat"].offset_balance == 0.0
        assert first.property_outflows == pytest.approx(
            monthly_payment(160_000.0, 6.0, 30) - 500.0
        )

    def test_plain_offset_only_reduces_interest(self, make_config, make_property):
        prop = make_property(offsets=[OffsetAccount(100_000.0, START, START.shift(5))])
        results = run_forecast(make_config(prop))
        first = results.ledger[0]
        assert first.property_details["flat"].interest_paid == pytest.approx(1_500.0)
        assert first.property_outflows == pytest.approx(2_398.20, abs=0.01)
        assert [e.total_offset_balance for e in results.ledger] == [100_000.0] * 5 + [0.0] * 7

    def test_offset_is_returned_at_end(self, make_config, make_property):
        prop = make_property(
            loan_ratio=0.0, offsets=[OffsetAccount(10_000.0, START, START.shift(5))]
        )
        results = run_forecast(make_config(prop))
        before, at_end = results.ledger[4], results.ledger[5]
        assert at_end.cash_on_hand - before.cash_on_hand == pytest.approx(
            80_000 / 12 - 2_000 + 10_000, abs=1
        )
        kinds = [e.kind for e in results.events]
        assert kinds.count("offset_open") == 1
        assert kinds.count("offset_close") == 1

    def test_first_qualifying_offset_funds_repayment(self, make_property):
        late = OffsetAccount(1_000.0, START.shift(6), START.shift(12), use_for_repayments=True)
        plain = OffsetAccount(1_000.0, START, START.shift(12))
        first = OffsetAccount(1_000.0, START, START.shift(12), use_for_repayments=True)
        second = OffsetAccount(1_000.0, START, START.shift(12), use_for_repayments=True)
        prop = make_property(offsets=[late, plain, first, second])
        idx = START.index

        assert select_repayment_offset(prop, [1_000.0] * 4, idx) == 2
        assert select_repayment_offset(prop, [1_000.0, 1_000.0, 0.0, 1_000.0], idx) == 3
        assert select_repayment_offset(prop, [1_000.0] * 4, START.shift(6).index) == 0
        assert select_repayment_offset(prop, [0.0] * 4, idx) is None


class TestRentAndExpenses:
    """Rental windows and expense schedules."""

    def test_rent_window_is_inclusive(self, make_config, make_property):
        prop = make_property(
            loan_ratio=0.0,
            rentals=[RentalPeriod(1_000.0, START.shift(2), START.shift(4))],
        )
        results = run_forecast(make_config(prop))
        assert [e.rental_income for e in results.ledger] == [0, 0, 1_000, 1_000, 1_000] + [0] * 7

    def test_overlapping_rentals_add_up(self, make_config, make_property):
        prop = make_property(
            loan_ratio=0.0,
            rentals=[
                RentalPeriod(1_000.0, START, START.shift(11)),
                RentalPeriod(500.0, START.shift(6), START.shift(11)),
            ],
        )
        results = run_forecast(make_config(prop))
        assert results.ledger[5].rental_income == 1_000.0
        assert results.ledger[6].rental_income == 1_500.0

    def test_rent_stops_after_sale(self, make_config, make_property):
        prop = make_property(
            loan_ratio=0.0,
            rentals=[RentalPeriod(1_000.0, START, START.shift(11))],
            sale=SaleEvent(sale_date=START.shift(6)),
        )
        results = run_forecast(make_config(prop))
        assert [e.rental_income for e in results.ledger] == [1_000.0] * 6 + [0.0] * 6

    @pytest.mark.parametrize(
        "frequency, due_months",
        [
            (ExpenseFrequency.MONTHLY, list(range(1, 12))),
            (ExpenseFrequency.QUARTERLY, [1, 4, 7, 10]),
            (ExpenseFrequency.ANNUALLY, [1]),
        ],
    )
    def test_expense_schedule(self, make_config, make_property, frequency, due_months):
        prop = make_property(
            loan_ratio=0.0,
            expenses=[PropertyExpense("Rates", 300.0, frequency, START.shift(1))],
        )
        results = run_forecast(make_config(prop))
        outflows = [e.property_outflows for e in results.ledger]
        assert [i for i, amount in enumerate(outflows) if amount] == due_months
        assert all(outflows[i] == 300.0 for i in due_months)


class TestMultipleProperties:
    """Portfolio aggregation."""

    def test_totals_sum_over_properties(self, make_config, make_property):
        a = make_property(id="a")
        b = make_property(id="b", purchase_price=200_000.0, purchase_date=START.shift(1))
        results = run_forecast(make_config(a, b))
        second = results.ledger[1]
        debt = sum(d.loan_balance for d in second.property_details.values())
        assets = sum(d.property_value for d in second.property_details.values())
        assert second.total_debt == round(debt)
        assert second.total_assets == round(assets)
        assert results.property_ids == ("a", "b")
        assert list(second.property_details) == ["a", "b"]

    def test_summary(self, make_config, make_property):
        results = run_forecast(make_config(make_property(), years=2))
        total_interest = sum(
            e.property_details["flat"].interest_paid for e in results.ledger
        )
        final = results.ledger[-1]
        assert results.summary.total_interest_paid == pytest.approx(total_interest)
        assert results.summary.peak_debt == results.ledger[0].total_debt
        assert results.summary.final_total_equity == pytest.approx(
            final.property_details["flat"].property_value
            - final.property_details["flat"].loan_balance,
            abs=1,
        )


class TestExtremeInputs:
    """Implausible rates still produce a complete ledger."""

    def test_huge_growth_is_rounded_not_rejected(self, make_config, make_property):
        results = run_forecast(make_config(make_property(annual_growth=1_000.0), years=30))
        assert len(results.ledger) == 360
        final = results.ledger[-1]
        assert final.total_assets == pytest.approx(500_000 * 11.0**29)
        assert final.total_assets > 1e28
        _assert_identities(results)

    def test_value_overflow_becomes_infinite(self, make_config, make_property):
        prop = make_property(loan_ratio=0.0, annual_growth=1_000_000.0)
        results = run_forecast(make_config(prop, years=100))
        assert len(results.ledger) == 1_200
        assert math.isinf(results.ledger[-1].total_assets)
        assert math.isinf(results.summary.final_net_position)

    def test_huge_interest_rate(self, make_config, make_property):
        results = run_forecast(make_config(make_property(interest_rate=1_000_000.0)))
        detail = results.ledger[0].property_details["flat"]
        assert detail.interest_paid == pytest.approx(400_000 * 1_000_000 / 1_200)
        assert detail.principal_paid == pytest.approx(0.0, abs=1e-6)
        assert len(results.ledger) == 12


class TestRunControl:
    """Validation, cancellation and determinism."""

    def test_invalid_configuration_raises(self, make_config, make_property):
        config = make_config(make_property(id="bad", loan_ratio=120.0, loan_term=0))
        with pytest.raises(ConfigurationError) as exc_info:
            run_forecast(config)
        assert exc_info.value.problem_ids == ["bad"]
        assert len(exc_info.value.problems) == 2

    def test_cancel_before_first_month(self, make_config):
        token = threading.Event()
        token.set()
        with pytest.raises(SimulationCancelled) as exc_info:
            run_forecast(make_config(), cancel=token)
        assert exc_info.value.month == 1

    def test_cancel_midway(self, make_config):
        class Token:
            calls = 0

            def is_set(self):
                self.calls += 1
                return self.calls >= 3

        with pytest.raises(SimulationCancelled) as exc_info:
            Forecast(make_config()).run(cancel=Token())
        assert exc_info.value.month == 3

    def test_unset_token_runs_to_completion(self, make_config):
        results = run_forecast(make_config(), cancel=threading.Event())
        assert len(results.ledger) == 12

    def test_runs_are_deterministic(self, make_config, make_property):
        prop = make_property(
            rentals=[RentalPeriod(2_000.0, START, START.shift(30))],
            offsets=[OffsetAccount(20_000.0, START, START.shift(40), use_for_repayments=True)],
            sale=SaleEvent(sale_date=START.shift(36), selling_costs=3.0),
        )
        config = make_config(prop, years=4)
        first = run_forecast(config)
        second = run_forecast(config)
        assert first.ledger == second.ledger
        assert first.summary == second.summary
