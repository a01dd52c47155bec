"""
Two-property household forecast with rent, an offset account and a sale.
"""

from __future__ import annotations

import logging

from proplab import (
    Assumptions,
    DateSelection,
    ExpenseFrequency,
    ForecastConfig,
    OffsetAccount,
    PropertyExpense,
    PropertySpec,
    RentalPeriod,
    SaleEvent,
    estimate_value,
    run_forecast,
    sale_estimate_difference,
)
from proplab.kpi import liquidity_runway, ltv


def build_config() -> ForecastConfig:
    start = DateSelection(year=2026, month=0)
    home = PropertySpec(
        id="home",
        name="Family Home",
        purchase_price=750_000,
        purchase_date=start,
        loan_ratio=80,
        interest_rate=6.1,
        loan_term=30,
        annual_growth=3.5,
        offsets=[
            OffsetAccount(
                initial_amount=40_000,
                start_date=start,
                end_date=start.shift(120),
                use_for_repayments=True,
            )
        ],
        expenses=[
            PropertyExpense("Council rates", 650, ExpenseFrequency.QUARTERLY, start),
            PropertyExpense("Insurance", 1_900, ExpenseFrequency.ANNUALLY, start),
        ],
    )
    unit = PropertySpec(
        id="unit",
        name="Investment Unit",
        purchase_price=420_000,
        purchase_date=start.shift(18),
        loan_ratio=90,
        interest_rate=6.5,
        loan_term=25,
        annual_growth=4.5,
        rentals=[RentalPeriod(2_100, start.shift(19), start.shift(95))],
        expenses=[PropertyExpense("Strata", 1_100, ExpenseFrequency.QUARTERLY, start.shift(18))],
        sale=SaleEvent(sale_date=start.shift(96), selling_costs=2.5, manual_sale_price=610_000),
    )
    return ForecastConfig(
        assumptions=Assumptions(
            annual_salary=165_000,
            initial_cash=220_000,
            general_monthly_expenses=5_200,
            projection_years=10,
        ),
        properties=[home, unit],
        start=start,
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    config = build_config()
    results = run_forecast(config)

    print(results.yearly()[["rental_income", "total_cash", "total_debt", "net_position"]])

    df = results.to_frame()
    print("\nPortfolio LTV (last 3 months):")
    print(ltv(df).tail(3))
    print("\nLiquidity runway (last 3 months):")
    print(liquidity_runway(df).tail(3))

    unit = config.properties[1]
    print(f"\nEstimated unit value at sale: {estimate_value(unit, unit.sale.sale_date):,.0f}")
    print(f"Agreed price above estimate:  {sale_estimate_difference(unit):,.0f}")
    print(f"\nFinal net position: {results.summary.final_net_position:,.0f}")


if __name__ == "__main__":
    main()
