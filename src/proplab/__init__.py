"""
PropLab - Month-by-month forecasting for household property portfolios

PropLab projects a household's net financial position over several decades
while it buys, rents out, finances and sells investment properties. Each
property carries its own amortizing loan, rental periods, running expenses,
offset accounts, annual value growth and an optional planned sale.

Key Features:
- **Deterministic**: The same configuration always yields the same ledger
- **Month-granular**: All dates are calendar months on a single integer axis
- **Offset accounts**: Cash held against a loan reduces interest and can pay installments
- **Explicit lifecycle**: Properties move from unpurchased to active to sold
- **Analysis-ready**: Ledgers convert to pandas DataFrames and export to CSV/JSON

Quick Start:
    ```python
    from proplab import Assumptions, DateSelection, ForecastConfig, PropertySpec, run_forecast

    flat = PropertySpec(
        id="flat",
        name="City Flat",
        purchase_price=500_000,
        purchase_date=DateSelection(year=2026, month=0),
        loan_ratio=80,
        interest_rate=6.0,
        loan_term=30,
        annual_growth=4.0,
    )
    config = ForecastConfig(
        assumptions=Assumptions(annual_salary=80_000, initial_cash=150_000),
        properties=[flat],
    )
    results = run_forecast(config, now=DateSelection(year=2026, month=0))
    print(results.summary.final_net_position)
    df = results.to_frame()
    ```
"""

# Version information
__version__ = "0.1.0"
__author__ = "PropLab Team"
__description__ = "Month-by-month forecasting for household property portfolios"

from .core import (
    Assumptions,
    ConfigError,
    ConfigLoadError,
    ConfigurationError,
    DateSelection,
    Event,
    ExpenseFrequency,
    Forecast,
    ForecastConfig,
    ForecastResults,
    MonthlyLedgerEntry,
    OffsetAccount,
    PropertyExpense,
    PropertyMonthDetail,
    PropertyPhase,
    PropertySpec,
    PropLabWarning,
    RentalPeriod,
    SaleEvent,
    SimulationCancelled,
    SummaryMetrics,
    ValidationReport,
    export_ledger_csv,
    export_run_json,
    load_config,
    run_forecast,
    validate_config,
)
from .kpi import (
    equity_by_property,
    interest_paid_cum,
    liquidity_runway,
    ltv,
    summarize,
)
from .strategies import (
    compound_value,
    estimate_value,
    monthly_payment,
    sale_estimate_difference,
    split_payment,
)

__all__ = [
    # Configuration
    "Assumptions",
    "DateSelection",
    "ExpenseFrequency",
    "ForecastConfig",
    "OffsetAccount",
    "PropertyExpense",
    "PropertySpec",
    "RentalPeriod",
    "SaleEvent",
    "load_config",
    "validate_config",
    "ValidationReport",
    # Engine and results
    "Forecast",
    "run_forecast",
    "ForecastResults",
    "MonthlyLedgerEntry",
    "PropertyMonthDetail",
    "PropertyPhase",
    "SummaryMetrics",
    "Event",
    "export_ledger_csv",
    "export_run_json",
    # Formulas
    "compound_value",
    "estimate_value",
    "monthly_payment",
    "sale_estimate_difference",
    "split_payment",
    # KPIs
    "summarize",
    "equity_by_property",
    "interest_paid_cum",
    "liquidity_runway",
    "ltv",
    # Errors
    "ConfigError",
    "ConfigLoadError",
    "ConfigurationError",
    "PropLabWarning",
    "SimulationCancelled",
    # Version info
    "__version__",
    "__author__",
    "__description__",
]
