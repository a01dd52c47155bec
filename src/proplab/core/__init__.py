"""
Core module for PropLab.

This module contains the configuration model, the forecast engine and the
result structures.
"""

from .calendar import DateSelection, current_month, month_index, month_range
from .config_loader import ConfigLoadError, config_from_dict, load_config
from .currency import RoundingPolicy, round_currency
from .engine import Forecast, run_forecast, select_repayment_offset
from .errors import (
    ConfigError,
    ConfigurationError,
    PropLabWarning,
    SimulationCancelled,
)
from .events import Event
from .results import (
    ForecastResults,
    MonthlyLedgerEntry,
    NumpyEncoder,
    PropertyMonthDetail,
    SummaryMetrics,
    export_ledger_csv,
    export_run_json,
)
from .specs import (
    Assumptions,
    ExpenseFrequency,
    ForecastConfig,
    OffsetAccount,
    PropertyExpense,
    PropertySpec,
    RentalPeriod,
    SaleEvent,
)
from .state import PropertyPhase, PropertyState, StateArena
from .validation import Issue, ValidationReport, validate_config

__all__ = [
    # Calendar
    "DateSelection",
    "current_month",
    "month_index",
    "month_range",
    # Configuration
    "Assumptions",
    "ExpenseFrequency",
    "ForecastConfig",
    "OffsetAccount",
    "PropertyExpense",
    "PropertySpec",
    "RentalPeriod",
    "SaleEvent",
    "ConfigLoadError",
    "config_from_dict",
    "load_config",
    # Errors
    "ConfigError",
    "ConfigurationError",
    "PropLabWarning",
    "SimulationCancelled",
    # Engine
    "Forecast",
    "run_forecast",
    "select_repayment_offset",
    "PropertyPhase",
    "PropertyState",
    "StateArena",
    # Results
    "Event",
    "ForecastResults",
    "MonthlyLedgerEntry",
    "PropertyMonthDetail",
    "SummaryMetrics",
    "NumpyEncoder",
    "export_ledger_csv",
    "export_run_json",
    # Currency
    "RoundingPolicy",
    "round_currency",
    # Validation
    "Issue",
    "ValidationReport",
    "validate_config",
]
