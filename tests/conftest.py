"""
Shared fixtures for PropLab tests.
"""

import pytest
from proplab import Assumptions, DateSelection, ForecastConfig, PropertySpec
from proplab.core.errors import reset_warnings

START = DateSelection(year=2026, month=0)


@pytest.fixture(autouse=True)
def _fresh_warnings():
    """Every test sees each configuration warning again."""
    reset_warnings()
    yield
    reset_warnings()


@pytest.fixture
def start():
    return START


@pytest.fixture
def make_property():
    """Factory for properties purchased in the first projected month."""

    def _make(**overrides):
        params = {
            "id": "flat",
            "name": "City Flat",
            "purchase_price": 500_000.0,
            "purchase_date": START,
            "loan_ratio": 80.0,
            "interest_rate": 6.0,
            "loan_term": 30,
            "annual_growth": 4.0,
        }
        params.update(overrides)
        return PropertySpec(**params)

    return _make


@pytest.fixture
def make_config():
    """Factory for configurations starting at January 2026."""

    def _make(*properties, years=1, salary=80_000.0, cash=50_000.0, expenses=2_000.0):
        return ForecastConfig(
            assumptions=Assumptions(
                annual_salary=salary,
                initial_cash=cash,
                general_monthly_expenses=expenses,
                projection_years=years,
            ),
            properties=list(properties),
            start=START,
        )

    return _make
