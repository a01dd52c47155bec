"""
Summary and KPI calculations for forecast results.

:func:`summarize` reduces a ledger to the terminal :class:`SummaryMetrics`.
The remaining functions operate on the DataFrame returned by
``ForecastResults.to_frame()`` and return pandas Series.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import pandas as pd

from proplab.core.results import ForecastResults, MonthlyLedgerEntry, SummaryMetrics


def summarize(
    ledger: Sequence[MonthlyLedgerEntry], initial_cash: float
) -> SummaryMetrics:
    """
    Reduce a completed ledger to its summary metrics.

    Args:
        ledger: Ledger entries in month order
        initial_cash: Opening cash, reported as final cash and net position
            when the ledger is empty

    Returns:
        SummaryMetrics
    """
    if not ledger:
        return SummaryMetrics(
            final_net_position=initial_cash,
            final_total_equity=0.0,
            final_total_cash=initial_cash,
            peak_debt=0.0,
            total_interest_paid=0.0,
            properties_sold=0,
        )

    final = ledger[-1]
    peak_debt = max(entry.total_debt for entry in ledger)
    total_interest = sum(
        detail.interest_paid
        for entry in ledger
        for detail in entry.property_details.values()
    )
    sold = sum(1 for d in final.property_details.values() if d.phase == "sold")

    return SummaryMetrics(
        final_net_position=final.net_position,
        final_total_equity=final.total_assets - final.total_debt,
        final_total_cash=final.total_cash,
        peak_debt=peak_debt,
        total_interest_paid=total_interest,
        properties_sold=sold,
    )


def interest_paid_cum(results: ForecastResults) -> pd.Series:
    """
    Cumulative interest paid across all properties.

    Args:
        results: Forecast results

    Returns:
        Series indexed like ``results.to_frame()``
    """
    monthly = [
        sum(d.interest_paid for d in entry.property_details.values())
        for entry in results.ledger
    ]
    index = results.to_frame().index
    return pd.Series(monthly, index=index, dtype=float).cumsum().rename("interest_paid_cum")


def ltv(
    df: pd.DataFrame,
    debt_col: str = "total_debt",
    assets_col: str = "total_assets",
) -> pd.Series:
    """
    Loan-to-value ratio of the whole portfolio.

    Months without property assets yield NaN.
    """
    assets = df[assets_col].astype(float)
    ratio = np.where(assets > 0, df[debt_col] / assets.where(assets > 0, 1.0), np.nan)
    return pd.Series(ratio, index=df.index, name="ltv")


def liquidity_runway(
    df: pd.DataFrame,
    lookback_months: int = 6,
    cash_col: str = "total_cash",
    outflow_cols: Sequence[str] = ("general_expenses", "property_outflows"),
) -> pd.Series:
    """
    Months the household could cover its outflows from cash.

    Liquidity runway = cash / rolling_average(outflows, lookback_months)

    Args:
        df: Ledger frame from ``ForecastResults.to_frame()``
        lookback_months: Window of the rolling outflow average
        cash_col: Column with available cash
        outflow_cols: Columns summed into monthly outflows

    Returns:
        Series with runway in months (inf when there are no outflows)
    """
    outflows = df[list(outflow_cols)].sum(axis=1)
    rolling_avg = outflows.rolling(window=lookback_months, min_periods=1).mean()
    runway = np.where(
        rolling_avg > 0,
        df[cash_col] / rolling_avg.where(rolling_avg > 0, 1.0),
        np.inf,
    )
    return pd.Series(runway, index=df.index, name="liquidity_runway_months")


def equity_by_property(results: ForecastResults) -> pd.DataFrame:
    """
    Monthly equity (value minus loan) for each property.

    Returns:
        DataFrame with one column per property id
    """
    data = {
        pid: [
            e.property_details[pid].property_value - e.property_details[pid].loan_balance
            for e in results.ledger
        ]
        for pid in results.property_ids
    }
    return pd.DataFrame(data, index=results.to_frame().index, columns=list(results.property_ids))
