"""
Results and output structures for PropLab.
"""

from __future__ import annotations

import csv
import json
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from .calendar import DateSelection
from .events import Event

if TYPE_CHECKING:
    from .specs import ForecastConfig


@dataclass(frozen=True)
class PropertyMonthDetail:
    """
    One property's figures for one month.

    Balances are the values after the month's events. ``offset_balance`` is the
    sum of all of the property's offset accounts.
    """

    principal_paid: float = 0.0
    interest_paid: float = 0.0
    loan_balance: float = 0.0
    offset_balance: float = 0.0
    property_value: float = 0.0
    phase: str = "unpurchased"


@dataclass(frozen=True)
class MonthlyLedgerEntry:
    """
    Complete financial snapshot for one projected month.

    Cash, debt, asset and net position figures are rounded to whole currency
    units; ``total_cash`` and ``net_position`` are derived from the rounded
    components so the ledger identities hold exactly.
    """

    month: int
    date: DateSelection
    salary: float
    rental_income: float
    general_expenses: float
    property_outflows: float
    cash_on_hand: float
    total_cash: float
    total_debt: float
    total_assets: float
    net_position: float
    total_offset_balance: float
    property_details: dict[str, PropertyMonthDetail] = field(default_factory=dict)

    @property
    def label(self) -> str:
        """Display label ``MM/YYYY``."""
        return self.date.label()

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "date": self.label,
            "salary": self.salary,
            "rental_income": self.rental_income,
            "general_expenses": self.general_expenses,
            "property_outflows": self.property_outflows,
            "cash_on_hand": self.cash_on_hand,
            "total_cash": self.total_cash,
            "total_debt": self.total_debt,
            "total_assets": self.total_assets,
            "net_position": self.net_position,
            "total_offset_balance": self.total_offset_balance,
            "property_details": {
                pid: asdict(detail) for pid, detail in self.property_details.items()
            },
        }


@dataclass(frozen=True)
class SummaryMetrics:
    """Terminal and aggregate figures of a forecast."""

    final_net_position: float
    final_total_equity: float
    final_total_cash: float
    peak_debt: float
    total_interest_paid: float
    properties_sold: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# Columns summed when aggregating to coarser periods; every other numeric
# column is a balance and keeps the last value of the period.
FLOW_COLUMNS = ("salary", "rental_income", "general_expenses", "property_outflows")
STOCK_COLUMNS = (
    "cash_on_hand",
    "total_cash",
    "total_offset_balance",
    "total_assets",
    "total_debt",
    "net_position",
)
DETAIL_COLUMNS = (
    "principal_paid",
    "interest_paid",
    "loan_balance",
    "offset_balance",
    "property_value",
    "phase",
)


class ForecastResults:
    """
    Output of one forecast run.

    Holds the ordered ledger, the summary and the event log, and offers
    pandas views of the ledger for analysis.

    Attributes:
        ledger: One entry per projected month, in order
        summary: Terminal metrics
        events: Purchase, growth, sale and offset events in occurrence order
        property_ids: Property ids in configuration order
    """

    def __init__(
        self,
        ledger: list[MonthlyLedgerEntry] | tuple[MonthlyLedgerEntry, ...],
        summary: SummaryMetrics,
        events: list[Event] | None = None,
        property_ids: list[str] | tuple[str, ...] = (),
    ):
        self.ledger = tuple(ledger)
        self.summary = summary
        self.events = list(events or [])
        self.property_ids = tuple(property_ids)

    def __len__(self) -> int:
        return len(self.ledger)

    def _period_index(self) -> pd.PeriodIndex:
        return pd.PeriodIndex([e.date.to_period() for e in self.ledger], freq="M")

    def to_frame(self) -> pd.DataFrame:
        """
        Monthly ledger totals as a DataFrame.

        Returns:
            DataFrame with a monthly PeriodIndex, the 1-based ``month`` column,
            flow columns and balance columns
        """
        columns = ["month", *FLOW_COLUMNS, *STOCK_COLUMNS]
        rows = [{col: getattr(e, col) for col in columns} for e in self.ledger]
        df = pd.DataFrame(rows, columns=columns, index=self._period_index())
        df.index.name = "period"
        return df

    def property_frame(self, property_id: str) -> pd.DataFrame:
        """
        Monthly detail for one property.

        Raises:
            KeyError: If the property is not part of the forecast
        """
        if property_id not in self.property_ids:
            raise KeyError(f"Unknown property id '{property_id}'")
        rows = [asdict(e.property_details[property_id]) for e in self.ledger]
        df = pd.DataFrame(rows, columns=list(DETAIL_COLUMNS), index=self._period_index())
        df.index.name = "period"
        return df

    def to_freq(self, freq: str = "Q") -> pd.DataFrame:
        """
        Aggregate the ledger to a coarser frequency.

        Flow columns are summed; balance columns keep the period's last value.

        Args:
            freq: Period frequency ('Q', 'Y', ...)

        Returns:
            Aggregated DataFrame with PeriodIndex
        """
        df = self.to_frame().drop(columns=["month"])
        if df.empty:
            return df
        how = {col: "sum" for col in FLOW_COLUMNS}
        how.update({col: "last" for col in STOCK_COLUMNS})
        out = df.groupby(df.index.asfreq(freq)).agg(how)
        out.index.name = "period"
        return out[list(df.columns)]

    def quarterly(self) -> pd.DataFrame:
        """Return quarterly aggregated data."""
        return self.to_freq("Q")

    def yearly(self) -> pd.DataFrame:
        """Return yearly aggregated data."""
        return self.to_freq("Y")

    def interest_by_property(self) -> pd.Series:
        """Total interest paid per property over the whole run."""
        totals = {
            pid: float(sum(e.property_details[pid].interest_paid for e in self.ledger))
            for pid in self.property_ids
        }
        return pd.Series(totals, name="interest_paid", dtype=float)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "ledger": [e.to_dict() for e in self.ledger],
            "events": [_event_to_dict(ev) for ev in self.events],
        }


def _event_to_dict(event: Event) -> dict[str, Any]:
    return {
        "t": str(event.t.astype("datetime64[M]")),
        "property_id": event.property_id,
        "kind": event.kind,
        "message": event.message,
        "meta": event.meta or {},
    }


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars, arrays and datetime64."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.datetime64):
            return str(obj)
        elif isinstance(obj, DateSelection):
            return obj.to_dict()
        return super().default(obj)


def _round_floats(value: Any, precision: int) -> Any:
    if isinstance(value, float):
        return round(value, precision)
    if isinstance(value, dict):
        return {k: _round_floats(v, precision) for k, v in value.items()}
    if isinstance(value, list):
        return [_round_floats(v, precision) for v in value]
    return value


def export_run_json(
    path: str,
    config: ForecastConfig,
    results: ForecastResults,
    include_config: bool = True,
    precision: int = 2,
) -> None:
    """
    Export a forecast to a single JSON document.

    The document contains run metadata (configuration fingerprint, first and
    last month), optionally the configuration, the summary, the full ledger
    and the event log.

    Args:
        path: Output file path
        config: The configuration that was run
        results: Results of running ``config``
        include_config: Whether to embed the configuration
        precision: Decimal places kept for floating point values
    """
    ledger = results.ledger
    payload: dict[str, Any] = {
        "meta": {
            "fingerprint": config.fingerprint(),
            "months": len(ledger),
            "first_month": ledger[0].date.isoformat() if ledger else None,
            "last_month": ledger[-1].date.isoformat() if ledger else None,
            "property_ids": list(results.property_ids),
        },
    }
    if include_config:
        payload["config"] = config.to_dict()
    payload.update(_round_floats(results.to_dict(), precision))

    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, cls=NumpyEncoder)


def export_ledger_csv(path: str, results: ForecastResults) -> None:
    """
    Export the ledger to a flat CSV file.

    One row per month with the household totals followed by
    ``<property_id>.<field>`` columns for every property.

    Args:
        path: Output file path
        results: Forecast results
    """
    base = ["month", "date", *FLOW_COLUMNS, *STOCK_COLUMNS]
    detail_fields = [c for c in DETAIL_COLUMNS if c != "phase"]
    fieldnames = base + [
        f"{pid}.{name}" for pid in results.property_ids for name in detail_fields
    ]

    rows = []
    for entry in results.ledger:
        row = {name: getattr(entry, name) for name in base if name != "date"}
        row["date"] = entry.label
        for pid in results.property_ids:
            detail = entry.property_details[pid]
            for name in detail_fields:
                row[f"{pid}.{name}"] = getattr(detail, name)
        rows.append(row)

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
