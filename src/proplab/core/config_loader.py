"""Utilities for loading forecast configurations from YAML/JSON sources."""

from __future__ import annotations

import json
from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml

from .calendar import DateSelection
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

__all__ = [
    "ConfigLoadError",
    "load_config",
    "config_from_dict",
]


class ConfigLoadError(ValueError):
    """Raised when a configuration document cannot be parsed."""


# camelCase names used by the presentation layer -> canonical names
_ALIASES = {
    "annualSalary": "annual_salary",
    "initialCash": "initial_cash",
    "generalMonthlyExpenses": "general_monthly_expenses",
    "projectionLength": "projection_years",
    "projectionLengthYears": "projection_years",
    "purchasePrice": "purchase_price",
    "purchaseDate": "purchase_date",
    "loanRatio": "loan_ratio",
    "interestRate": "interest_rate",
    "loanTerm": "loan_term",
    "annualGrowth": "annual_growth",
    "monthlyAmount": "monthly_amount",
    "startDate": "start_date",
    "endDate": "end_date",
    "initialAmount": "initial_amount",
    "useForRepayments": "use_for_repayments",
    "saleDate": "sale_date",
    "sellingCosts": "selling_costs",
    "manualSalePrice": "manual_sale_price",
}


def load_config(
    source: str | Path | dict[str, Any], *, format: str | None = None
) -> ForecastConfig:
    """
    Parse a forecast configuration from YAML/JSON/dict.

    Expected layout::

        assumptions: {annual_salary, initial_cash, general_monthly_expenses, projection_years}
        start: "2026-01"            # optional
        properties:
          - id: flat
            name: City flat
            purchase_price: 500000
            purchase_date: {month: 0, year: 2026}
            ...

    Top-level assumption keys are also accepted without the ``assumptions``
    wrapper, and every key may use the camelCase spelling of the UI.

    Raises:
        FileNotFoundError: If ``source`` is a path that does not exist
        ConfigLoadError: If the document is malformed
    """
    mapping, label = _read_source(source, format=format)
    return config_from_dict(mapping, label=label)


def config_from_dict(data: dict[str, Any], *, label: str = "<mapping>") -> ForecastConfig:
    """Build a :class:`ForecastConfig` from an already parsed mapping."""
    data = _normalize_keys(_ensure_dict(data, label))
    raw_assumptions = _ensure_dict(data.get("assumptions"), f"{label}::assumptions")
    if not raw_assumptions:
        raw_assumptions = {
            k: data[k]
            for k in (
                "annual_salary",
                "initial_cash",
                "general_monthly_expenses",
                "projection_years",
            )
            if k in data
        }
    assumptions = _build_assumptions(raw_assumptions, f"{label}::assumptions")

    entries = _ensure_list(data.get("properties"), f"{label}::properties", allow_none=True)
    properties = [
        _build_property(entry, f"{label}::properties[{idx}]", idx)
        for idx, entry in enumerate(entries or [])
    ]
    start = _coerce_month(data.get("start"), f"{label}::start", required=False)
    return ForecastConfig(assumptions=assumptions, properties=properties, start=start)


def _read_source(
    source: str | Path | dict[str, Any], *, format: str | None
) -> tuple[dict[str, Any], str]:
    if isinstance(source, dict):
        return deepcopy(source), "<mapping>"

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(path)

    fmt = (format or path.suffix.lstrip(".")).lower()
    text = path.read_text(encoding="utf-8")
    try:
        if fmt in {"yaml", "yml", ""}:
            data = yaml.safe_load(text)
        elif fmt == "json":
            data = json.loads(text)
        else:
            raise ConfigLoadError(f"Unsupported config format '{fmt}' for {path}")
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigLoadError(f"Could not parse {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigLoadError(f"Config root must be a mapping (source={path})")
    return data, str(path)


def _normalize_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {_ALIASES.get(k, k): _normalize_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize_keys(v) for v in value]
    return value


def _build_assumptions(data: dict[str, Any], ctx: str) -> Assumptions:
    defaults = Assumptions()
    return Assumptions(
        annual_salary=_coerce_number(
            data.get("annual_salary", defaults.annual_salary), f"{ctx}.annual_salary"
        ),
        initial_cash=_coerce_number(
            data.get("initial_cash", defaults.initial_cash), f"{ctx}.initial_cash"
        ),
        general_monthly_expenses=_coerce_number(
            data.get("general_monthly_expenses", defaults.general_monthly_expenses),
            f"{ctx}.general_monthly_expenses",
        ),
        projection_years=_coerce_int(
            data.get("projection_years", defaults.projection_years),
            f"{ctx}.projection_years",
        ),
    )


def _build_property(entry: Any, ctx: str, position: int) -> PropertySpec:
    data = _ensure_dict(entry, ctx)
    pid = data.get("id") or f"property_{position + 1}"
    if not isinstance(pid, str):
        pid = str(pid)
    name = data.get("name") or f"Property {position + 1}"
    if "purchase_price" not in data:
        raise ConfigLoadError(f"{ctx}: 'purchase_price' is required")

    kwargs: dict[str, Any] = {
        "id": pid,
        "name": str(name),
        "purchase_price": _coerce_number(data["purchase_price"], f"{ctx}.purchase_price"),
        "purchase_date": _coerce_month(data.get("purchase_date"), f"{ctx}.purchase_date"),
    }
    for key in ("loan_ratio", "interest_rate", "annual_growth"):
        if key in data:
            kwargs[key] = _coerce_number(data[key], f"{ctx}.{key}")
    if "loan_term" in data:
        kwargs["loan_term"] = _coerce_int(data["loan_term"], f"{ctx}.loan_term")

    kwargs["rentals"] = [
        RentalPeriod(
            monthly_amount=_coerce_number(r.get("monthly_amount"), f"{c}.monthly_amount"),
            start_date=_coerce_month(r.get("start_date"), f"{c}.start_date"),
            end_date=_coerce_month(r.get("end_date"), f"{c}.end_date"),
            id=_optional_id(r.get("id")),
        )
        for c, r in _items(data.get("rentals"), f"{ctx}.rentals")
    ]
    kwargs["offsets"] = [
        OffsetAccount(
            initial_amount=_coerce_number(o.get("initial_amount"), f"{c}.initial_amount"),
            start_date=_coerce_month(o.get("start_date"), f"{c}.start_date"),
            end_date=_coerce_month(o.get("end_date"), f"{c}.end_date"),
            use_for_repayments=_coerce_bool(
                o.get("use_for_repayments", False), f"{c}.use_for_repayments"
            ),
            id=_optional_id(o.get("id")),
        )
        for c, o in _items(data.get("offsets"), f"{ctx}.offsets")
    ]
    kwargs["expenses"] = [
        PropertyExpense(
            description=str(e.get("description", "")),
            amount=_coerce_number(e.get("amount"), f"{c}.amount"),
            frequency=_coerce_frequency(e.get("frequency", "monthly"), f"{c}.frequency"),
            start_date=_coerce_month(e.get("start_date"), f"{c}.start_date"),
            id=_optional_id(e.get("id")),
        )
        for c, e in _items(data.get("expenses"), f"{ctx}.expenses")
    ]

    raw_sale = data.get("sale")
    if raw_sale is not None:
        sale = _ensure_dict(raw_sale, f"{ctx}.sale")
        manual = sale.get("manual_sale_price")
        kwargs["sale"] = SaleEvent(
            sale_date=_coerce_month(sale.get("sale_date"), f"{ctx}.sale.sale_date"),
            selling_costs=_coerce_number(
                sale.get("selling_costs", 0.0), f"{ctx}.sale.selling_costs"
            ),
            manual_sale_price=(
                None
                if manual is None
                else _coerce_number(manual, f"{ctx}.sale.manual_sale_price")
            ),
        )
    return PropertySpec(**kwargs)


def _items(value: Any, ctx: str):
    entries = _ensure_list(value, ctx, allow_none=True) or []
    for idx, entry in enumerate(entries):
        yield f"{ctx}[{idx}]", _ensure_dict(entry, f"{ctx}[{idx}]")


def _optional_id(value: Any) -> str | None:
    return None if value is None else str(value)


def _coerce_month(value: Any, ctx: str, *, required: bool = True) -> DateSelection | None:
    if value is None:
        if required:
            raise ConfigLoadError(f"{ctx}: a month is required")
        return None
    if isinstance(value, DateSelection):
        return value
    if isinstance(value, str):
        try:
            return DateSelection.parse(value)
        except ValueError as exc:
            raise ConfigLoadError(f"{ctx}: {exc}") from exc
    if isinstance(value, dict):
        if "month" not in value or "year" not in value:
            raise ConfigLoadError(f"{ctx}: expected {{month, year}}")
        return DateSelection(
            year=_coerce_int(value["year"], f"{ctx}.year"),
            month=_coerce_int(value["month"], f"{ctx}.month"),
        )
    raise ConfigLoadError(f"{ctx}: expected 'YYYY-MM' or {{month, year}}")


def _coerce_number(value: Any, ctx: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigLoadError(f"{ctx}: expected a number, got {value!r}")
    return float(value)


def _coerce_int(value: Any, ctx: str) -> int:
    if isinstance(value, bool):  # Avoid bool being treated as int
        raise ConfigLoadError(f"{ctx}: expected an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ConfigLoadError(f"{ctx}: expected an integer, got {value!r}")


def _coerce_bool(value: Any, ctx: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigLoadError(f"{ctx}: expected true/false")
    return value


def _coerce_frequency(value: Any, ctx: str) -> ExpenseFrequency:
    try:
        return ExpenseFrequency(str(value).lower())
    except ValueError as exc:
        allowed = ", ".join(f.value for f in ExpenseFrequency)
        raise ConfigLoadError(f"{ctx}: '{value}' is not one of {allowed}") from exc


def _ensure_dict(value: Any, ctx: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigLoadError(f"{ctx}: expected a mapping")
    return deepcopy(value)


def _ensure_list(value: Any, ctx: str, *, allow_none: bool = False) -> list[Any] | None:
    if value is None:
        if allow_none:
            return None
        raise ConfigLoadError(f"{ctx}: expected a list")
    if not isinstance(value, list):
        raise ConfigLoadError(f"{ctx}: expected a list")
    return list(value)
