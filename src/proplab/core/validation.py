"""
Validation and reporting utilities for PropLab.

Validation only rejects configuration that would make the forecast arithmetic
ill-defined or the timeline impossible. Plausibility of rates and growth
figures is never second-guessed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from .calendar import DateSelection
from .errors import ConfigurationError, warn_once
from .specs import ExpenseFrequency, ForecastConfig, PropertySpec


@dataclass
class Issue:
    """A single validation finding."""

    code: str
    message: str
    property_id: str | None = None

    def __str__(self) -> str:
        if self.property_id is None:
            return self.message
        return f"[{self.property_id}] {self.message}"


@dataclass
class ValidationReport:
    """
    Structured validation report for a forecast configuration.

    Errors abort a forecast; warnings describe configuration that is accepted
    but can never affect the result.
    """

    errors: list[Issue] = field(default_factory=list)
    warnings: list[Issue] = field(default_factory=list)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def is_valid(self) -> bool:
        """Check if validation passed (no errors, warnings are OK)."""
        return not self.has_errors()

    def get_exit_code(self) -> int:
        """
        Get appropriate CLI exit code.

        Returns:
            0: Valid (no errors)
            1: Errors present
            2: Warnings only
        """
        if self.has_errors():
            return 1
        elif self.has_warnings():
            return 2
        else:
            return 0

    def problem_ids(self) -> list[str]:
        ids: list[str] = []
        for issue in self.errors:
            if issue.property_id is not None and issue.property_id not in ids:
                ids.append(issue.property_id)
        return ids

    def raise_for_errors(self) -> None:
        """
        Raise if the report contains errors.

        Raises:
            ConfigurationError: With every error message and the affected ids
        """
        if not self.has_errors():
            return
        raise ConfigurationError(
            f"Invalid forecast configuration ({len(self.errors)} problem(s))",
            problems=[str(issue) for issue in self.errors],
            problem_ids=self.problem_ids(),
        )

    def emit_warnings(self) -> None:
        """Emit each warning once per property and code for this report."""
        seen: set[tuple[str, str]] = set()
        for issue in self.warnings:
            warn_once(issue.code, issue.property_id or "*", str(issue), seen=seen)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "errors": [str(i) for i in self.errors],
            "warnings": [str(i) for i in self.warnings],
            "problem_ids": self.problem_ids(),
            "is_valid": self.is_valid(),
            "exit_code": self.get_exit_code(),
        }

    def __str__(self) -> str:
        lines = ["Validation passed" if self.is_valid() else "Validation failed"]
        lines.extend(f"error: {issue}" for issue in self.errors)
        lines.extend(f"warning: {issue}" for issue in self.warnings)
        return "\n".join(lines)


def _check_date(report: ValidationReport, value: Any, what: str, pid: str | None):
    if not isinstance(value, DateSelection):
        report.errors.append(Issue("BAD_DATE", f"{what} must be a DateSelection", pid))
        return False
    if not 0 <= value.month <= 11:
        report.errors.append(
            Issue("BAD_MONTH", f"{what} month {value.month} is outside 0..11", pid)
        )
        return False
    return True


def _check_finite(report: ValidationReport, value: float, what: str, pid) -> bool:
    if not math.isfinite(value):
        report.errors.append(Issue("NOT_FINITE", f"{what} must be a finite number ({value})", pid))
        return False
    return True


def _check_non_negative(report: ValidationReport, value: float, what: str, pid):
    if _check_finite(report, value, what, pid) and value < 0:
        report.errors.append(Issue("NEGATIVE", f"{what} must not be negative ({value})", pid))


def _validate_property(
    report: ValidationReport,
    prop: PropertySpec,
    window: tuple[int, int] | None,
) -> None:
    pid = prop.id

    if not math.isfinite(prop.purchase_price) or prop.purchase_price <= 0:
        report.errors.append(
            Issue("PRICE", f"purchase_price must be > 0 ({prop.purchase_price})", pid)
        )
    if not 0 <= prop.loan_ratio <= 100:
        report.errors.append(
            Issue("LOAN_RATIO", f"loan_ratio must be within 0..100 ({prop.loan_ratio})", pid)
        )
    if not math.isfinite(prop.loan_term) or prop.loan_term <= 0:
        report.errors.append(Issue("LOAN_TERM", f"loan_term must be > 0 ({prop.loan_term})", pid))
    _check_non_negative(report, prop.interest_rate, "interest_rate", pid)
    _check_finite(report, prop.annual_growth, "annual_growth", pid)
    purchase_ok = _check_date(report, prop.purchase_date, "purchase_date", pid)

    for i, rental in enumerate(prop.rentals):
        what = f"rentals[{i}]"
        _check_non_negative(report, rental.monthly_amount, f"{what}.monthly_amount", pid)
        if _check_date(report, rental.start_date, f"{what}.start_date", pid) and _check_date(
            report, rental.end_date, f"{what}.end_date", pid
        ):
            if rental.end_date.index < rental.start_date.index:
                report.warnings.append(
                    Issue("RENTAL_EMPTY", f"{what} ends before it starts and never pays", pid)
                )

    for i, account in enumerate(prop.offsets):
        what = f"offsets[{i}]"
        _check_non_negative(report, account.initial_amount, f"{what}.initial_amount", pid)
        start_ok = _check_date(report, account.start_date, f"{what}.start_date", pid)
        end_ok = _check_date(report, account.end_date, f"{what}.end_date", pid)
        if start_ok and purchase_ok and account.start_date.index < prop.purchase_date.index:
            report.warnings.append(
                Issue(
                    "OFFSET_BEFORE_PURCHASE",
                    f"{what} opens before the purchase month and is never funded",
                    pid,
                )
            )
        if start_ok and end_ok and account.end_date.index < account.start_date.index:
            report.warnings.append(
                Issue(
                    "OFFSET_NEVER_RETURNED",
                    f"{what} closes before it opens; its balance is only returned on sale",
                    pid,
                )
            )

    for i, expense in enumerate(prop.expenses):
        what = f"expenses[{i}]"
        _check_non_negative(report, expense.amount, f"{what}.amount", pid)
        _check_date(report, expense.start_date, f"{what}.start_date", pid)
        if not isinstance(expense.frequency, ExpenseFrequency):
            report.errors.append(
                Issue("FREQUENCY", f"{what}.frequency '{expense.frequency}' is unknown", pid)
            )

    if prop.sale is not None:
        sale = prop.sale
        if not 0 <= sale.selling_costs <= 100:
            report.errors.append(
                Issue(
                    "SELLING_COSTS",
                    f"sale.selling_costs must be within 0..100 ({sale.selling_costs})",
                    pid,
                )
            )
        if sale.manual_sale_price is not None:
            _check_non_negative(report, sale.manual_sale_price, "sale.manual_sale_price", pid)
        sale_ok = _check_date(report, sale.sale_date, "sale.sale_date", pid)
        if sale_ok and purchase_ok and sale.sale_date.index < prop.purchase_date.index:
            report.errors.append(
                Issue(
                    "SALE_BEFORE_PURCHASE",
                    f"sale date {sale.sale_date} is before purchase date {prop.purchase_date}",
                    pid,
                )
            )
        elif sale_ok and window is not None:
            first, last = window
            if not first <= sale.sale_date.index <= last:
                report.warnings.append(
                    Issue(
                        "SALE_OUTSIDE_WINDOW",
                        f"sale date {sale.sale_date} is outside the projection and never happens",
                        pid,
                    )
                )

    if purchase_ok and window is not None and prop.purchase_date.index > window[1]:
        report.warnings.append(
            Issue("PURCHASE_AFTER_WINDOW", "purchase happens after the projection ends", pid)
        )


def validate_config(
    config: ForecastConfig, start: DateSelection | None = None
) -> ValidationReport:
    """
    Validate a forecast configuration.

    Args:
        config: Configuration to check
        start: First projected month. Window-dependent warnings (sale or
            purchase outside the projection) are only produced when a start is
            known, either from this argument or from ``config.start``.

    Returns:
        ValidationReport with all errors and warnings
    """
    report = ValidationReport()
    assumptions = config.assumptions

    _check_finite(report, assumptions.initial_cash, "initial_cash", None)
    _check_non_negative(report, assumptions.annual_salary, "annual_salary", None)
    _check_non_negative(
        report, assumptions.general_monthly_expenses, "general_monthly_expenses", None
    )
    _check_non_negative(report, assumptions.projection_years, "projection_years", None)

    start = start or config.start
    window = None
    if (
        start is not None
        and math.isfinite(assumptions.projection_years)
        and _check_date(report, start, "start", None)
    ):
        window = (start.index, start.index + assumptions.months - 1)

    seen: set[str] = set()
    for prop in config.properties:
        if prop.id in seen:
            report.errors.append(Issue("DUPLICATE_ID", "duplicate property id", prop.id))
        seen.add(prop.id)
        _validate_property(report, prop, window)

    return report
