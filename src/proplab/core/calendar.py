"""
Month-granular calendar utilities for PropLab.

Every date in a forecast is a (month, year) pair. Computation never compares
pairs directly: they are normalized to an absolute month index
``year * 12 + month`` and all ordering and arithmetic happens on that integer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import numpy as np
import pandas as pd


@dataclass(frozen=True, order=True)
class DateSelection:
    """
    A calendar month.

    Attributes:
        year: Calendar year
        month: Zero-based month (0 = January, 11 = December)
    """

    year: int
    month: int

    @property
    def index(self) -> int:
        """Absolute month index (``year * 12 + month``)."""
        return month_index(self.month, self.year)

    @classmethod
    def from_index(cls, idx: int) -> DateSelection:
        """Inverse of :attr:`index`."""
        year, month = divmod(int(idx), 12)
        return cls(year=year, month=month)

    @classmethod
    def from_date(cls, value: date) -> DateSelection:
        """Month containing a ``datetime.date``."""
        return cls(year=value.year, month=value.month - 1)

    @classmethod
    def parse(cls, value: str) -> DateSelection:
        """
        Parse a ``"YYYY-MM"`` string (1-based month).

        Raises:
            ValueError: If the string is not a valid year-month
        """
        try:
            year_s, month_s = value.strip().split("-", 1)
            year, month = int(year_s), int(month_s)
        except ValueError as exc:
            raise ValueError(f"invalid year-month '{value}', expected YYYY-MM") from exc
        if not 1 <= month <= 12:
            raise ValueError(f"invalid month in '{value}', expected 01..12")
        return cls(year=year, month=month - 1)

    def shift(self, months: int) -> DateSelection:
        return DateSelection.from_index(self.index + months)

    def label(self) -> str:
        """Display label ``MM/YYYY``."""
        return f"{self.month + 1:02d}/{self.year}"

    def isoformat(self) -> str:
        return f"{self.year:04d}-{self.month + 1:02d}"

    def to_period(self) -> pd.Period:
        return pd.Period(year=self.year, month=self.month + 1, freq="M")

    def to_dict(self) -> dict[str, int]:
        return {"month": self.month, "year": self.year}

    def __str__(self) -> str:
        return self.isoformat()


def month_index(month: int, year: int) -> int:
    """Absolute month index for a zero-based month and a year."""
    return int(year) * 12 + int(month)


def months_between(start: DateSelection, end: DateSelection) -> int:
    """Signed number of months from ``start`` to ``end``."""
    return end.index - start.index


def current_month(today: date | None = None) -> DateSelection:
    """The calendar month of ``today`` (defaults to the local date)."""
    return DateSelection.from_date(today or date.today())


def month_range(start: DateSelection, months: int) -> np.ndarray:
    """
    Consecutive calendar months as ``datetime64[M]`` values.

    **Example:**
        ```python
        month_range(DateSelection(2026, 0), 3)
        # array(['2026-01', '2026-02', '2026-03'], dtype='datetime64[M]')
        ```
    """
    s = np.datetime64(start.isoformat(), "M")
    return s + np.arange(months).astype("timedelta64[M]")
