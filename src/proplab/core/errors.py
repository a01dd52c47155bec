"""
Error and warning classes for PropLab.

This module defines the exception hierarchy raised by configuration loading,
validation and the forecast engine, plus the warning category used for
configuration that is accepted but has no effect on the forecast.
"""

from __future__ import annotations

import warnings


class ConfigError(Exception):
    """
    Base class for configuration problems detected before a forecast runs.

    **Common Causes:**
    - Invalid parameter values (negative amounts, loan ratio above 100%)
    - Impossible timelines (sale before purchase)
    - Duplicate property ids

    A forecast that fails with a ``ConfigError`` never produces a partial ledger.
    """


class ConfigurationError(ConfigError):
    """
    Raised when a forecast configuration cannot be simulated.

    All problems found in one validation pass are reported together.

    Attributes:
        problems: Human-readable description of every problem found
        problem_ids: Ids of the properties involved (empty for global problems)
    """

    def __init__(
        self,
        message: str,
        problems: list[str] | None = None,
        problem_ids: list[str] | None = None,
    ):
        self.problems = problems or []
        self.problem_ids = problem_ids or []
        super().__init__(self._fmt(message))

    def _fmt(self, msg: str) -> str:
        """Format the error message with the individual problems."""
        lines = [msg]
        lines.extend(f"  - {problem}" for problem in self.problems)
        if self.problem_ids:
            preview = ", ".join(self.problem_ids[:10])
            more = (
                f" (+{len(self.problem_ids)-10} more)"
                if len(self.problem_ids) > 10
                else ""
            )
            lines.append(f"problem_ids: [{preview}]{more}")
        return "\n".join(lines)


class SimulationCancelled(RuntimeError):
    """Raised when a forecast run is cancelled through its cancellation token."""

    def __init__(self, month: int):
        self.month = month
        super().__init__(f"Forecast cancelled before month {month}")


class PropLabWarning(UserWarning):
    """Warning for configuration that is valid but inert."""


# Track warnings per property to avoid spam
_warned: set[tuple[str, str]] = set()


def warn_once(
    code: str,
    property_id: str,
    msg: str,
    *,
    category=PropLabWarning,
    seen: set[tuple[str, str]] | None = None,
):
    """
    Warn once per (property_id, code).

    ``seen`` scopes the memory, e.g. to one forecast run. Without it the
    process-wide memory is used, which only :func:`reset_warnings` clears.
    """
    registry = _warned if seen is None else seen
    key = (property_id, code)
    if key not in registry:
        registry.add(key)
        warnings.warn(msg, category, stacklevel=3)


def reset_warnings() -> None:
    """Forget which warnings were emitted through the process-wide memory."""
    _warned.clear()
