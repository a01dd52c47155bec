"""
Command-line interface for PropLab.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from proplab import __version__
from proplab.core.calendar import DateSelection
from proplab.core.config_loader import ConfigLoadError, load_config
from proplab.core.engine import run_forecast
from proplab.core.errors import ConfigError
from proplab.core.results import NumpyEncoder, export_ledger_csv, export_run_json
from proplab.core.validation import validate_config

EXAMPLE_CONFIG = {
    "assumptions": {
        "annual_salary": 80000.0,
        "initial_cash": 150000.0,
        "general_monthly_expenses": 2000.0,
        "projection_years": 10,
    },
    "start": "2026-01",
    "properties": [
        {
            "id": "flat",
            "name": "City Flat",
            "purchase_price": 500000.0,
            "purchase_date": {"month": 0, "year": 2026},
            "loan_ratio": 80.0,
            "interest_rate": 6.5,
            "loan_term": 30,
            "annual_growth": 4.0,
            "rentals": [
                {
                    "monthly_amount": 2000.0,
                    "start_date": {"month": 1, "year": 2026},
                    "end_date": {"month": 11, "year": 2030},
                }
            ],
            "offsets": [
                {
                    "initial_amount": 10000.0,
                    "start_date": {"month": 0, "year": 2026},
                    "end_date": {"month": 11, "year": 2055},
                    "use_for_repayments": True,
                }
            ],
            "expenses": [
                {
                    "description": "Rates",
                    "amount": 500.0,
                    "frequency": "quarterly",
                    "start_date": {"month": 0, "year": 2026},
                }
            ],
            "sale": {
                "sale_date": {"month": 11, "year": 2035},
                "selling_costs": 3.0,
            },
        }
    ],
}


def _print_summary(results) -> None:
    """Print the forecast summary to stdout."""
    summary = results.summary
    ledger = results.ledger
    if ledger:
        print(f"Forecast {ledger[0].label} - {ledger[-1].label} ({len(ledger)} months)")
    else:
        print("Forecast has no months")
    print(f"  Final net position:  {summary.final_net_position:>16,.0f}")
    print(f"  Final total equity:  {summary.final_total_equity:>16,.0f}")
    print(f"  Final total cash:    {summary.final_total_cash:>16,.0f}")
    print(f"  Peak debt:           {summary.peak_debt:>16,.0f}")
    print(f"  Total interest paid: {summary.total_interest_paid:>16,.0f}")
    print(f"  Properties sold:     {summary.properties_sold:>16d}")


def cmd_example(_) -> int:
    """Print a working example configuration."""
    json.dump(EXAMPLE_CONFIG, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


def cmd_run(args) -> int:
    """Run a forecast and optionally export the results."""
    try:
        config = load_config(args.input)
        start = DateSelection.parse(args.start) if args.start else None
        results = run_forecast(config, now=start)
    except (ConfigLoadError, ConfigError, FileNotFoundError, ValueError) as e:
        print(f"Error running forecast: {e}", file=sys.stderr)
        return 1

    if args.output:
        export_run_json(args.output, config, results)
    if args.csv:
        export_ledger_csv(args.csv, results)

    if args.json:
        json.dump(results.summary.to_dict(), sys.stdout, indent=2, cls=NumpyEncoder)
        sys.stdout.write("\n")
    else:
        _print_summary(results)
    return 0


def cmd_validate(args) -> int:
    """Validate a configuration file."""
    try:
        config = load_config(args.input)
    except (ConfigLoadError, FileNotFoundError) as e:
        print(f"Validation failed: {e}", file=sys.stderr)
        return 1

    report = validate_config(config)
    if args.format == "json":
        json.dump(report.to_dict(), sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        print(report)
    return 1 if report.has_errors() else 0


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="proplab", description="PropLab - Property portfolio forecasting"
    )

    # Version argument
    parser.add_argument("--version", action="version", version=f"PropLab {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Log progress (-vv for events)"
    )

    subparsers = parser.add_subparsers(dest="cmd", required=True, help="Available commands")

    # Example command
    example_parser = subparsers.add_parser(
        "example", help="Print an example configuration JSON"
    )
    example_parser.set_defaults(func=cmd_example)

    # Run command
    run_parser = subparsers.add_parser("run", help="Run a forecast configuration")
    run_parser.add_argument(
        "-i", "--input", required=True, help="Input configuration (YAML or JSON)"
    )
    run_parser.add_argument("-o", "--output", help="Write full results JSON here")
    run_parser.add_argument("--csv", help="Write the monthly ledger CSV here")
    run_parser.add_argument(
        "--start",
        default=None,
        help="First projected month (YYYY-MM); defaults to the config or today",
    )
    run_parser.add_argument(
        "--json", action="store_true", help="Print the summary as JSON"
    )
    run_parser.set_defaults(func=cmd_run)

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a configuration")
    validate_parser.add_argument(
        "-i", "--input", required=True, help="Input configuration (YAML or JSON)"
    )
    validate_parser.add_argument(
        "--format", choices=["human", "json"], default="human", help="Output format"
    )
    validate_parser.set_defaults(func=cmd_validate)

    # Parse arguments and execute
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose > 1 else logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
        )
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
