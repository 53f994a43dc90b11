"""Output helpers for the loan progress engine.

This module renders schedules and progress metrics as simple tab separated
text tables, and converts them into JSON-serialisable dictionaries for the
CLI exports and the web API.
"""

from __future__ import annotations

import csv
from dataclasses import asdict
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .data_models import ProgressMetrics, ScheduleEntry

SCHEDULE_COLUMNS = [
    "month",
    "date",
    "emi",
    "interest_portion",
    "principal_portion",
    "prepayment",
    "lumpsum",
    "ending_balance",
    "cumulative_total_paid",
    "cumulative_interest",
    "cumulative_principal",
    "actual_principal_reduction",
]


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def entry_to_dict(entry: ScheduleEntry) -> Dict[str, Any]:
    return {key: _plain(value) for key, value in asdict(entry).items()}


def metrics_to_dict(metrics: ProgressMetrics) -> Dict[str, Any]:
    return {key: _plain(value) for key, value in asdict(metrics).items()}


def serialize_schedule(schedule: Iterable[ScheduleEntry]) -> List[Dict[str, Any]]:
    """Convert schedule entries into JSON-serialisable dictionaries."""
    return [entry_to_dict(entry) for entry in schedule]


def export_schedule_csv(path: Path, schedule: Iterable[ScheduleEntry]) -> None:
    """Write the schedule to ``path`` as CSV, one row per month."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=SCHEDULE_COLUMNS)
        writer.writeheader()
        for row in serialize_schedule(schedule):
            writer.writerow(row)


def print_progress(metrics: ProgressMetrics) -> None:
    """Print progress metrics in a human-readable format."""
    print("Progress")
    print("-" * 72)
    print(f"Standard EMI       : {metrics.standard_emi}")
    print(f"Months elapsed     : {metrics.months_elapsed}")
    print(f"Remaining balance  : {metrics.remaining_balance}")
    print(f"Remaining tenure   : {metrics.remaining_tenure} months")
    print(f"Total paid         : {metrics.total_paid}")
    print(f"Interest paid      : {metrics.interest_paid}")
    print(f"Principal paid     : {metrics.principal_paid}")
    print(f"Loan paid off      : {metrics.payoff_percent}%")
    print(f"Principal paid     : {metrics.principal_paid_percent}%")
    print(f"Interest paid      : {metrics.interest_paid_percent}% of baseline")
    print(f"Baseline interest  : {metrics.baseline_total_interest}")
    if metrics.projected_future_interest:
        print(f"Projected interest : {metrics.projected_future_interest}")
    print(f"Interest saved     : {metrics.interest_saved}")
    if metrics.months_saved:
        print(f"Tenure reduction   : {metrics.months_saved} months")
    print("-" * 72)


def print_schedule(schedule: Iterable[ScheduleEntry]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = [
        "Month",
        "Date",
        "EMI",
        "Interest",
        "Principal",
        "Prepay",
        "Lumpsum",
        "EndBal",
        "Paid",
    ]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.month),
            entry.date.strftime("%Y-%m") if entry.date else "-",
            str(entry.emi),
            str(entry.interest_portion),
            str(entry.principal_portion),
            str(entry.prepayment),
            str(entry.lumpsum),
            str(entry.ending_balance),
            str(entry.cumulative_total_paid),
        ]
        print("\t".join(row))
