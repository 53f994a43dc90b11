"""Command-line interface for the loan progress engine.

This module uses the ``click`` library to implement a multi-command
interface. Users can print the standard EMI, compute the amortization
schedule replaying actual payments, or view progress and savings metrics.
Results can be printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .analytics import compute_progress_metrics
from .data_models import LoanTerms
from .engine import build_amortization_schedule, compute_standard_emi
from .formatter import (
    export_schedule_csv,
    metrics_to_dict,
    print_progress,
    print_schedule,
    serialize_schedule,
)
from .ledger import PaymentLedger, recurring_prepayment
from .utils import decimal_from_str, parse_year_month


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000). Returns an exact ``Decimal``.
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_month_amounts(values: Tuple[str, ...], option: str) -> List[Tuple[int, Decimal]]:
    """Parse ``MONTH:AMOUNT`` strings into (month, amount) pairs."""
    pairs: List[Tuple[int, Decimal]] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 2:
            raise click.BadParameter(f"{option} must be in MONTH:AMOUNT format; got {item}")
        month_str, amount_str = parts
        try:
            month = int(month_str)
        except ValueError:
            raise click.BadParameter(f"Invalid month in {option}: {month_str}")
        if month < 1:
            raise click.BadParameter(f"Month must be 1 or greater in {option}; got {month}")
        pairs.append((month, parse_amount(amount_str)))
    return pairs


def load_ledger_rows(path: Path) -> List[Dict[str, Any]]:
    """Read ledger rows from a JSON list or a CSV file with a header row."""
    if not path.exists():
        raise click.BadParameter(f"Ledger file not found: {path}")
    suffix = path.suffix.lower()
    with path.open("r", encoding="utf-8", newline="") as f:
        if suffix == ".json":
            data = json.load(f)
            if isinstance(data, dict):
                data = data.get("ledger", [])
            if not isinstance(data, list):
                raise click.BadParameter("Ledger JSON must be a list of rows")
            return data
        if suffix == ".csv":
            return list(csv.DictReader(f))
    raise click.BadParameter("Unsupported ledger format; use .json or .csv")


def build_terms_from_options(
    principal: str,
    rate: float,
    tenure: int,
    emi: Optional[str] = None,
    start_date: Optional[str] = None,
) -> LoanTerms:
    principal_value = parse_amount(principal)
    if principal_value <= 0:
        raise click.BadParameter("Principal must be positive")
    if tenure < 1:
        raise click.BadParameter("Tenure must be at least one month")
    if rate < 0:
        raise click.BadParameter("Interest rate cannot be negative")
    override = None
    if emi:
        override = parse_amount(emi)
        if override <= 0:
            raise click.BadParameter("EMI override must be positive")
    start_dt = None
    if start_date:
        try:
            start_dt = parse_year_month(start_date)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    return LoanTerms(
        principal=principal_value,
        tenure_months=tenure,
        annual_rate_percent=decimal_from_str(str(rate)),
        override_emi=override,
        start_date=start_dt,
    )


def build_ledger_from_options(
    tenure: int,
    payment: Tuple[str, ...] = (),
    prepayment: Tuple[str, ...] = (),
    lumpsum: Tuple[str, ...] = (),
    monthly_prepayment: Optional[str] = None,
    ledger_file: Optional[str] = None,
) -> PaymentLedger:
    rows: Dict[int, Dict[str, Any]] = {}
    if ledger_file:
        try:
            for row in PaymentLedger.from_rows(load_ledger_rows(Path(ledger_file))).values():
                rows[row.month] = {
                    "month": row.month,
                    "date": row.date,
                    "emi_paid": row.emi_paid,
                    "prepayment": row.prepayment,
                    "lumpsum": row.lumpsum,
                }
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    for key, values, option in (
        ("emi_paid", payment, "--payment"),
        ("prepayment", prepayment, "--prepayment"),
        ("lumpsum", lumpsum, "--lumpsum"),
    ):
        for month, amount in parse_month_amounts(values, option):
            rows.setdefault(month, {"month": month})[key] = amount
    try:
        ledger = PaymentLedger.from_rows(rows.values())
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    if monthly_prepayment:
        amount = parse_amount(monthly_prepayment)
        if amount < 0:
            raise click.BadParameter("Monthly prepayment cannot be negative")
        ledger = recurring_prepayment(amount, tenure, base=ledger)
    return ledger


def loan_options(func):
    """Attach the options shared by every command that describes a loan."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount"),
        click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)"),
        click.option("--tenure", "-t", "tenure", required=True, type=int, help="Loan tenure in months"),
        click.option("--emi", "emi", help="Use this installment instead of the computed EMI"),
        click.option("--start-date", "-s", "start_date", help="First installment date (YYYY-MM)"),
        click.option("--verbose", "-v", is_flag=True, help="Log engine details"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def ledger_options(func):
    """Attach the options that describe actual payments."""
    options = [
        click.option("--payment", "payment", multiple=True, help="Installment actually paid in MONTH:AMOUNT format"),
        click.option("--prepayment", "prepayment", multiple=True, help="Prepayment in MONTH:AMOUNT format"),
        click.option("--lumpsum", "lumpsum", multiple=True, help="Lumpsum in MONTH:AMOUNT format"),
        click.option("--monthly-prepayment", "monthly_prepayment", help="Prepay the same amount every month"),
        click.option("--ledger", "ledger_file", help="Ledger file (.json list or .csv with a header row)"),
        click.option("--as-of", "as_of", type=int, help="Only replay the first N months"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@click.group()
def cli() -> None:
    """Track a loan's progress against its standard amortization."""
    pass


@cli.command()
@loan_options
def emi(principal: str, rate: float, tenure: int, emi: Optional[str], start_date: Optional[str], verbose: bool) -> None:
    """Print the standard monthly installment."""
    _configure_logging(verbose)
    terms = build_terms_from_options(principal, rate, tenure, emi, start_date)
    click.echo(f"Standard EMI: {compute_standard_emi(terms)}")


@cli.command()
@loan_options
@ledger_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: float,
    tenure: int,
    emi: Optional[str],
    start_date: Optional[str],
    verbose: bool,
    payment: Tuple[str, ...],
    prepayment: Tuple[str, ...],
    lumpsum: Tuple[str, ...],
    monthly_prepayment: Optional[str],
    ledger_file: Optional[str],
    as_of: Optional[int],
    output: Optional[str],
) -> None:
    """Compute and print the amortization schedule."""
    _configure_logging(verbose)
    terms = build_terms_from_options(principal, rate, tenure, emi, start_date)
    ledger = build_ledger_from_options(tenure, payment, prepayment, lumpsum, monthly_prepayment, ledger_file)
    entries = build_amortization_schedule(terms, ledger, through_month=as_of)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            data = {"standard_emi": float(compute_standard_emi(terms)), "schedule": serialize_schedule(entries)}
            with path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            click.echo(f"Schedule exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_schedule_csv(path, entries)
            click.echo(f"Schedule exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
    else:
        click.echo(f"Standard EMI: {compute_standard_emi(terms)}")
        print_schedule(entries)


@cli.command()
@loan_options
@ledger_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def progress(
    principal: str,
    rate: float,
    tenure: int,
    emi: Optional[str],
    start_date: Optional[str],
    verbose: bool,
    payment: Tuple[str, ...],
    prepayment: Tuple[str, ...],
    lumpsum: Tuple[str, ...],
    monthly_prepayment: Optional[str],
    ledger_file: Optional[str],
    as_of: Optional[int],
    output: Optional[str],
) -> None:
    """Compute and print progress and savings metrics."""
    _configure_logging(verbose)
    terms = build_terms_from_options(principal, rate, tenure, emi, start_date)
    ledger = build_ledger_from_options(tenure, payment, prepayment, lumpsum, monthly_prepayment, ledger_file)
    entries = build_amortization_schedule(terms, ledger, through_month=as_of)
    metrics = compute_progress_metrics(entries, terms, compute_standard_emi(terms))
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Progress export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"progress": metrics_to_dict(metrics)}, f, indent=2)
        click.echo(f"Progress exported to {path}")
    else:
        print_progress(metrics)


if __name__ == "__main__":
    cli()
