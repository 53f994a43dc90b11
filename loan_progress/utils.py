"""Utility functions for the loan progress engine.

This module provides helpers for parsing user input into Python data types,
for rounding money to whole currency units and for handling dates, including
adding months and normalizing year-month strings to ``datetime.date``
instances.
"""

from __future__ import annotations

from datetime import date
from decimal import Context, Decimal, ROUND_HALF_UP, getcontext
import calendar
from typing import Optional, Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

WHOLE_UNIT = Decimal("1")
PERCENT_PLACES = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Return ``value`` as a ``Decimal``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")`` and
    not its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def money(value: Number) -> Decimal:
    """Round an amount half-up to the nearest whole currency unit.

    Amounts with more integer digits than the context precision are rounded
    in a wider context so that quantizing never overflows the coefficient.
    """
    value = to_decimal(value)
    digits = max(getcontext().prec, value.adjusted() + 2)
    return value.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP, context=Context(prec=digits))


def percent(part: Decimal, whole: Decimal) -> Decimal:
    """Return ``part`` as a percentage of ``whole`` capped to [0, 100]."""
    if whole <= 0:
        return Decimal("0.00")
    value = part * Decimal(100) / whole
    value = min(max(value, Decimal(0)), Decimal(100))
    return value.quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Parameters
    ----------
    ym: str
        A string in the form ``"YYYY-MM"``. The day component, if present,
        will be ignored.

    Returns
    -------
    date
        A date object representing the first day of the specified month.

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        return date(year, month, 1)
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` (or ``YYYY-MM``) into a date; empty gives ``None``."""
    if value is None or isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid date value: {value!r}")
    value = value.strip()
    if not value:
        return None
    parts = value.split("-")
    if len(parts) == 2:
        return parse_year_month(value)
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except ArithmeticError as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result
