"""Sparse payment ledger read by the simulator.

The ledger maps a month number to the :class:`PaymentRecord` entered for it.
Months without a record fall back to the standard installment with no extra
payments. The ledger is owned by whoever edits it; the engine only reads it.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, Mapping, NamedTuple, Optional

from .data_models import PaymentRecord
from .utils import decimal_from_str, money, parse_date


class EffectivePayment(NamedTuple):
    """The amounts actually applied in a month after defaults are filled in."""

    emi_paid: Decimal
    prepayment: Decimal
    lumpsum: Decimal


class PaymentLedger(Mapping[int, PaymentRecord]):
    """Read-only month -> record mapping."""

    def __init__(self, records: Optional[Mapping[int, PaymentRecord]] = None) -> None:
        self._records: Dict[int, PaymentRecord] = dict(records or {})

    @classmethod
    def from_records(cls, records: Iterable[PaymentRecord]) -> "PaymentLedger":
        # later records for a month replace earlier ones
        return cls({record.month: record for record in records})

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]]) -> "PaymentLedger":
        """Build a ledger from plain dict rows (JSON, CSV or database).

        Recognised keys are ``month``, ``date``, ``emi_paid``, ``prepayment``
        and ``lumpsum``. Empty strings count as unset.
        """
        return cls.from_records(record_from_row(row) for row in rows)

    def __getitem__(self, month: int) -> PaymentRecord:
        return self._records[month]

    def __iter__(self) -> Iterator[int]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"PaymentLedger({sorted(self._records)})"

    def lookup(self, month: int) -> Optional[PaymentRecord]:
        return self._records.get(month)

    def resolve(self, month: int, standard_emi: Decimal) -> EffectivePayment:
        """Return the amounts paid in ``month``, defaulting missing values."""
        record = self.lookup(month)
        if record is None:
            return EffectivePayment(standard_emi, Decimal("0"), Decimal("0"))
        emi_paid = standard_emi if record.emi_paid is None else money(record.emi_paid)
        return EffectivePayment(emi_paid, money(record.prepayment), money(record.lumpsum))


EMPTY_LEDGER = PaymentLedger()


def _optional_amount(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return decimal_from_str(str(value))


def record_from_row(row: Mapping[str, Any]) -> PaymentRecord:
    """Convert a dict row into a :class:`PaymentRecord`.

    Raises ``ValueError`` for a missing or non-positive month, negative
    payments or unparseable amounts.
    """
    try:
        month = int(row["month"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Ledger row needs an integer month: {dict(row)}") from exc
    if month < 1:
        raise ValueError(f"Ledger month must be 1 or greater; got {month}")
    prepayment = _optional_amount(row.get("prepayment")) or Decimal("0")
    lumpsum = _optional_amount(row.get("lumpsum")) or Decimal("0")
    if prepayment < 0 or lumpsum < 0:
        raise ValueError(f"Extra payments cannot be negative (month {month})")
    emi_paid = _optional_amount(row.get("emi_paid"))
    if emi_paid is not None and emi_paid < 0:
        raise ValueError(f"Installment paid cannot be negative (month {month})")
    raw_date = row.get("date")
    return PaymentRecord(
        month=month,
        date=parse_date(raw_date) if raw_date else None,
        emi_paid=emi_paid,
        prepayment=prepayment,
        lumpsum=lumpsum,
    )


def record_to_row(record: PaymentRecord) -> Dict[str, Any]:
    """Convert a record into a JSON-serialisable dict."""
    return {
        "month": record.month,
        "date": record.date.isoformat() if record.date else None,
        "emi_paid": float(record.emi_paid) if record.emi_paid is not None else None,
        "prepayment": float(record.prepayment),
        "lumpsum": float(record.lumpsum),
    }


def recurring_prepayment(amount: Decimal, months: int, base: Optional[PaymentLedger] = None) -> PaymentLedger:
    """Return a ledger that prepays ``amount`` every month up to ``months``.

    Months already present in ``base`` keep their record and gain the
    recurring prepayment on top of their own.
    """
    records: Dict[int, PaymentRecord] = dict(base or {})
    for month in range(1, months + 1):
        existing = records.get(month)
        if existing is None:
            records[month] = PaymentRecord(month=month, prepayment=amount)
        else:
            records[month] = PaymentRecord(
                month=month,
                date=existing.date,
                emi_paid=existing.emi_paid,
                prepayment=existing.prepayment + amount,
                lumpsum=existing.lumpsum,
            )
    return PaymentLedger(records)
