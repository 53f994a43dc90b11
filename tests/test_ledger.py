from datetime import date
from decimal import Decimal

import pytest

from loan_progress.data_models import PaymentRecord
from loan_progress.ledger import (
    PaymentLedger,
    record_from_row,
    record_to_row,
    recurring_prepayment,
)


def test_missing_month_uses_standard_installment():
    ledger = PaymentLedger()
    assert ledger.lookup(4) is None
    assert ledger.resolve(4, Decimal("87916")) == (Decimal("87916"), Decimal("0"), Decimal("0"))


def test_record_without_emi_defaults_to_standard():
    ledger = PaymentLedger.from_records([PaymentRecord(month=2, prepayment=Decimal("1500.4"))])
    paid = ledger.resolve(2, Decimal("87916"))
    assert paid.emi_paid == Decimal("87916")
    assert paid.prepayment == Decimal("1500")
    assert paid.lumpsum == 0


def test_record_overrides_installment():
    ledger = PaymentLedger.from_records([PaymentRecord(month=1, emi_paid=Decimal("70000.5"))])
    assert ledger.resolve(1, Decimal("87916")).emi_paid == Decimal("70001")


def test_from_rows_parses_strings():
    ledger = PaymentLedger.from_rows(
        [
            {"month": "3", "date": "2025-03-05", "emi_paid": "", "prepayment": "1,000", "lumpsum": None},
            {"month": 7, "lumpsum": 25000},
        ]
    )
    assert sorted(ledger) == [3, 7]
    assert ledger[3].date == date(2025, 3, 5)
    assert ledger[3].emi_paid is None
    assert ledger[3].prepayment == Decimal("1000")
    assert ledger[7].lumpsum == Decimal("25000")


@pytest.mark.parametrize(
    "row",
    [
        {},
        {"month": 0},
        {"month": "x"},
        {"month": 2, "prepayment": "-5"},
        {"month": 2, "lumpsum": "abc"},
        {"month": 2, "emi_paid": "-1"},
        {"month": 2, "date": 2025},
    ],
)
def test_invalid_rows_raise_value_error(row):
    with pytest.raises(ValueError):
        record_from_row(row)


def test_record_round_trips_through_row():
    record = PaymentRecord(month=5, date=date(2025, 5, 1), emi_paid=Decimal("90000"), lumpsum=Decimal("10"))
    assert record_from_row(record_to_row(record)) == record


def test_recurring_prepayment_adds_to_existing_records():
    base = PaymentLedger.from_records([PaymentRecord(month=2, emi_paid=Decimal("80000"), prepayment=Decimal("100"))])
    ledger = recurring_prepayment(Decimal("500"), 3, base=base)
    assert len(ledger) == 3
    assert ledger[1].prepayment == Decimal("500")
    assert ledger[2].prepayment == Decimal("600")
    assert ledger[2].emi_paid == Decimal("80000")
    assert len(base) == 1
