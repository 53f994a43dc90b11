from decimal import Decimal

from loan_progress.analytics import (
    analyze,
    baseline_total_interest,
    compute_progress_metrics,
    project_future_interest,
)
from loan_progress.data_models import LoanTerms, PaymentRecord
from loan_progress.engine import build_amortization_schedule, compute_standard_emi
from loan_progress.ledger import PaymentLedger


def make_terms(**overrides):
    values = dict(principal=Decimal("1000000"), tenure_months=12, annual_rate_percent=Decimal("10"))
    values.update(overrides)
    return LoanTerms(**values)


def metrics_for(terms, ledger=None, through_month=None):
    schedule = build_amortization_schedule(terms, ledger, through_month)
    return compute_progress_metrics(schedule, terms, compute_standard_emi(terms))


LUMPSUM_LEDGER = PaymentLedger.from_records([PaymentRecord(month=6, lumpsum=Decimal("200000"))])


def test_empty_schedule_returns_identity():
    terms = make_terms()
    metrics = analyze([], terms, Decimal("87916"))
    assert metrics.months_elapsed == 0
    assert metrics.remaining_balance == Decimal("1000000")
    assert metrics.remaining_tenure == 12
    assert metrics.payoff_percent == 0
    assert metrics.interest_saved == 0
    assert metrics.months_saved == 0


def test_baseline_interest():
    assert baseline_total_interest(make_terms(), Decimal("87916")) == Decimal("54992")


def test_full_standard_run_saves_nothing():
    metrics = metrics_for(make_terms())
    assert metrics.months_elapsed == 12
    assert metrics.remaining_tenure == 0
    assert metrics.months_saved == 0
    assert metrics.interest_saved <= 5
    assert metrics.principal_paid_percent >= Decimal("99.99")


def test_lumpsum_saves_months_once_closed():
    metrics = metrics_for(make_terms(), LUMPSUM_LEDGER)
    assert metrics.remaining_balance == 0
    assert metrics.remaining_tenure == 0
    assert metrics.months_saved == 12 - metrics.months_elapsed
    assert metrics.months_saved > 0
    assert metrics.interest_saved > 0
    assert metrics.payoff_percent == Decimal("100.00")
    assert metrics.principal_paid == Decimal("1000000")


def test_partial_progress_does_not_claim_months():
    metrics = metrics_for(make_terms(), LUMPSUM_LEDGER, through_month=6)
    assert metrics.months_elapsed == 6
    assert metrics.remaining_balance > 0
    assert metrics.remaining_tenure == 6
    assert metrics.months_saved == 0
    assert metrics.projected_future_interest > 0
    assert metrics.interest_saved > 0
    assert Decimal(0) < metrics.payoff_percent < Decimal(100)
    assert Decimal(0) < metrics.interest_paid_percent < Decimal(100)


def test_partial_standard_progress_projects_baseline():
    terms = make_terms()
    metrics = metrics_for(terms, through_month=5)
    total = metrics.interest_paid + metrics.projected_future_interest
    assert abs(total - metrics.baseline_total_interest) <= 12
    assert metrics.interest_saved <= 12


def test_projection_stops_when_installment_does_not_cover_interest():
    terms = make_terms(annual_rate_percent=Decimal("24"), override_emi=Decimal("100"))
    assert project_future_interest(Decimal("1000000"), 9, terms, Decimal("100")) == 0


def test_non_amortizing_loan_reports_without_error():
    terms = make_terms(annual_rate_percent=Decimal("24"), override_emi=Decimal("100"))
    metrics = metrics_for(terms, through_month=3)
    assert metrics.remaining_balance == Decimal("1000000")
    assert metrics.remaining_tenure == 9
    assert metrics.projected_future_interest == 0
    assert metrics.interest_saved == 0
    assert metrics.interest_paid_percent == 0
    assert metrics.months_saved == 0


def test_analyze_does_not_modify_schedule():
    terms = make_terms()
    schedule = build_amortization_schedule(terms, LUMPSUM_LEDGER)
    snapshot = list(schedule)
    analyze(schedule, terms, compute_standard_emi(terms))
    assert schedule == snapshot


def test_metrics_are_repeatable():
    terms = make_terms()
    assert metrics_for(terms, LUMPSUM_LEDGER, 8) == metrics_for(terms, LUMPSUM_LEDGER, 8)
