"""Progress and savings analysis.

Given a schedule produced by :func:`loan_progress.engine.simulate`, this module
projects the rest of the loan under standard installments only and compares
the result to a baseline in which nothing beyond the standard EMI is ever
paid.
"""

from __future__ import annotations

import dataclasses
import logging
from decimal import Decimal
from typing import Sequence

from .data_models import LoanTerms, ProgressMetrics, ScheduleEntry
from .engine import simulate
from .ledger import EMPTY_LEDGER
from .utils import money, percent

logger = logging.getLogger(__name__)

ZERO = Decimal(0)


def baseline_total_interest(terms: LoanTerms, standard_emi: Decimal) -> Decimal:
    """Interest paid over the full tenure with standard installments only."""
    return standard_emi * terms.tenure_months - money(terms.principal)


def project_future_interest(balance: Decimal, months: int, terms: LoanTerms, standard_emi: Decimal) -> Decimal:
    """Interest still due if ``balance`` is repaid with the standard EMI.

    The projection runs for at most ``months`` months and stops early once
    an installment no longer reduces the principal.
    """
    if balance <= 0 or months <= 0:
        return ZERO
    remainder = dataclasses.replace(terms, principal=balance, tenure_months=months, start_date=None)
    projected = ZERO
    for entry in simulate(remainder, EMPTY_LEDGER, standard_emi, halt_when_stalled=True):
        projected = entry.cumulative_interest
    return projected


def _identity_metrics(terms: LoanTerms, standard_emi: Decimal) -> ProgressMetrics:
    return ProgressMetrics(
        standard_emi=standard_emi,
        months_elapsed=0,
        remaining_balance=money(terms.principal),
        remaining_tenure=terms.tenure_months,
        total_paid=ZERO,
        interest_paid=ZERO,
        principal_paid=ZERO,
        payoff_percent=Decimal("0.00"),
        principal_paid_percent=Decimal("0.00"),
        interest_paid_percent=Decimal("0.00"),
        baseline_total_interest=baseline_total_interest(terms, standard_emi),
        projected_future_interest=ZERO,
        interest_saved=ZERO,
        months_saved=0,
    )


def analyze(schedule: Sequence[ScheduleEntry], terms: LoanTerms, standard_emi: Decimal) -> ProgressMetrics:
    """Reduce ``schedule`` to progress metrics. The schedule is not modified."""
    if not schedule:
        return _identity_metrics(terms, standard_emi)

    last = schedule[-1]
    elapsed = len(schedule)
    principal = money(terms.principal)
    remaining_balance = last.ending_balance
    closed = remaining_balance <= 0
    remaining_tenure = 0 if closed else max(terms.tenure_months - elapsed, 0)

    baseline = baseline_total_interest(terms, standard_emi)
    total_payable = standard_emi * terms.tenure_months
    projected = project_future_interest(remaining_balance, remaining_tenure, terms, standard_emi)
    interest_saved = max(ZERO, baseline - (last.cumulative_interest + projected))
    months_saved = max(terms.tenure_months - elapsed, 0) if closed else 0

    if closed:
        logger.debug("Loan closed after %d months; %d months saved", elapsed, months_saved)

    return ProgressMetrics(
        standard_emi=standard_emi,
        months_elapsed=elapsed,
        remaining_balance=remaining_balance,
        remaining_tenure=remaining_tenure,
        total_paid=last.cumulative_total_paid,
        interest_paid=last.cumulative_interest,
        principal_paid=last.cumulative_principal,
        payoff_percent=Decimal("100.00") if closed else percent(last.cumulative_total_paid, total_payable),
        principal_paid_percent=percent(last.cumulative_principal, principal),
        interest_paid_percent=percent(last.cumulative_interest, baseline),
        baseline_total_interest=baseline,
        projected_future_interest=projected,
        interest_saved=interest_saved,
        months_saved=months_saved,
    )


def compute_progress_metrics(
    schedule: Sequence[ScheduleEntry], terms: LoanTerms, standard_emi: Decimal
) -> ProgressMetrics:
    """Public entry point; see :func:`analyze`."""
    return analyze(schedule, terms, standard_emi)
