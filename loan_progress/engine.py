"""Core calculation engine for the loan progress tracker.

This module implements the EMI calculator and the month-by-month amortization
simulator. The simulator replays a sparse ledger of actual payments
(installment overrides, prepayments and lumpsums) against a fixed-rate loan
and yields one ``ScheduleEntry`` per month. Every function here is a pure
function of its inputs; nothing is cached between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, Overflow, getcontext
from typing import Iterator, List, Optional

from .data_models import LoanTerms, ScheduleEntry
from .ledger import EMPTY_LEDGER, EffectivePayment, PaymentLedger
from .utils import add_months, money, to_decimal

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Convert an annual percentage rate into a monthly decimal rate."""
    return to_decimal(annual_rate_percent) / Decimal(1200)


def compute_emi(principal: Decimal, annual_rate_percent: Decimal, tenure_months: int) -> Decimal:
    """Return the standard equated monthly installment for a loan.

    The formula is:

        emi = P * r * (1 + r)^n / ((1 + r)^n - 1)

    where ``P`` is the principal, ``r`` is the monthly interest rate and
    ``n`` is the number of installments. When the interest rate is zero the
    installment is simply ``P / n``; the same applies when the rate is so
    small that ``(1 + r)^n`` rounds to exactly 1. When ``(1 + r)^n`` overflows
    the installment tends to ``P * r``. The result is rounded to a whole
    currency unit.
    """
    principal = to_decimal(principal)
    rate = monthly_rate(annual_rate_percent)
    try:
        factor = (1 + rate) ** tenure_months
        if factor == 1:
            return money(principal / Decimal(tenure_months))
        return money(principal * rate * factor / (factor - 1))
    except Overflow:
        return money(principal * rate)


def compute_standard_emi(terms: LoanTerms) -> Decimal:
    """Return the installment used for ``terms``: the override if any."""
    if terms.override_emi is not None:
        return money(terms.override_emi)
    return compute_emi(terms.principal, terms.annual_rate_percent, terms.tenure_months)


@dataclass(frozen=True)
class MonthStep:
    interest_portion: Decimal
    principal_portion: Decimal
    ending_balance: Decimal
    actual_principal_reduction: Decimal


def apply_month(balance: Decimal, rate: Decimal, payment: EffectivePayment) -> MonthStep:
    """Apply one month of interest and payments to ``balance``.

    The installment-driven principal portion is clamped to ``[0, balance]``:
    an installment below the interest due reduces nothing, and an installment
    above the balance simply closes the loan. Extra payments then come off
    the balance, which never drops below zero.
    """
    interest = money(balance * rate)
    principal_portion = min(max(payment.emi_paid - interest, Decimal(0)), balance)
    after_emi = balance - principal_portion
    ending = max(Decimal(0), after_emi - payment.prepayment - payment.lumpsum)
    return MonthStep(
        interest_portion=interest,
        principal_portion=principal_portion,
        ending_balance=ending,
        actual_principal_reduction=balance - ending,
    )


def _entry_date(terms: LoanTerms, month: int, record_date: Optional[date]) -> Optional[date]:
    if record_date is not None:
        return record_date
    if terms.start_date is not None:
        return add_months(terms.start_date, month - 1)
    return None


def simulate(
    terms: LoanTerms,
    ledger: PaymentLedger,
    standard_emi: Decimal,
    through_month: Optional[int] = None,
    halt_when_stalled: bool = False,
) -> Iterator[ScheduleEntry]:
    """Yield the schedule for ``terms`` month by month.

    Parameters
    ----------
    terms: LoanTerms
        The loan. ``principal`` is the opening balance.
    ledger: PaymentLedger
        Payments actually made. Months missing from the ledger pay
        ``standard_emi`` and nothing extra.
    standard_emi: Decimal
        The installment assumed when the ledger has no override.
    through_month: int, optional
        Stop after this many months even if the tenure runs longer.
    halt_when_stalled: bool
        Stop before any month whose installment would not reduce the
        principal. Used for projections, where such a month would repeat
        forever.

    The generator ends after the month in which the balance reaches zero, or
    after ``tenure_months`` months, whichever comes first. A balance left
    over at the end of the tenure is a valid result.
    """
    rate = monthly_rate(terms.annual_rate_percent)
    last_month = terms.tenure_months
    if through_month is not None:
        last_month = min(last_month, through_month)

    balance = money(terms.principal)
    total_paid = Decimal(0)
    total_interest = Decimal(0)
    total_principal = Decimal(0)
    month = 1
    while month <= last_month and balance > 0:
        payment = ledger.resolve(month, standard_emi)
        step = apply_month(balance, rate, payment)
        if halt_when_stalled and step.principal_portion <= 0:
            logger.debug("Installment %s does not cover interest %s in month %d; stopping",
                         payment.emi_paid, step.interest_portion, month)
            return
        total_interest += step.interest_portion
        total_principal += step.actual_principal_reduction
        total_paid += payment.emi_paid + payment.prepayment + payment.lumpsum
        record = ledger.lookup(month)
        yield ScheduleEntry(
            month=month,
            date=_entry_date(terms, month, record.date if record else None),
            emi=payment.emi_paid,
            interest_portion=step.interest_portion,
            principal_portion=step.principal_portion,
            prepayment=payment.prepayment,
            lumpsum=payment.lumpsum,
            ending_balance=step.ending_balance,
            cumulative_total_paid=total_paid,
            cumulative_interest=total_interest,
            cumulative_principal=total_principal,
            actual_principal_reduction=step.actual_principal_reduction,
        )
        balance = step.ending_balance
        month += 1
    if balance <= 0 and month - 1 < terms.tenure_months:
        logger.debug("Loan closed in month %d of %d", month - 1, terms.tenure_months)


def build_amortization_schedule(
    terms: LoanTerms,
    ledger: Optional[PaymentLedger] = None,
    through_month: Optional[int] = None,
) -> List[ScheduleEntry]:
    """Compute the amortization schedule for ``terms`` and ``ledger``.

    ``through_month`` limits the schedule to the months elapsed so far, which
    lets the progress analyzer project the rest of a loan in progress.
    """
    standard_emi = compute_standard_emi(terms)
    schedule = list(simulate(terms, ledger or EMPTY_LEDGER, standard_emi, through_month))
    logger.debug("Built schedule of %d months (EMI %s)", len(schedule), standard_emi)
    return schedule
