"""Data models for the loan progress engine.

This module defines dataclasses representing the entities used by the engine:
the loan terms, the user-supplied payment records, the per-month schedule
entries and the derived progress metrics. Schedule entries and metrics are
frozen because they are produced fresh on every recompute and never edited
afterwards.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class LoanTerms:
    """Terms of a single fixed-rate loan.

    Attributes
    ----------
    principal: Decimal
        The amount borrowed.
    tenure_months: int
        The nominal number of monthly installments. Must be at least 1.
    annual_rate_percent: Decimal
        Annual nominal interest rate in percent (``Decimal("10")`` is 10 %).
    override_emi: Decimal, optional
        An explicit installment. When set, the EMI calculator is bypassed and
        this amount is used everywhere downstream.
    start_date: date, optional
        Date of the first installment. Only used to label schedule entries.
    """

    principal: Decimal
    tenure_months: int
    annual_rate_percent: Decimal
    override_emi: Optional[Decimal] = None
    start_date: Optional[date] = None


@dataclass(frozen=True)
class PaymentRecord:
    """A user-entered payment for one month of the loan.

    ``emi_paid`` left as ``None`` means the standard EMI was paid. The
    ``date`` is for display only.
    """

    month: int
    date: Optional[date] = None
    emi_paid: Optional[Decimal] = None
    prepayment: Decimal = Decimal("0")
    lumpsum: Decimal = Decimal("0")


@dataclass(frozen=True)
class ScheduleEntry:
    """One simulated month of the amortization schedule.

    ``principal_portion`` is the reduction driven by the installment alone;
    ``actual_principal_reduction`` also includes prepayments and lumpsums.
    """

    month: int
    date: Optional[date]
    emi: Decimal
    interest_portion: Decimal
    principal_portion: Decimal
    prepayment: Decimal
    lumpsum: Decimal
    ending_balance: Decimal
    cumulative_total_paid: Decimal
    cumulative_interest: Decimal
    cumulative_principal: Decimal
    actual_principal_reduction: Decimal


@dataclass(frozen=True)
class ProgressMetrics:
    """Progress and savings figures derived from a schedule."""

    standard_emi: Decimal
    months_elapsed: int
    remaining_balance: Decimal
    remaining_tenure: int
    total_paid: Decimal
    interest_paid: Decimal
    principal_paid: Decimal
    payoff_percent: Decimal
    principal_paid_percent: Decimal
    interest_paid_percent: Decimal
    baseline_total_interest: Decimal
    projected_future_interest: Decimal
    interest_saved: Decimal
    months_saved: int
