"""
Schedule Projector Module

Installment amount and next due date of a loan's payment schedule, and the
one-step advance applied when an installment is paid.
"""

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple
import logging

from .anomalies import AnomalyKind, DataQualityIssue, report_issue
from .config import get_config
from .currency import Money
from .dates import add_months, resolve_date
from .models import Loan, PaymentFrequency, PaymentSchedule

logger = logging.getLogger("lending_core.schedule")

# Fixed-length periods in days; the rest step by calendar months
_DAY_PERIODS = {
    PaymentFrequency.WEEKLY: 7,
    PaymentFrequency.BIWEEKLY: 14,
}

_MONTH_PERIODS = {
    PaymentFrequency.MONTHLY: 1,
    PaymentFrequency.QUARTERLY: 3,
    PaymentFrequency.YEARLY: 12,
    PaymentFrequency.CUSTOM: 1,
    PaymentFrequency.INTEREST_ONLY: 1,
}


@dataclass(frozen=True)
class ScheduleProjection:
    """Expected next payment of a loan"""
    installment_amount: Money
    next_payment_date: date
    estimated: bool = False       # True when the amount is a display fallback
    issues: List[DataQualityIssue] = field(default_factory=list)


def add_period(current_date: date, frequency: PaymentFrequency) -> date:
    """Calculate the next payment date one period after ``current_date``"""
    if frequency in _DAY_PERIODS:
        return current_date + timedelta(days=_DAY_PERIODS[frequency])
    if frequency in _MONTH_PERIODS:
        return add_months(current_date, _MONTH_PERIODS[frequency])
    raise ValueError(f"Unsupported payment frequency: {frequency}")


def estimate_installment(loan: Loan, installments: Optional[int] = None) -> Money:
    """
    Estimate an installment as principal / installments inflated by the rate

    Only meant for display when no installment amount was agreed.

    Args:
        loan: Loan to estimate for
        installments: Installment count; defaults to the schedule's count,
            then to the configured ``default_installments``

    Returns:
        Estimated installment amount
    """
    if installments is None:
        if loan.payment_schedule is not None:
            installments = loan.payment_schedule.installments
        else:
            installments = get_config().default_installments
    if installments <= 0:
        raise ValueError(f"installments must be positive, got {installments}")

    factor = Decimal('1') + loan.interest_rate / Decimal('100')
    return loan.principal / Decimal(installments) * factor


def resolve_next_payment_date(
    loan: Loan,
    as_of: date
) -> Tuple[date, Optional[DataQualityIssue]]:
    """
    Date the next payment is expected

    The schedule's next payment date when the loan has a schedule, the
    contract due date otherwise. Unparseable dates resolve to ``as_of``.
    """
    if loan.payment_schedule is not None:
        return resolve_date(
            loan.payment_schedule.next_payment_date, as_of,
            "loan", loan.id, "next_payment_date"
        )
    return resolve_date(loan.due_date, as_of, "loan", loan.id, "due_date")


def project(
    schedule: Optional[PaymentSchedule],
    as_of: date,
    loan: Optional[Loan] = None
) -> ScheduleProjection:
    """
    Project the next installment of a schedule

    A set, positive ``installment_amount`` is authoritative. Otherwise the
    amount is estimated from the loan (when given) and flagged.

    Args:
        schedule: Payment schedule, or None for a loan without one
        as_of: Today; also the fallback for unparseable dates
        loan: Owning loan, needed for estimates and for loans without a schedule

    Returns:
        ScheduleProjection
    """
    if schedule is None and loan is None:
        raise ValueError("project() needs a schedule or a loan")

    entity_id = loan.id if loan is not None else "unknown"
    issues = []

    if schedule is not None:
        next_date, issue = resolve_date(
            schedule.next_payment_date, as_of, "loan", entity_id, "next_payment_date"
        )
    else:
        next_date, issue = resolve_date(loan.due_date, as_of, "loan", entity_id, "due_date")
    if issue:
        issues.append(issue)

    if schedule is not None and schedule.has_installment_amount:
        return ScheduleProjection(
            installment_amount=schedule.installment_amount,
            next_payment_date=next_date,
            issues=issues,
        )

    if loan is None:
        raise ValueError("Schedule has no installment amount; pass the loan to estimate one")

    if schedule is not None:
        issues.append(report_issue(
            AnomalyKind.MISSING_SCHEDULE_FIELD, "loan", loan.id, "installment_amount",
            "Schedule has no installment amount, using an estimate"
        ))

    return ScheduleProjection(
        installment_amount=estimate_installment(loan),
        next_payment_date=next_date,
        estimated=True,
        issues=issues,
    )


def advance_schedule(
    schedule: PaymentSchedule,
    as_of: date,
    entity_id: str = "unknown"
) -> Tuple[PaymentSchedule, List[DataQualityIssue]]:
    """
    Move a schedule forward by exactly one installment

    The new date is one period after the prior next payment date, never
    recomputed from the issue date, so extra or irregular payments do not
    make the schedule drift.

    Args:
        schedule: Current schedule
        as_of: Fallback when the prior date is unparseable
        entity_id: Loan ID used in issue reports

    Returns:
        Tuple of (advanced schedule, issues)
    """
    prior, issue = resolve_date(
        schedule.next_payment_date, as_of, "loan", entity_id, "next_payment_date"
    )
    advanced = replace(
        schedule,
        paid_installments=schedule.paid_installments + 1,
        next_payment_date=add_period(prior, schedule.frequency),
    )
    logger.debug(
        f"Schedule of loan {entity_id} advanced to installment "
        f"{advanced.paid_installments}/{advanced.installments}, next {advanced.next_payment_date}"
    )
    return advanced, [issue] if issue else []
