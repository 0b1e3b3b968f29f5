"""
Status Engine Module

Derives the canonical lifecycle status of a loan from its terms, its
payments and the current date. Pure and total: every loan maps to exactly
one status and nothing is raised. The engine never produces ARCHIVED for a
loan that is not already archived; only the archive gate does that.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from .anomalies import DataQualityIssue
from .balance import calculate_balance
from .config import get_config
from .dates import days_past_due, is_past_due, resolve_date
from .models import Loan, LoanStatus, Payment
from .schedule import resolve_next_payment_date


@dataclass(frozen=True)
class StatusDecision:
    """Status with the reason it was chosen"""
    status: LoanStatus
    reason: str
    days_past_due: int = 0
    issues: List[DataQualityIssue] = field(default_factory=list)


def evaluate_status(
    loan: Loan,
    payments: Iterable[Payment],
    today: date,
    grace_days: Optional[int] = None
) -> StatusDecision:
    """
    Decide the status of a loan; first matching rule wins

    1. Archived loans stay archived.
    2. A remaining balance <= 0 means paid, whatever the dates say.
    3. Past the due date (no schedule) or the next payment date (schedule)
       means overdue, or defaulted once more than ``grace_days`` late.
    4. Otherwise pending before the issue date, active from it on. An
       overdue loan that is current again therefore reverts to active.

    Args:
        loan: Loan to evaluate
        payments: Payments of the loan (others are ignored)
        today: Current date
        grace_days: Days past due before escalating to defaulted; defaults
            to the configured ``default_grace_days``

    Returns:
        StatusDecision
    """
    if grace_days is None:
        grace_days = get_config().default_grace_days

    if loan.status == LoanStatus.ARCHIVED:
        return StatusDecision(LoanStatus.ARCHIVED, "archived is terminal")

    balance = calculate_balance(loan, payments)
    issues = list(balance.issues)

    if balance.is_settled:
        return StatusDecision(LoanStatus.PAID, "remaining balance exhausted", issues=issues)

    reference_date, issue = resolve_next_payment_date(loan, today)
    if issue:
        issues.append(issue)

    if is_past_due(reference_date, today):
        late = days_past_due(reference_date, today)
        if late > grace_days:
            return StatusDecision(
                LoanStatus.DEFAULTED,
                f"{late} days past due, beyond {grace_days} day grace",
                days_past_due=late,
                issues=issues,
            )
        return StatusDecision(
            LoanStatus.OVERDUE, f"{late} days past due", days_past_due=late, issues=issues
        )

    issue_date, issue = resolve_date(loan.issue_date, today, "loan", loan.id, "issue_date")
    if issue:
        issues.append(issue)

    if today < issue_date:
        return StatusDecision(LoanStatus.PENDING, "not yet issued", issues=issues)

    if loan.is_delinquent:
        return StatusDecision(LoanStatus.ACTIVE, "current again", issues=issues)
    return StatusDecision(LoanStatus.ACTIVE, "current", issues=issues)


def determine_status(
    loan: Loan,
    payments: Iterable[Payment],
    today: date,
    grace_days: Optional[int] = None
) -> LoanStatus:
    """Canonical status of a loan (see ``evaluate_status`` for the rules)"""
    return evaluate_status(loan, payments, today, grace_days).status
