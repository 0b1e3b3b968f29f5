"""
Reconciliation Module

Re-runs the status engine over a snapshot of loans and payments and returns
only the loans whose status changed. The caller applies that diff; running
again on the applied set yields an empty diff. Also applies a newly recorded
payment to its loan's schedule.
"""

from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, Iterable, List, Optional
import logging

from .anomalies import DataQualityIssue, dedupe_issues
from .audit import AuditEventType, AuditTrail
from .balance import screen_payment
from .config import LendingConfig, get_config
from .models import Loan, LoanStatus, Payment
from .schedule import advance_schedule
from .status import evaluate_status

logger = logging.getLogger("lending_core.reconciliation")


@dataclass(frozen=True)
class StatusChange:
    """One status transition found by a reconciliation run"""
    loan_id: str
    previous: LoanStatus
    current: LoanStatus
    reason: str


@dataclass(frozen=True)
class ReconciliationResult:
    """Diff produced by a reconciliation run"""
    updated: List[Loan] = field(default_factory=list)
    changes: List[StatusChange] = field(default_factory=list)
    newly_paid: List[str] = field(default_factory=list)
    issues: List[DataQualityIssue] = field(default_factory=list)
    evaluated: int = 0

    @property
    def is_noop(self) -> bool:
        """Check if nothing needs writing back"""
        return not self.updated

    def updated_by_id(self) -> Dict[str, Loan]:
        return {loan.id: loan for loan in self.updated}


@dataclass(frozen=True)
class PaymentOutcome:
    """Loan state after a newly recorded payment"""
    loan: Loan
    accepted: bool                 # False when the payment was excluded as malformed
    reached_paid: bool             # Workflow may now offer to archive
    schedule_advanced: bool
    issues: List[DataQualityIssue] = field(default_factory=list)


def group_payments(payments: Iterable[Payment]) -> Dict[str, List[Payment]]:
    """Index payments by loan ID"""
    grouped: Dict[str, List[Payment]] = defaultdict(list)
    for payment in payments:
        grouped[payment.loan_id].append(payment)
    return grouped


def reconcile(
    loans: Iterable[Loan],
    payments: Iterable[Payment],
    today: date,
    config: Optional[LendingConfig] = None,
    audit_trail: Optional[AuditTrail] = None
) -> ReconciliationResult:
    """
    Recompute every loan's status and return the ones that changed

    Only the status field is replaced, never accumulated, so concurrent runs
    from different triggers over the same snapshot agree.

    Args:
        loans: Loans to reconcile
        payments: All payments (grouped by loan here)
        today: Current date
        config: Configuration (grace threshold); defaults to get_config()
        audit_trail: Optional trail receiving one event per change

    Returns:
        ReconciliationResult
    """
    config = config or get_config()
    by_loan = group_payments(payments)

    updated = []
    changes = []
    newly_paid = []
    issues = []
    evaluated = 0

    for loan in loans:
        evaluated += 1
        decision = evaluate_status(
            loan, by_loan.get(loan.id, []), today, grace_days=config.default_grace_days
        )
        issues.extend(decision.issues)

        if decision.status == loan.status:
            continue

        change = StatusChange(
            loan_id=loan.id,
            previous=loan.status,
            current=decision.status,
            reason=decision.reason,
        )
        changes.append(change)
        updated.append(replace(loan, status=decision.status))
        if decision.status == LoanStatus.PAID:
            newly_paid.append(loan.id)

        logger.info(
            f"Loan {loan.id}: {loan.status.value} -> {decision.status.value} ({decision.reason})",
            extra={'entity_type': 'loan', 'entity_id': loan.id, 'action': 'status_changed'},
        )
        if audit_trail is not None:
            audit_trail.log_event(
                event_type=AuditEventType.LOAN_STATUS_CHANGED,
                entity_type="loan",
                entity_id=loan.id,
                metadata={
                    'from': loan.status,
                    'to': decision.status,
                    'reason': decision.reason,
                    'as_of': today,
                },
            )

    logger.debug(f"Reconciled {evaluated} loans, {len(updated)} changed")
    return ReconciliationResult(
        updated=updated,
        changes=changes,
        newly_paid=newly_paid,
        issues=dedupe_issues(issues),
        evaluated=evaluated,
    )


def apply_payment(
    loan: Loan,
    payments: Iterable[Payment],
    payment: Payment,
    today: date,
    config: Optional[LendingConfig] = None,
    audit_trail: Optional[AuditTrail] = None
) -> PaymentOutcome:
    """
    Apply a newly recorded payment to its loan

    A valid payment advances the schedule (if any) by exactly one
    installment; the status is then recomputed with the payment included.
    Reaching paid is reported, never turned into an archive.

    Args:
        loan: Loan the payment belongs to
        payments: Payments already recorded for the loan (without ``payment``)
        payment: The new payment
        today: Current date
        config: Configuration; defaults to get_config()
        audit_trail: Optional trail receiving schedule/status events

    Returns:
        PaymentOutcome
    """
    if payment.loan_id != loan.id:
        raise ValueError(f"Payment {payment.id} belongs to loan {payment.loan_id}, not {loan.id}")

    config = config or get_config()
    all_payments = [p for p in payments if p.id != payment.id] + [payment]

    checked, issues = screen_payment(payment, loan.currency)
    accepted = checked is not None

    current = loan
    schedule_advanced = False
    if accepted and loan.payment_schedule is not None and not loan.is_archived:
        schedule, schedule_issues = advance_schedule(loan.payment_schedule, today, entity_id=loan.id)
        issues.extend(schedule_issues)
        current = replace(current, payment_schedule=schedule)
        schedule_advanced = True
        if audit_trail is not None:
            audit_trail.log_event(
                event_type=AuditEventType.SCHEDULE_ADVANCED,
                entity_type="loan",
                entity_id=loan.id,
                metadata={
                    'payment_id': payment.id,
                    'paid_installments': schedule.paid_installments,
                    'next_payment_date': schedule.next_payment_date,
                },
            )

    decision = evaluate_status(current, all_payments, today, grace_days=config.default_grace_days)
    issues.extend(decision.issues)
    reached_paid = decision.status == LoanStatus.PAID and loan.status != LoanStatus.PAID

    if decision.status != current.status:
        if audit_trail is not None:
            audit_trail.log_event(
                event_type=AuditEventType.LOAN_STATUS_CHANGED,
                entity_type="loan",
                entity_id=loan.id,
                metadata={'from': current.status, 'to': decision.status, 'reason': decision.reason},
            )
        current = replace(current, status=decision.status)

    if reached_paid:
        logger.info(
            f"Loan {loan.id} reached paid after payment {payment.id}",
            extra={'entity_type': 'loan', 'entity_id': loan.id, 'action': 'paid'},
        )

    return PaymentOutcome(
        loan=current,
        accepted=accepted,
        reached_paid=reached_paid,
        schedule_advanced=schedule_advanced,
        issues=dedupe_issues(issues),
    )
