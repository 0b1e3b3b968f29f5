"""
Archive Gate Module

The only code path that produces the ARCHIVED status. A loan can be archived
only from PAID, and only through an explicit call made after a human
confirmed it; reaching PAID never archives by itself.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional
import logging

from .audit import AuditEventType, AuditTrail
from .balance import calculate_balance
from .logging_config import log_action
from .models import Loan, LoanStatus, Payment

logger = logging.getLogger("lending_core.archive")


class ArchiveError(Enum):
    """Reasons an archive request is refused"""
    NOT_ELIGIBLE = "not_eligible"


@dataclass(frozen=True)
class ArchiveResult:
    """Outcome of an archive request; ``loan`` is unchanged on failure"""
    loan: Loan
    error: Optional[ArchiveError] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def archive_eligibility(loan: Loan, payments: Optional[Iterable[Payment]] = None) -> Optional[str]:
    """
    Explain why a loan cannot be archived

    Args:
        loan: Loan to check
        payments: When given, the remaining balance is re-checked as well

    Returns:
        Message for a disabled archive action, or None when archiving is allowed
    """
    if loan.status == LoanStatus.ARCHIVED:
        return "Loan is already archived"
    if loan.status != LoanStatus.PAID:
        return f"Only paid loans can be archived; loan is {loan.status.value}"
    if payments is not None:
        balance = calculate_balance(loan, payments)
        if not balance.is_settled:
            return (
                f"Loan still has {balance.remaining_balance.to_string()} outstanding"
            )
    return None


def archive(
    loan: Loan,
    payments: Optional[Iterable[Payment]] = None,
    audit_trail: Optional[AuditTrail] = None,
    actor: Optional[str] = None
) -> ArchiveResult:
    """
    Move a paid loan into the terminal archived state

    Args:
        loan: Loan to archive
        payments: Optional payments to re-check the balance against
        audit_trail: Optional trail; both outcomes are recorded
        actor: Who confirmed the archive

    Returns:
        ArchiveResult with the archived loan, or NOT_ELIGIBLE and the
        original loan
    """
    reason = archive_eligibility(loan, payments)

    if reason is not None:
        log_action(
            logger, "info", f"Archive refused for loan {loan.id}: {reason}",
            entity_type="loan", entity_id=loan.id, action="archive_rejected", actor=actor,
        )
        if audit_trail is not None:
            audit_trail.log_event(
                event_type=AuditEventType.ARCHIVE_REJECTED,
                entity_type="loan",
                entity_id=loan.id,
                metadata={'status': loan.status, 'reason': reason},
                actor=actor,
            )
        return ArchiveResult(loan=loan, error=ArchiveError.NOT_ELIGIBLE, message=reason)

    archived = replace(loan, status=LoanStatus.ARCHIVED)
    log_action(
        logger, "info", f"Loan {loan.id} archived",
        entity_type="loan", entity_id=loan.id, action="archived", actor=actor,
    )
    if audit_trail is not None:
        audit_trail.log_event(
            event_type=AuditEventType.LOAN_ARCHIVED,
            entity_type="loan",
            entity_id=loan.id,
            metadata={'from': loan.status},
            actor=actor,
        )
    return ArchiveResult(loan=archived)
