"""
Ledger Snapshot Module

In-memory, id-keyed view of the records a collaborator hands to the core:
borrowers, loans, payments and advances. Reconciliation runs over the
snapshot and its diff is applied back in a single step.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional
import logging

from .audit import AuditTrail
from .config import LendingConfig
from .models import Advance, Borrower, Loan, Payment
from .reconciliation import ReconciliationResult, reconcile

logger = logging.getLogger("lending_core.portfolio")


def _index(items) -> Dict[str, object]:
    return {item.id: item for item in items}


@dataclass
class LedgerSnapshot:
    """Id-keyed records of one lending ledger"""
    borrowers: Dict[str, Borrower] = field(default_factory=dict)
    loans: Dict[str, Loan] = field(default_factory=dict)
    payments: Dict[str, Payment] = field(default_factory=dict)
    advances: Dict[str, Advance] = field(default_factory=dict)

    @classmethod
    def from_records(
        cls,
        borrowers: Iterable[Borrower] = (),
        loans: Iterable[Loan] = (),
        payments: Iterable[Payment] = (),
        advances: Iterable[Advance] = ()
    ) -> 'LedgerSnapshot':
        """Build a snapshot from plain lists; later duplicates replace earlier ones"""
        return cls(
            borrowers=_index(borrowers),
            loans=_index(loans),
            payments=_index(payments),
            advances=_index(advances),
        )

    def payments_for_loan(self, loan_id: str) -> List[Payment]:
        return [p for p in self.payments.values() if p.loan_id == loan_id]

    def loans_for_borrower(self, borrower_id: str) -> List[Loan]:
        return [loan for loan in self.loans.values() if loan.borrower_id == borrower_id]

    def can_delete_borrower(self, borrower_id: str) -> bool:
        """A borrower may be deleted only while owning zero loans"""
        return not self.loans_for_borrower(borrower_id)

    def reconcile(
        self,
        today: date,
        config: Optional[LendingConfig] = None,
        audit_trail: Optional[AuditTrail] = None
    ) -> ReconciliationResult:
        """Run the reconciliation loop over this snapshot (nothing is applied)"""
        return reconcile(
            self.loans.values(), self.payments.values(), today,
            config=config, audit_trail=audit_trail,
        )

    def apply(self, result: ReconciliationResult) -> int:
        """
        Write a reconciliation diff back into the snapshot

        Loans missing from the snapshot are ignored; they were removed after
        the run started.

        Returns:
            Number of loans replaced
        """
        applied = 0
        for loan in result.updated:
            if loan.id not in self.loans:
                logger.warning(f"Skipping update for unknown loan {loan.id}")
                continue
            self.loans[loan.id] = loan
            applied += 1
        return applied
