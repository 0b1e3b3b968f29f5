"""
Advances Module

Short-term cash advances. An advance has no payment ledger: it is active
until a single settle step marks it paid. "Overdue" is not stored; it is
derived with the same past-due predicate the status engine uses for loans.
"""

from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Iterable, List, Optional

from .currency import Currency, Money, sum_money
from .config import LendingConfig, get_config
from .dates import is_past_due, resolve_date
from .models import Advance, AdvanceStatus


@dataclass(frozen=True)
class AdvanceSummary:
    """Totals over a set of advances"""
    active_count: int
    outstanding_amount: Money      # Principal of active advances
    outstanding_fees: Money
    overdue_count: int
    overdue_amount: Money          # Amount plus fee of overdue advances

    @property
    def outstanding_total(self) -> Money:
        return self.outstanding_amount + self.outstanding_fees


def _due_date(advance: Advance, today: date) -> date:
    resolved, _ = resolve_date(advance.due_date, today, "advance", advance.id, "due_date")
    return resolved


def is_advance_overdue(advance: Advance, today: date) -> bool:
    """Active and past its due date"""
    return advance.status == AdvanceStatus.ACTIVE and is_past_due(_due_date(advance, today), today)


def active_advances(advances: Iterable[Advance]) -> List[Advance]:
    return [a for a in advances if a.status == AdvanceStatus.ACTIVE]


def overdue_advances(advances: Iterable[Advance], today: date) -> List[Advance]:
    return [a for a in advances if is_advance_overdue(a, today)]


def upcoming_advances(
    advances: Iterable[Advance],
    days: Optional[int],
    today: date,
    config: Optional[LendingConfig] = None
) -> List[Advance]:
    """Active advances due within ``[today, today + days]``; None uses the configured window"""
    if days is None:
        days = (config or get_config()).upcoming_window_days
    window_end = today + timedelta(days=days)
    return [
        a for a in active_advances(advances)
        if today <= _due_date(a, today) <= window_end
    ]


def advances_for_borrower(advances: Iterable[Advance], borrower_id: str) -> List[Advance]:
    return [a for a in advances if a.borrower_id == borrower_id]


def settle_advance(advance: Advance) -> Advance:
    """Mark an advance paid; settling a paid advance changes nothing"""
    if advance.status == AdvanceStatus.PAID:
        return advance
    return replace(advance, status=AdvanceStatus.PAID)


def advance_summary(
    advances: Iterable[Advance],
    today: date,
    currency: Optional[Currency] = None
) -> AdvanceSummary:
    """
    Summarize active and overdue advances

    Args:
        advances: Advances to summarize
        today: Current date
        currency: Report currency; advances in other currencies are skipped

    Returns:
        AdvanceSummary
    """
    currency = currency or get_config().currency
    active = [a for a in active_advances(advances) if a.amount.currency == currency]
    overdue = [a for a in active if is_advance_overdue(a, today)]

    return AdvanceSummary(
        active_count=len(active),
        outstanding_amount=sum_money((a.amount for a in active), currency),
        outstanding_fees=sum_money((a.fee for a in active if a.fee is not None), currency),
        overdue_count=len(overdue),
        overdue_amount=sum_money((a.total_due for a in overdue), currency),
    )
