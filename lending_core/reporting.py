"""
Projection Queries Module

Read-only aggregations over a reconciled loan set: delinquent loans,
upcoming installments, the expected receipts of the current month and the
dashboard totals. Every query is recomputed on demand from its inputs.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .anomalies import DataQualityIssue
from .balance import calculate_balance, valid_payments
from .config import LendingConfig, get_config
from .currency import Currency, Money, sum_money
from .dates import resolve_date, same_month
from .models import Borrower, Loan, LoanStatus, Payment
from .reconciliation import group_payments
from .schedule import estimate_installment, project, resolve_next_payment_date


@dataclass(frozen=True)
class MonthlyEstimate:
    """Expected receipts for the current calendar month"""
    amount: Money
    loan_ids: List[str] = field(default_factory=list)
    approximate: bool = False      # True when built from principal/12 fallbacks


@dataclass(frozen=True)
class DashboardMetrics:
    """Portfolio totals shown on the dashboard"""
    total_loaned: Money                  # Principal of non-archived loans
    interest_this_month: Money           # Interest portion of this month's payments
    overdue_exposure: Money              # Expected installments of delinquent loans
    received_this_month: Money
    total_borrowers: int
    status_counts: Dict[LoanStatus, int] = field(default_factory=dict)

    def count(self, status: LoanStatus) -> int:
        return self.status_counts.get(status, 0)


@dataclass(frozen=True)
class LoanMetrics:
    """Balance and next-payment view of a single loan"""
    loan_id: str
    total_principal: Money
    total_interest: Money
    total_paid: Money
    remaining_balance: Money
    next_payment_date: Optional[date] = None
    next_payment_amount: Optional[Money] = None
    estimated: bool = False
    issues: List[DataQualityIssue] = field(default_factory=list)


def overdue_loans(loans: Iterable[Loan]) -> List[Loan]:
    """Loans currently overdue or defaulted"""
    return [loan for loan in loans if loan.is_delinquent]


def upcoming_due_loans(
    loans: Iterable[Loan],
    days: Optional[int],
    today: date,
    config: Optional[LendingConfig] = None
) -> List[Loan]:
    """
    Non-archived loans whose next installment falls within the window

    Any status qualifies, paid included, as long as the loan carries a
    schedule with a next payment date in ``[today, today + days]``.

    Args:
        loans: Loans to scan
        days: Window length in days; None uses the configured
            ``upcoming_window_days``
        today: First day of the window
        config: Configuration; defaults to get_config()

    Returns:
        Matching loans in input order
    """
    if days is None:
        days = (config or get_config()).upcoming_window_days
    if days < 0:
        raise ValueError(f"days cannot be negative, got {days}")
    window_end = today + timedelta(days=days)

    upcoming = []
    for loan in loans:
        if loan.is_archived or loan.payment_schedule is None:
            continue
        if loan.payment_schedule.next_payment_date is None:
            continue
        next_date, _ = resolve_next_payment_date(loan, today)
        if today <= next_date <= window_end:
            upcoming.append(loan)
    return upcoming


def _counts_for_estimate(loan: Loan) -> bool:
    return loan.status not in (LoanStatus.ARCHIVED, LoanStatus.DEFAULTED)


def estimated_monthly_payments(
    loans: Iterable[Loan],
    today: date,
    currency: Optional[Currency] = None
) -> MonthlyEstimate:
    """
    Installments expected during today's calendar month

    Sums the installment amount of every non-archived, non-defaulted loan
    whose next payment date is in the current month. When no such loan has
    a usable schedule, falls back to ``installment_amount or principal/12``
    for each of them and flags the result as approximate.

    Args:
        loans: Loans to scan
        today: Current date (defines the month)
        currency: Report currency; loans in other currencies are skipped

    Returns:
        MonthlyEstimate
    """
    currency = currency or get_config().currency
    candidates = [
        loan for loan in loans
        if _counts_for_estimate(loan) and loan.currency == currency
    ]
    scheduled = [
        loan for loan in candidates
        if loan.payment_schedule is not None
        and loan.payment_schedule.next_payment_date is not None
        and loan.payment_schedule.has_installment_amount
    ]

    if not scheduled:
        amounts = []
        for loan in candidates:
            if loan.payment_schedule is not None and loan.payment_schedule.has_installment_amount:
                amounts.append(loan.payment_schedule.installment_amount)
            else:
                amounts.append(loan.principal / Decimal('12'))
        return MonthlyEstimate(
            amount=sum_money(amounts, currency),
            loan_ids=[loan.id for loan in candidates],
            approximate=True,
        )

    included = []
    amounts = []
    for loan in scheduled:
        next_date, _ = resolve_next_payment_date(loan, today)
        if same_month(next_date, today):
            included.append(loan.id)
            amounts.append(loan.payment_schedule.installment_amount)

    return MonthlyEstimate(amount=sum_money(amounts, currency), loan_ids=included)


def expected_installment(loan: Loan) -> Money:
    """Agreed installment amount, or the display estimate when none is set"""
    schedule = loan.payment_schedule
    if schedule is not None and schedule.has_installment_amount:
        return schedule.installment_amount
    return estimate_installment(loan)


def reportable_payments(
    payments: Iterable[Payment],
    config: Optional[LendingConfig] = None
) -> List[Payment]:
    """Payments that count in monthly figures (installment-edit entries excluded)"""
    config = config or get_config()
    marker = config.report_excluded_note_marker
    if not marker:
        return list(payments)
    return [p for p in payments if not p.notes or marker not in p.notes]


def dashboard_metrics(
    loans: Iterable[Loan],
    payments: Iterable[Payment],
    today: date,
    borrowers: Optional[Iterable[Borrower]] = None,
    config: Optional[LendingConfig] = None,
    currency: Optional[Currency] = None
) -> DashboardMetrics:
    """
    Portfolio totals for the dashboard

    Args:
        loans: Reconciled loans
        payments: All payments
        today: Current date (defines the month)
        borrowers: Borrowers, counted for the total
        config: Configuration (report exclusion marker, default currency)
        currency: Report currency; other currencies are skipped

    Returns:
        DashboardMetrics
    """
    config = config or get_config()
    currency = currency or config.currency
    loans = [loan for loan in loans if loan.currency == currency]

    total_loaned = sum_money(
        (loan.principal for loan in loans if not loan.is_archived), currency
    )
    overdue_exposure = sum_money(
        (expected_installment(loan) for loan in overdue_loans(loans)), currency
    )

    monthly, _ = valid_payments(reportable_payments(payments, config), currency)
    this_month = []
    for payment in monthly:
        paid_on, _ = resolve_date(payment.date, today, "payment", payment.id, "date")
        if same_month(paid_on, today):
            this_month.append(payment)

    interest = sum_money(
        (
            p.interest for p in this_month
            if p.interest is not None and p.interest.currency == currency
        ),
        currency
    )
    received = sum_money((p.amount for p in this_month), currency)

    status_counts = {status: 0 for status in LoanStatus}
    for loan in loans:
        status_counts[loan.status] += 1

    return DashboardMetrics(
        total_loaned=total_loaned,
        interest_this_month=interest,
        overdue_exposure=overdue_exposure,
        received_this_month=received,
        total_borrowers=len(list(borrowers)) if borrowers is not None else 0,
        status_counts=status_counts,
    )


def default_rate(loans: Iterable[Loan]) -> Decimal:
    """
    Share of open loans that are delinquent, in percent

    Open means neither paid nor archived. Returns zero when nothing is open.
    """
    open_loans = [
        loan for loan in loans
        if loan.status not in (LoanStatus.PAID, LoanStatus.ARCHIVED)
    ]
    if not open_loans:
        return Decimal('0')
    delinquent = len(overdue_loans(open_loans))
    return (Decimal(delinquent) * Decimal('100') / Decimal(len(open_loans))).quantize(Decimal('0.01'))


def loan_metrics(loan: Loan, payments: Iterable[Payment], today: date) -> LoanMetrics:
    """Balance position and next expected payment of one loan"""
    balance = calculate_balance(loan, payments)
    issues = list(balance.issues)

    next_date = None
    next_amount = None
    estimated = False
    if not loan.is_archived and not balance.is_settled:
        projection = project(loan.payment_schedule, today, loan=loan)
        next_date = projection.next_payment_date
        next_amount = projection.installment_amount
        estimated = projection.estimated
        issues.extend(projection.issues)

    return LoanMetrics(
        loan_id=loan.id,
        total_principal=loan.principal,
        total_interest=balance.total_interest,
        total_paid=balance.total_paid,
        remaining_balance=balance.remaining_balance,
        next_payment_date=next_date,
        next_payment_amount=next_amount,
        estimated=estimated,
        issues=issues,
    )


def portfolio_metrics(
    loans: Iterable[Loan],
    payments: Iterable[Payment],
    today: date
) -> Dict[str, LoanMetrics]:
    """LoanMetrics for every loan, keyed by loan ID"""
    by_loan = group_payments(payments)
    return {loan.id: loan_metrics(loan, by_loan.get(loan.id, []), today) for loan in loans}
