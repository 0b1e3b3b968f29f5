"""
Balance Calculator Module

Totals paid, interest recognized and remaining balance of a loan, computed
from the payments recorded against it. The principal/interest split of each
payment is trusted as supplied; no amortization table is re-derived here.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .anomalies import AnomalyKind, DataQualityIssue, report_issue
from .currency import Currency, Money, sum_money
from .models import Loan, Payment


@dataclass(frozen=True)
class BalanceSummary:
    """Balance position of one loan"""
    loan_id: str
    principal: Money
    total_paid: Money
    total_principal_paid: Money
    total_interest: Money
    remaining_balance: Money          # Not clamped: negative means overpaid
    payment_count: int
    issues: List[DataQualityIssue] = field(default_factory=list)

    @property
    def is_settled(self) -> bool:
        """Check if nothing is left to pay"""
        return not self.remaining_balance.is_positive()


def screen_payment(
    payment: Payment,
    currency: Currency
) -> Tuple[Optional[Payment], List[DataQualityIssue]]:
    """
    Check a payment before it contributes to any total

    Args:
        payment: Payment to check
        currency: Currency the payment must be in

    Returns:
        Tuple of (payment or None when excluded, issues found)
    """
    issues = []

    if payment.amount is None:
        issues.append(report_issue(
            AnomalyKind.MISSING_AMOUNT, "payment", payment.id, "amount",
            "Payment has no amount and was excluded"
        ))
        return None, issues

    if payment.amount.currency != currency:
        issues.append(report_issue(
            AnomalyKind.CURRENCY_MISMATCH, "payment", payment.id, "amount",
            f"Payment in {payment.amount.currency.code}, loan in {currency.code}; excluded",
            raw_value=payment.amount.to_string()
        ))
        return None, issues

    if not payment.amount.is_positive():
        issues.append(report_issue(
            AnomalyKind.NON_POSITIVE_AMOUNT, "payment", payment.id, "amount",
            "Payment amount is not positive and was excluded",
            raw_value=payment.amount.to_string()
        ))
        return None, issues

    if payment.principal is None:
        issues.append(report_issue(
            AnomalyKind.MISSING_PRINCIPAL, "payment", payment.id, "principal",
            "Payment has no principal portion, counted as zero"
        ))
    if payment.interest is None:
        issues.append(report_issue(
            AnomalyKind.MISSING_INTEREST, "payment", payment.id, "interest",
            "Payment has no interest portion, counted as zero"
        ))

    # A portion in another currency is counted as zero by _portion
    for name, portion in (("principal", payment.principal), ("interest", payment.interest)):
        if portion is not None and portion.currency != currency:
            issues.append(report_issue(
                AnomalyKind.CURRENCY_MISMATCH, "payment", payment.id, name,
                f"Payment {name} in {portion.currency.code}, loan in {currency.code}; "
                f"counted as zero",
                raw_value=portion.to_string()
            ))

    return payment, issues


def valid_payments(
    payments: Iterable[Payment],
    currency: Currency,
    loan_id: Optional[str] = None
) -> Tuple[List[Payment], List[DataQualityIssue]]:
    """
    Keep the payments that may contribute to totals

    Payments belonging to another loan (when ``loan_id`` is given) are
    skipped silently; malformed ones are excluded and reported.
    """
    kept = []
    issues = []
    for payment in payments:
        if loan_id is not None and payment.loan_id != loan_id:
            continue
        checked, found = screen_payment(payment, currency)
        issues.extend(found)
        if checked is not None:
            kept.append(checked)
    return kept, issues


def _portion(value: Optional[Money], currency: Currency) -> Money:
    if value is None or value.currency != currency:
        return Money.zero(currency)
    return value


def total_paid(payments: Iterable[Payment], currency: Currency) -> Money:
    """Sum of ``amount`` over the valid payments"""
    kept, _ = valid_payments(payments, currency)
    return sum_money((p.amount for p in kept), currency)


def total_interest_recognized(loan: Loan, payments: Iterable[Payment]) -> Money:
    """Sum of the interest portion of the loan's valid payments"""
    kept, _ = valid_payments(payments, loan.currency, loan_id=loan.id)
    return sum_money((_portion(p.interest, loan.currency) for p in kept), loan.currency)


def remaining_balance(loan: Loan, payments: Iterable[Payment]) -> Money:
    """
    Principal minus the principal portion of every valid payment

    Accrued-but-unpaid interest never enters the balance, so interest-only
    schedules only go down when a payment attributes principal.
    """
    return calculate_balance(loan, payments).remaining_balance


def calculate_balance(loan: Loan, payments: Iterable[Payment]) -> BalanceSummary:
    """
    Compute the full balance position of a loan

    Args:
        loan: Loan
        payments: Payments (those of other loans are ignored)

    Returns:
        BalanceSummary including any data-quality issues
    """
    currency = loan.currency
    kept, issues = valid_payments(payments, currency, loan_id=loan.id)

    paid = sum_money((p.amount for p in kept), currency)
    principal_paid = sum_money((_portion(p.principal, currency) for p in kept), currency)
    interest = sum_money((_portion(p.interest, currency) for p in kept), currency)

    return BalanceSummary(
        loan_id=loan.id,
        principal=loan.principal,
        total_paid=paid,
        total_principal_paid=principal_paid,
        total_interest=interest,
        remaining_balance=loan.principal - principal_paid,
        payment_count=len(kept),
        issues=issues,
    )
