"""
Lending Domain Models

Borrowers, loans with optional payment schedules, payments and short-term
advances. Loans are immutable: a new status or schedule position is produced
as a new Loan by the status engine, the payment workflow or the archive gate.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from .currency import Money

# Dates as they arrive from forms, imports or sync: parsed lazily by the core
DateLike = Union[date, str, None]


class LoanStatus(Enum):
    """Loan lifecycle states"""
    PENDING = "pending"        # Issue date still in the future
    ACTIVE = "active"          # In repayment and current
    OVERDUE = "overdue"        # Past its due / next payment date
    DEFAULTED = "defaulted"    # Past due beyond the grace threshold
    PAID = "paid"              # Remaining balance <= 0
    ARCHIVED = "archived"      # Terminal, set only by the archive gate


class AdvanceStatus(Enum):
    """Advance lifecycle states"""
    ACTIVE = "active"
    PAID = "paid"


class PaymentFrequency(Enum):
    """Payment frequency options"""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    CUSTOM = "custom"
    INTEREST_ONLY = "interest_only"  # Scheduled payments cover interest only


@dataclass(frozen=True)
class Borrower:
    """Borrower identity and contact details"""
    id: str
    name: str
    document: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    profession: Optional[str] = None
    income: Optional[Money] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class PaymentSchedule:
    """Installment plan attached to a loan"""
    frequency: PaymentFrequency
    installments: int
    next_payment_date: DateLike = None
    installment_amount: Optional[Money] = None
    paid_installments: int = 0

    def __post_init__(self):
        if self.installments <= 0:
            raise ValueError(f"installments must be positive, got {self.installments}")
        if self.paid_installments < 0:
            raise ValueError(f"paid_installments cannot be negative, got {self.paid_installments}")

    @property
    def remaining_installments(self) -> int:
        """Installments not yet paid (never negative)"""
        return max(0, self.installments - self.paid_installments)

    @property
    def has_installment_amount(self) -> bool:
        """Check if a usable (positive) installment amount is set"""
        return self.installment_amount is not None and self.installment_amount.is_positive()


@dataclass(frozen=True)
class Loan:
    """Loan contract with derived status"""
    id: str
    borrower_id: str
    principal: Money
    interest_rate: Decimal              # Percent, e.g. Decimal('5') for 5%
    issue_date: DateLike
    due_date: DateLike
    status: LoanStatus = LoanStatus.ACTIVE
    payment_schedule: Optional[PaymentSchedule] = None
    borrower_name: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.interest_rate, Decimal):
            object.__setattr__(self, 'interest_rate', Decimal(str(self.interest_rate)))
        if self.principal.is_negative():
            raise ValueError(f"Loan {self.id}: principal cannot be negative")
        if self.interest_rate < 0:
            raise ValueError(f"Loan {self.id}: interest rate cannot be negative")

    @property
    def currency(self):
        return self.principal.currency

    @property
    def is_archived(self) -> bool:
        return self.status == LoanStatus.ARCHIVED

    @property
    def is_delinquent(self) -> bool:
        """Check if loan is overdue or defaulted"""
        return self.status in (LoanStatus.OVERDUE, LoanStatus.DEFAULTED)

    @property
    def is_interest_only(self) -> bool:
        return (
            self.payment_schedule is not None
            and self.payment_schedule.frequency == PaymentFrequency.INTEREST_ONLY
        )


@dataclass(frozen=True)
class Payment:
    """
    Payment recorded against a loan.

    ``amount`` is the total remitted, split by the caller into ``principal``
    and ``interest``. Any of the three may be None when the record arrived
    malformed; the balance calculator reports and neutralizes those.
    """
    id: str
    loan_id: str
    date: DateLike
    amount: Optional[Money]
    principal: Optional[Money] = None
    interest: Optional[Money] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Advance:
    """Short-term cash advance, settled in a single step"""
    id: str
    borrower_id: str
    amount: Money
    issue_date: DateLike
    due_date: DateLike
    fee: Optional[Money] = None
    status: AdvanceStatus = AdvanceStatus.ACTIVE
    borrower_name: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if self.fee is not None and self.fee.currency != self.amount.currency:
            raise ValueError(
                f"Advance {self.id}: fee in {self.fee.currency.code}, "
                f"amount in {self.amount.currency.code}"
            )

    @property
    def total_due(self) -> Money:
        """Amount plus fee"""
        if self.fee is None:
            return self.amount
        return self.amount + self.fee
