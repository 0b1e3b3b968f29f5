"""
Test suite for status engine

Tests the first-match-wins status rules: archived, paid, overdue/defaulted,
pending and active.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from lending_core.anomalies import AnomalyKind
from lending_core.currency import Money, Currency
from lending_core.models import Loan, LoanStatus, Payment, PaymentFrequency, PaymentSchedule
from lending_core.config import reset_config
from lending_core.status import evaluate_status, determine_status

TODAY = date(2025, 6, 15)
GRACE_DAYS = 30


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    """Every test starts from the default configuration"""
    monkeypatch.delenv("LENDING_DEFAULT_GRACE_DAYS", raising=False)
    reset_config()
    yield
    reset_config()


def brl(value) -> Money:
    return Money(Decimal(str(value)), Currency.BRL)


def make_loan(status=LoanStatus.ACTIVE, due_date=date(2025, 12, 31),
              issue_date=date(2025, 1, 1), schedule=None) -> Loan:
    return Loan(
        id="L1",
        borrower_id="B1",
        principal=brl("1000"),
        interest_rate=Decimal('0'),
        issue_date=issue_date,
        due_date=due_date,
        status=status,
        payment_schedule=schedule,
    )


def full_payment() -> Payment:
    return Payment(id="P1", loan_id="L1", date=TODAY, amount=brl("1000"),
                   principal=brl("1000"), interest=brl("0"))


class TestPaidRule:
    """Test the paid rule"""

    def test_settled_loan_is_paid(self):
        """Test principal fully repaid gives paid"""
        assert determine_status(make_loan(), [full_payment()], TODAY) == LoanStatus.PAID

    def test_paid_wins_over_past_due_dates(self):
        """Test a settled loan is paid even when long past due"""
        loan = make_loan(due_date=TODAY - timedelta(days=200))
        assert determine_status(loan, [full_payment()], TODAY) == LoanStatus.PAID

    def test_paid_loan_with_balance_reverts(self):
        """Test a paid loan whose payment was removed is re-derived"""
        loan = make_loan(status=LoanStatus.PAID)
        assert determine_status(loan, [], TODAY) == LoanStatus.ACTIVE


class TestArchivedRule:
    """Test archived is terminal"""

    def test_archived_stays_archived(self):
        """Test no payment set moves an archived loan"""
        loan = make_loan(status=LoanStatus.ARCHIVED, due_date=TODAY - timedelta(days=300))

        assert determine_status(loan, [], TODAY) == LoanStatus.ARCHIVED
        assert determine_status(loan, [full_payment()], TODAY) == LoanStatus.ARCHIVED

    def test_engine_never_produces_archived(self):
        """Test a paid loan is not archived by the engine"""
        loan = make_loan(status=LoanStatus.PAID)
        assert determine_status(loan, [full_payment()], TODAY) == LoanStatus.PAID


class TestPastDueRule:
    """Test overdue and defaulted"""

    def test_due_yesterday_is_overdue(self):
        """Test due date yesterday without schedule gives overdue"""
        decision = evaluate_status(make_loan(due_date=TODAY - timedelta(days=1)), [], TODAY)

        assert decision.status == LoanStatus.OVERDUE
        assert decision.days_past_due == 1

    def test_due_today_is_not_overdue(self):
        """Test the due date itself is still current"""
        assert determine_status(make_loan(due_date=TODAY), [], TODAY) == LoanStatus.ACTIVE

    def test_schedule_date_drives_overdue(self):
        """Test a missed installment makes the loan overdue before its due date"""
        schedule = PaymentSchedule(PaymentFrequency.MONTHLY, 12, TODAY - timedelta(days=5))
        assert determine_status(make_loan(schedule=schedule), [], TODAY) == LoanStatus.OVERDUE

    def test_defaulted_after_grace(self):
        """Test escalation once days past due exceed the grace period"""
        at_limit = make_loan(due_date=TODAY - timedelta(days=GRACE_DAYS))
        beyond = make_loan(due_date=TODAY - timedelta(days=GRACE_DAYS + 1))

        assert determine_status(at_limit, [], TODAY) == LoanStatus.OVERDUE
        assert determine_status(beyond, [], TODAY) == LoanStatus.DEFAULTED

    def test_custom_grace(self):
        """Test a configurable grace period"""
        loan = make_loan(due_date=TODAY - timedelta(days=10))
        assert determine_status(loan, [], TODAY, grace_days=5) == LoanStatus.DEFAULTED
        assert determine_status(loan, [], TODAY, grace_days=90) == LoanStatus.OVERDUE

    def test_defaulted_independent_of_prior_status(self):
        """Test an active loan far past due is defaulted in one evaluation"""
        loan = make_loan(due_date=TODAY - timedelta(days=120))
        assert determine_status(loan, [], TODAY) == LoanStatus.DEFAULTED


class TestCurrentRules:
    """Test pending and active"""

    def test_pending_before_issue(self):
        """Test a future issue date gives pending"""
        loan = make_loan(issue_date=TODAY + timedelta(days=3))
        assert determine_status(loan, [], TODAY) == LoanStatus.PENDING

    def test_overdue_reverts_to_active_when_current(self):
        """Test an overdue loan brought current reverts to active"""
        schedule = PaymentSchedule(PaymentFrequency.MONTHLY, 12, TODAY + timedelta(days=20))
        loan = make_loan(status=LoanStatus.OVERDUE, schedule=schedule)
        decision = evaluate_status(loan, [], TODAY)

        assert decision.status == LoanStatus.ACTIVE
        assert decision.reason == "current again"

    def test_invalid_due_date_is_due_today(self):
        """Test an unusable due date resolves to today and is not past due"""
        decision = evaluate_status(make_loan(due_date="not-a-date"), [], TODAY)

        assert decision.status == LoanStatus.ACTIVE
        assert any(i.kind == AnomalyKind.INVALID_DATE for i in decision.issues)


class TestConfiguredGrace:
    """Test the grace period comes from configuration when not passed"""

    def test_environment_grace_used(self, monkeypatch):
        """Test LENDING_DEFAULT_GRACE_DAYS drives escalation"""
        monkeypatch.setenv("LENDING_DEFAULT_GRACE_DAYS", "5")
        reset_config()
        loan = make_loan(due_date=TODAY - timedelta(days=10))

        assert determine_status(loan, [], TODAY) == LoanStatus.DEFAULTED

    def test_engine_agrees_with_reconcile(self, monkeypatch):
        """Test the engine and the reconciliation loop share one threshold"""
        from lending_core.reconciliation import reconcile

        monkeypatch.setenv("LENDING_DEFAULT_GRACE_DAYS", "5")
        reset_config()
        loan = make_loan(due_date=TODAY - timedelta(days=10))

        result = reconcile([loan], [], TODAY)
        assert result.updated[0].status == determine_status(loan, [], TODAY)

    def test_explicit_grace_overrides_config(self, monkeypatch):
        """Test an explicit grace_days wins over configuration"""
        monkeypatch.setenv("LENDING_DEFAULT_GRACE_DAYS", "5")
        reset_config()
        loan = make_loan(due_date=TODAY - timedelta(days=10))

        assert determine_status(loan, [], TODAY, grace_days=90) == LoanStatus.OVERDUE
