"""
Tests for the Event System (Observer Pattern)

Tests the dispatcher and the explicit publication of reconciliation and
archive outcomes.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import Mock

from lending_core.config import LendingConfig
from lending_core.currency import Money, Currency
from lending_core.events import (
    DomainEvent, EventPayload, EventDispatcher, publish_reconciliation, publish_archive
)
from lending_core.models import Loan, LoanStatus, Payment
from lending_core.reconciliation import reconcile

TODAY = date(2025, 6, 15)


def brl(value) -> Money:
    return Money(Decimal(str(value)), Currency.BRL)


def make_loan(loan_id, due_date=date(2025, 12, 31)) -> Loan:
    return Loan(
        id=loan_id, borrower_id="B1", principal=brl("1000"), interest_rate=Decimal('0'),
        issue_date=date(2025, 1, 1), due_date=due_date,
    )


class TestEventPayload:
    """Test EventPayload creation and serialization"""

    def test_event_payload_creation(self):
        """Test creating event payloads"""
        event = EventPayload(
            event_type=DomainEvent.LOAN_PAID,
            entity_type="loan",
            entity_id="L1",
            data={},
        )
        assert isinstance(event.timestamp, datetime)
        assert len(event.event_id) > 0

    def test_to_dict(self):
        """Test serialization uses the event value"""
        event = EventPayload(DomainEvent.LOAN_ARCHIVED, "loan", "L1", {"actor": "maria"})
        data = event.to_dict()

        assert data['event_type'] == "loan.archived"
        assert data['entity_id'] == "L1"
        assert data['data'] == {"actor": "maria"}


class TestEventDispatcher:
    """Test EventDispatcher functionality"""

    def test_subscribe_and_publish(self):
        """Test specific and global subscribers both receive events"""
        dispatcher = EventDispatcher()
        specific = Mock()
        everything = Mock()
        dispatcher.subscribe(DomainEvent.LOAN_PAID, specific)
        dispatcher.subscribe_all(everything)

        event = EventPayload(DomainEvent.LOAN_PAID, "loan", "L1", {})
        dispatcher.publish(event)
        dispatcher.publish(EventPayload(DomainEvent.LOAN_ARCHIVED, "loan", "L1", {}))

        specific.assert_called_once_with(event)
        assert everything.call_count == 2

    def test_failing_handler_does_not_stop_others(self):
        """Test handler errors are logged and skipped"""
        dispatcher = EventDispatcher()
        failing = Mock(side_effect=RuntimeError("boom"))
        working = Mock()
        dispatcher.subscribe(DomainEvent.LOAN_PAID, failing)
        dispatcher.subscribe(DomainEvent.LOAN_PAID, working)

        dispatcher.publish(EventPayload(DomainEvent.LOAN_PAID, "loan", "L1", {}))

        working.assert_called_once()

    def test_unsubscribe_and_counts(self):
        """Test handler counts after unsubscribe and clear"""
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(DomainEvent.LOAN_PAID, handler)
        dispatcher.subscribe_all(Mock())
        assert dispatcher.get_handler_count() == 2
        assert dispatcher.get_handler_count(DomainEvent.LOAN_PAID) == 1

        dispatcher.unsubscribe(DomainEvent.LOAN_PAID, handler)
        dispatcher.unsubscribe(DomainEvent.LOAN_PAID, handler)
        assert dispatcher.get_handler_count(DomainEvent.LOAN_PAID) == 0

        dispatcher.clear()
        assert dispatcher.get_handler_count() == 0


class TestPublishReconciliation:
    """Test explicit publication of reconciliation results"""

    def test_events_for_changes(self):
        """Test one event per change, per newly paid loan and per issue"""
        loans = [make_loan("L1", due_date=TODAY - timedelta(days=1)), make_loan("L2")]
        payments = [
            Payment(id="P1", loan_id="L2", date=TODAY, amount=brl("1000"),
                    principal=brl("1000"), interest=brl("0")),
            Payment(id="P2", loan_id="L1", date=TODAY, amount=None),
        ]
        result = reconcile(loans, payments, TODAY, config=LendingConfig(_env_file=None))

        dispatcher = EventDispatcher()
        received = []
        dispatcher.subscribe_all(received.append)

        events = publish_reconciliation(result, dispatcher)

        types = [e.event_type for e in events]
        assert types.count(DomainEvent.LOAN_STATUS_CHANGED) == 2
        assert types.count(DomainEvent.LOAN_PAID) == 1
        assert types.count(DomainEvent.DATA_QUALITY_WARNING) == 1
        assert received == events
        paid = next(e for e in events if e.event_type == DomainEvent.LOAN_PAID)
        assert paid.entity_id == "L2"

    def test_noop_publishes_nothing(self):
        """Test an empty diff publishes no events"""
        result = reconcile([make_loan("L1")], [], TODAY, config=LendingConfig(_env_file=None))
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe_all(handler)

        assert publish_reconciliation(result, dispatcher) == []
        handler.assert_not_called()

    def test_publish_archive(self):
        """Test the archived event carries the actor"""
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(DomainEvent.LOAN_ARCHIVED, handler)

        event = publish_archive("L1", dispatcher, actor="maria")

        handler.assert_called_once_with(event)
        assert event.data == {'actor': "maria"}
