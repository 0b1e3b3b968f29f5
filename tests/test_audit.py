"""
Test suite for audit module

Tests hash-chained audit trail, tamper detection and integrity verification.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from lending_core.audit import AuditTrail, AuditEvent, AuditEventType
from lending_core.currency import Money, Currency
from lending_core.models import LoanStatus


class TestAuditEvent:
    """Test AuditEvent functionality"""

    def test_metadata_is_serializable(self):
        """Test Money, Decimal, dates and enums are converted"""
        event = AuditEvent(
            id="E1",
            created_at=datetime.now(timezone.utc),
            event_type=AuditEventType.LOAN_ARCHIVED,
            entity_type="loan",
            entity_id="L1",
            previous_hash="",
            current_hash="",
            metadata={
                'from': LoanStatus.PAID,
                'balance': Money(Decimal('0'), Currency.BRL),
                'rate': Decimal('2.5'),
                'as_of': date(2025, 6, 15),
                'history': [LoanStatus.ACTIVE],
            },
        )
        assert event.metadata == {
            'from': "paid",
            'balance': "BRL 0.00",
            'rate': "2.5",
            'as_of': "2025-06-15",
            'history': ["active"],
        }

    def test_hash_verification(self):
        """Test a correct hash verifies and a modified event does not"""
        event = AuditEvent(
            id="E1", created_at=datetime.now(timezone.utc),
            event_type=AuditEventType.LOAN_STATUS_CHANGED, entity_type="loan",
            entity_id="L1", previous_hash="", current_hash="",
        )
        event.current_hash = event.calculate_hash()
        assert event.verify_hash()

        event.entity_id = "L2"
        assert not event.verify_hash()


class TestAuditTrail:
    """Test AuditTrail functionality"""

    def test_chain(self):
        """Test each event links to the previous hash"""
        trail = AuditTrail()
        first = trail.log_event(AuditEventType.LOAN_STATUS_CHANGED, "loan", "L1", {'to': "overdue"})
        second = trail.log_event(AuditEventType.LOAN_ARCHIVED, "loan", "L2", actor="maria")

        assert first.previous_hash == ""
        assert second.previous_hash == first.current_hash
        assert trail.get_latest_hash() == second.current_hash
        assert trail.count_events() == 2

    def test_queries(self):
        """Test lookups by entity and type"""
        trail = AuditTrail()
        trail.log_event(AuditEventType.LOAN_STATUS_CHANGED, "loan", "L1")
        trail.log_event(AuditEventType.SCHEDULE_ADVANCED, "loan", "L1")
        trail.log_event(AuditEventType.LOAN_STATUS_CHANGED, "loan", "L2")

        assert len(trail.get_events_for_entity("loan", "L1")) == 2
        assert len(trail.get_events_by_type(AuditEventType.LOAN_STATUS_CHANGED)) == 2
        assert len(trail.get_all_events()) == 3

    def test_empty_trail(self):
        """Test an empty trail is valid"""
        trail = AuditTrail()
        assert trail.get_latest_hash() is None
        assert trail.verify_integrity() == {
            'valid': True, 'total_events': 0, 'hash_errors': [], 'chain_breaks': [],
        }

    def test_tamper_detection(self):
        """Test modified metadata and broken links are reported"""
        trail = AuditTrail()
        trail.log_event(AuditEventType.LOAN_STATUS_CHANGED, "loan", "L1", {'to': "paid"})
        trail.log_event(AuditEventType.LOAN_ARCHIVED, "loan", "L1")
        assert trail.verify_integrity()['valid']

        events = trail.get_all_events()
        events[0].metadata['to'] = "active"
        events[1].previous_hash = "forged"

        result = trail.verify_integrity()
        assert not result['valid']
        assert result['hash_errors'][0]['position'] == 0
        assert any(b['position'] == 1 for b in result['chain_breaks'])
