"""
Event System Module

Explicit publish/subscribe for reconciliation outcomes. Nothing is published
implicitly: the reconciliation loop returns the changed loans, and a caller
that wants push notifications hands that result to ``publish_reconciliation``
with a dispatcher it owns. There is no global dispatcher.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import RLock
import logging
import uuid


class DomainEvent(Enum):
    """Events a reconciliation or archive call can produce"""
    LOAN_STATUS_CHANGED = "loan.status_changed"
    LOAN_PAID = "loan.paid"                    # Workflow may prompt to archive
    LOAN_ARCHIVED = "loan.archived"
    DATA_QUALITY_WARNING = "data_quality.warning"


@dataclass
class EventPayload:
    """Payload for domain events"""
    event_type: DomainEvent
    entity_type: str
    entity_id: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'data': self.data,
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id
        }


Handler = Callable[[EventPayload], None]


class EventDispatcher:
    """Event dispatcher, publish/subscribe pattern"""

    def __init__(self):
        self._handlers: Dict[DomainEvent, List[Handler]] = {}
        self._global_handlers: List[Handler] = []
        self._lock = RLock()
        self.logger = logging.getLogger("lending_core.events")

    def subscribe(self, event_type: DomainEvent, handler: Handler) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Handler) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_name(handler)}")

    def unsubscribe(self, event_type: DomainEvent, handler: Handler) -> None:
        """Unsubscribe from a specific event type"""
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
                self.logger.debug(f"Unsubscribed handler {_name(handler)} from {event_type.value}")
            except ValueError:
                self.logger.warning(f"Handler {_name(handler)} was not subscribed to {event_type.value}")

    def publish(self, event: EventPayload) -> None:
        """Publish event to all subscribers"""
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, [])) + list(self._global_handlers)

        self.logger.debug(f"Publishing event {event.event_type.value} for {event.entity_type}:{event.entity_id}")
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # A failing subscriber must not stop the others
                self.logger.error(f"Error in event handler {_name(handler)} for {event.event_type.value}: {e}")

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()

    def get_handler_count(self, event_type: Optional[DomainEvent] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)


def _name(handler: Handler) -> str:
    return getattr(handler, "__name__", repr(handler))


def publish_reconciliation(result, dispatcher: EventDispatcher) -> List[EventPayload]:
    """
    Publish the outcome of a reconciliation run

    One LOAN_STATUS_CHANGED per updated loan, one LOAN_PAID per loan that
    reached paid, one DATA_QUALITY_WARNING per issue.

    Args:
        result: ReconciliationResult
        dispatcher: Dispatcher owned by the caller

    Returns:
        Events published, in order
    """
    events = []
    for change in result.changes:
        events.append(EventPayload(
            event_type=DomainEvent.LOAN_STATUS_CHANGED,
            entity_type="loan",
            entity_id=change.loan_id,
            data={'from': change.previous.value, 'to': change.current.value},
        ))
    for loan_id in result.newly_paid:
        events.append(EventPayload(
            event_type=DomainEvent.LOAN_PAID,
            entity_type="loan",
            entity_id=loan_id,
            data={},
        ))
    for issue in result.issues:
        events.append(EventPayload(
            event_type=DomainEvent.DATA_QUALITY_WARNING,
            entity_type=issue.entity_type,
            entity_id=issue.entity_id,
            data=issue.to_dict(),
        ))

    for event in events:
        dispatcher.publish(event)
    return events


def publish_archive(loan_id: str, dispatcher: EventDispatcher, actor: Optional[str] = None) -> EventPayload:
    """Publish LOAN_ARCHIVED after a successful archive call"""
    event = EventPayload(
        event_type=DomainEvent.LOAN_ARCHIVED,
        entity_type="loan",
        entity_id=loan_id,
        data={'actor': actor},
    )
    dispatcher.publish(event)
    return event
