# File: parkade/infrastructure/messaging.py
"""
Messaging Infrastructure for the Parkade engine

This module provides in-process event publishing:
1. Message Types - Serializable envelopes for domain events
2. Event Handlers - Subscribers reacting to parking and billing events
3. Event Bus - Synchronous publish/subscribe within one process

Design:
- The facility aggregate records domain events; the application service
  drains them after each use case and publishes them here
- Handlers run synchronously in subscription order
- A failing handler is logged and never breaks the publishing use case
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any
from datetime import datetime
import logging
import json
import threading
from dataclasses import dataclass, asdict, field
from enum import Enum
from uuid import uuid4

from ..domain.models import DomainEvent


# ============================================================================
# MESSAGE TYPES AND ENUMS
# ============================================================================

class EventType(str, Enum):
    """Domain event types published on the bus"""
    VEHICLE_PARKED = "vehicle.parked"
    VEHICLE_LEFT = "vehicle.left"
    FINE_LEDGERED = "fine.ledgered"
    FINE_SCHEME_CHANGED = "fine_scheme.changed"


# ============================================================================
# MESSAGE BASE CLASSES
# ============================================================================

@dataclass
class Message:
    """Base message class"""
    message_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)
    correlation_id: Optional[str] = None
    source: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary"""
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data

    def to_json(self) -> str:
        """Convert message to JSON string"""
        return json.dumps(self.to_dict(), default=str)


@dataclass
class DomainEventMessage(Message):
    """Envelope for a domain event raised by an aggregate"""
    event_type: EventType = EventType.VEHICLE_PARKED
    aggregate_id: Optional[str] = None
    aggregate_type: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    version: int = 1

    @classmethod
    def from_domain_event(
        cls,
        event: DomainEvent,
        aggregate_type: str = "ParkingFacility",
        version: int = 1,
        correlation_id: Optional[str] = None
    ) -> 'DomainEventMessage':
        return cls(
            message_id=event.event_id,
            timestamp=event.timestamp,
            correlation_id=correlation_id,
            source=aggregate_type,
            event_type=EventType(event.event_type),
            aggregate_id=event.facility_id,
            aggregate_type=aggregate_type,
            data=event.payload(),
            version=version
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['event_type'] = self.event_type.value
        return data


# ============================================================================
# EVENT HANDLERS
# ============================================================================

class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    def handle(self, event: DomainEventMessage) -> None:
        """Handle a domain event"""
        pass

    def can_handle(self, event: DomainEventMessage) -> bool:
        """Check if this handler can handle the event"""
        return True


class ParkingEventHandler(EventHandler):
    """Logs vehicle arrivals and departures"""

    def __init__(self):
        self._logger = logging.getLogger(self.__class__.__name__)

    def can_handle(self, event: DomainEventMessage) -> bool:
        return event.event_type in (EventType.VEHICLE_PARKED, EventType.VEHICLE_LEFT)

    def handle(self, event: DomainEventMessage) -> None:
        if event.event_type == EventType.VEHICLE_PARKED:
            self._logger.info(
                f"Spot {event.data.get('spot_id')} occupied by {event.data.get('license_plate')} "
                f"(Ticket: {event.data.get('ticket_id')})"
            )
        elif event.event_type == EventType.VEHICLE_LEFT:
            self._logger.info(
                f"Spot {event.data.get('spot_id')} released by {event.data.get('license_plate')} "
                f"({event.data.get('reason')})"
            )


class BillingEventHandler(EventHandler):
    """Logs payments and fine-ledger changes"""

    def __init__(self):
        self._logger = logging.getLogger(self.__class__.__name__)

    def can_handle(self, event: DomainEventMessage) -> bool:
        if event.event_type == EventType.VEHICLE_LEFT:
            return 'amount_paid' in event.data
        return event.event_type in (EventType.FINE_LEDGERED, EventType.FINE_SCHEME_CHANGED)

    def handle(self, event: DomainEventMessage) -> None:
        if event.event_type == EventType.VEHICLE_LEFT:
            paid = event.data['amount_paid']
            self._logger.info(
                f"Payment of {paid['currency']} {paid['amount']:.2f} received "
                f"for {event.data.get('ticket_id')}"
            )
        elif event.event_type == EventType.FINE_LEDGERED:
            balance = event.data['balance']
            self._logger.warning(
                f"Outstanding fines for {event.data.get('license_plate')} now "
                f"{balance['currency']} {balance['amount']:.2f}"
            )
        elif event.event_type == EventType.FINE_SCHEME_CHANGED:
            self._logger.info(
                f"Fine scheme {event.data.get('previous')} -> {event.data.get('current')}"
            )


class EventRecorder(EventHandler):
    """Keeps every handled message in memory (audit trail and tests)"""

    def __init__(self):
        self._events: List[DomainEventMessage] = []
        self._lock = threading.Lock()

    def handle(self, event: DomainEventMessage) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[DomainEventMessage]:
        with self._lock:
            return list(self._events)

    def of_type(self, event_type: EventType) -> List[DomainEventMessage]:
        return [event for event in self.events if event.event_type == event_type]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


# ============================================================================
# EVENT BUS (In-memory)
# ============================================================================

class EventBus:
    """
    In-memory event bus for intra-process event publishing

    Implements publish/subscribe pattern within the same process.
    Handlers subscribed without an event type receive every event.
    """

    def __init__(self):
        self._subscribers: Dict[Optional[EventType], List[EventHandler]] = {}
        self._lock = threading.RLock()
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, event_type: Optional[EventType], handler: EventHandler) -> None:
        """Subscribe to events of a specific type (None for all events)"""
        with self._lock:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)
                self._logger.debug(f"Subscribed {handler.__class__.__name__} to {event_type or 'all events'}")

    def subscribe_all(self, handler: EventHandler) -> None:
        self.subscribe(None, handler)

    def unsubscribe(self, event_type: Optional[EventType], handler: EventHandler) -> None:
        """Unsubscribe handler from events"""
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                self._logger.debug(f"Unsubscribed {handler.__class__.__name__} from {event_type or 'all events'}")

    def publish(self, event: DomainEventMessage) -> int:
        """
        Publish an event to all subscribers
        Returns: number of handlers that processed the event successfully
        """
        self._logger.debug(f"Publishing event: {event.event_type.value} (ID: {event.message_id})")

        with self._lock:
            handlers = list(self._subscribers.get(event.event_type, []))
            handlers += [h for h in self._subscribers.get(None, []) if h not in handlers]

        delivered = 0
        for handler in handlers:
            if not handler.can_handle(event):
                continue
            try:
                handler.handle(event)
                delivered += 1
            except Exception as e:
                self._logger.error(
                    f"Error handling event {event.event_type.value} with {handler.__class__.__name__}: {e}",
                    exc_info=True
                )
        return delivered

    def publish_domain_events(self, events: List[DomainEvent], correlation_id: Optional[str] = None) -> int:
        """Wrap aggregate events in messages and publish them in order"""
        delivered = 0
        for event in events:
            delivered += self.publish(DomainEventMessage.from_domain_event(event, correlation_id=correlation_id))
        return delivered

    def clear_subscribers(self) -> None:
        """Clear all subscribers (for testing)"""
        with self._lock:
            self._subscribers.clear()


def create_default_event_bus() -> EventBus:
    """Event bus with the logging handlers attached"""
    bus = EventBus()
    bus.subscribe_all(ParkingEventHandler())
    bus.subscribe_all(BillingEventHandler())
    return bus
