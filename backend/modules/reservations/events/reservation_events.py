# backend/modules/reservations/events/reservation_events.py

"""
Event system for reservation lifecycle hooks.
"""

from typing import Dict, Any, List, Callable, Optional
from datetime import datetime
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)


@dataclass
class ReservationEvent:
    """Base reservation event"""

    event_type: str
    reservation_id: Optional[str] = None
    reservation_code: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary"""
        return {
            "event_type": self.event_type,
            "reservation_id": self.reservation_id,
            "reservation_code": self.reservation_code,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


@dataclass
class ReservationCreatedEvent(ReservationEvent):
    """Emitted when reservation is created"""

    event_type: str = "reservation.created"
    number_of_guests: Optional[int] = None
    arrival_time: Optional[str] = None


@dataclass
class ReservationUpdatedEvent(ReservationEvent):
    """Emitted when reservation is updated"""

    event_type: str = "reservation.updated"
    changes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ReservationConfirmedEvent(ReservationEvent):
    event_type: str = "reservation.confirmed"


@dataclass
class ReservationTableAssignedEvent(ReservationEvent):
    """Emitted when a table is held for a reservation"""

    event_type: str = "reservation.table_assigned"
    table_id: Optional[str] = None
    table_number: Optional[str] = None


@dataclass
class ReservationSeatedEvent(ReservationEvent):
    """Emitted when guests are seated"""

    event_type: str = "reservation.seated"
    table_number: Optional[str] = None


@dataclass
class ReservationCancelledEvent(ReservationEvent):
    """Emitted when reservation is cancelled"""

    event_type: str = "reservation.cancelled"
    reason: Optional[str] = None


# Event handlers registry
reservation_event_handlers: Dict[str, List[Callable]] = {
    "reservation.created": [],
    "reservation.updated": [],
    "reservation.confirmed": [],
    "reservation.table_assigned": [],
    "reservation.seated": [],
    "reservation.cancelled": [],
}


def register_event_handler(event_type: str, handler: Callable):
    """Register an event handler"""
    if event_type not in reservation_event_handlers:
        raise ValueError(f"Unknown event type: {event_type}")

    reservation_event_handlers[event_type].append(handler)
    logger.info(f"Registered handler {handler.__name__} for {event_type}")


def unregister_event_handler(event_type: str, handler: Callable):
    """Unregister an event handler"""
    if event_type in reservation_event_handlers and handler in reservation_event_handlers[event_type]:
        reservation_event_handlers[event_type].remove(handler)


def emit_reservation_event(event: ReservationEvent) -> None:
    """Emit a reservation event to all registered handlers"""
    event_type = event.event_type
    handlers = list(reservation_event_handlers.get(event_type, []))

    if not handlers:
        logger.debug(f"No handlers registered for {event_type}")
        return

    logger.info(f"Emitting {event_type} for reservation {event.reservation_id}")

    for handler in handlers:
        try:
            handler(event)
        except Exception as e:
            logger.error(f"Handler {handler.__name__} failed for {event_type}: {e}")


def log_reservation_event(event: ReservationEvent):
    """Log reservation events for analytics"""
    logger.info(f"Event logged: {event.to_dict()}")


for _event_type in reservation_event_handlers:
    register_event_handler(_event_type, log_reservation_event)
