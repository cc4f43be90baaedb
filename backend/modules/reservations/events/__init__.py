"""
Reservation lifecycle events.
"""

from .reservation_events import (
    ReservationEvent,
    ReservationCreatedEvent,
    ReservationUpdatedEvent,
    ReservationConfirmedEvent,
    ReservationTableAssignedEvent,
    ReservationSeatedEvent,
    ReservationCancelledEvent,
    emit_reservation_event,
    reservation_event_handlers,
)

__all__ = [
    "ReservationEvent",
    "ReservationCreatedEvent",
    "ReservationUpdatedEvent",
    "ReservationConfirmedEvent",
    "ReservationTableAssignedEvent",
    "ReservationSeatedEvent",
    "ReservationCancelledEvent",
    "emit_reservation_event",
    "reservation_event_handlers",
]
