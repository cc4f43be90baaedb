# backend/modules/orders/events/order_events.py

"""
Order lifecycle events.

Events are dispatched after the unit of work commits. Delivery is
fire-and-forget: a failing handler is logged and never reaches the caller.
"""

from typing import Dict, Any, List, Callable, Optional
from datetime import datetime
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)


@dataclass
class OrderEvent:
    """Base order event"""

    event_type: str
    order_id: Optional[str] = None
    session_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "order_id": self.order_id,
            "session_id": self.session_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


@dataclass
class OrderCreatedEvent(OrderEvent):
    """Signals the kitchen that a new order is waiting"""

    event_type: str = "order.created"
    order_number: Optional[str] = None
    table_name: Optional[str] = None
    items: List[Dict[str, Any]] = field(default_factory=list)
    note: Optional[str] = None


@dataclass
class OrderStatusChangedEvent(OrderEvent):
    event_type: str = "order.status_changed"
    previous_status: Optional[str] = None
    new_status: Optional[str] = None


@dataclass
class SessionCheckedOutEvent(OrderEvent):
    event_type: str = "session.checked_out"
    invoice_number: Optional[str] = None
    table_id: Optional[str] = None


order_event_handlers: Dict[str, List[Callable]] = {
    "order.created": [],
    "order.status_changed": [],
    "session.checked_out": [],
}


def register_event_handler(event_type: str, handler: Callable):
    """Register an event handler"""
    if event_type not in order_event_handlers:
        raise ValueError(f"Unknown event type: {event_type}")

    order_event_handlers[event_type].append(handler)
    logger.info(f"Registered handler {handler.__name__} for {event_type}")


def unregister_event_handler(event_type: str, handler: Callable):
    """Unregister an event handler"""
    if event_type in order_event_handlers and handler in order_event_handlers[event_type]:
        order_event_handlers[event_type].remove(handler)


def emit_order_event(event: OrderEvent) -> None:
    """Deliver an event to every registered handler"""
    handlers = list(order_event_handlers.get(event.event_type, []))

    if not handlers:
        logger.debug(f"No handlers registered for {event.event_type}")
        return

    logger.info(f"Emitting {event.event_type} for order {event.order_id}")

    for handler in handlers:
        try:
            handler(event)
        except Exception as e:
            logger.error(f"Handler {handler.__name__} failed for {event.event_type}: {e}")


def notify_kitchen(event: OrderCreatedEvent):
    """Default kitchen hook: log the ticket for the kitchen display"""
    logger.info(
        f"Kitchen ticket {event.order_number} for {event.table_name or 'take-away'}: "
        f"{len(event.items)} line(s)"
    )


register_event_handler("order.created", notify_kitchen)
