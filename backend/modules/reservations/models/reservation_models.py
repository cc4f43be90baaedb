# backend/modules/reservations/models/reservation_models.py

"""
Reservation models: a booking and its pre-ordered items.
"""

import uuid
import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Uuid,
    Enum,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from core.database import Base
from core.mixins import TimestampMixin
# Registers the Table, Room and ProductVariant mappers referenced below
from modules.inventory.models.stock_models import ProductVariant  # noqa: F401
from modules.tables.models.table_models import Room, Table  # noqa: F401


class ReservationStatus(str, enum.Enum):
    """Reservation status enum"""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SEATED = "SEATED"
    CANCELLED = "CANCELLED"


class Reservation(Base, TimestampMixin):
    """A customer booking, optionally holding a table"""

    __tablename__ = "reservations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reservation_code = Column(String(20), nullable=False, unique=True)

    customer_name = Column(String(150), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    customer_email = Column(String(150))

    arrival_time = Column(DateTime, nullable=False, index=True)
    number_of_guests = Column(Integer, nullable=False)
    status = Column(Enum(ReservationStatus), nullable=False, default=ReservationStatus.PENDING)

    # References only; the table is never owned by the booking
    table_id = Column(Uuid, ForeignKey("tables.id"), nullable=True)
    room_id = Column(Uuid, ForeignKey("rooms.id"), nullable=True)

    notes = Column(Text)
    cancellation_reason = Column(Text)
    confirmed_at = Column(DateTime)
    seated_at = Column(DateTime)
    cancelled_at = Column(DateTime)

    table = relationship("Table")
    room = relationship("Room")
    items = relationship(
        "ReservationItem", back_populates="reservation", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("number_of_guests > 0", name="chk_reservation_guests"),
        Index("idx_reservation_status_arrival", "status", "arrival_time"),
    )

    @property
    def is_active(self) -> bool:
        return self.status in (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


class ReservationItem(Base):
    """Pre-ordered item on a booking; stock is only deducted once it is ordered"""

    __tablename__ = "reservation_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reservation_id = Column(Uuid, ForeignKey("reservations.id"), nullable=False, index=True)
    variant_id = Column(Uuid, ForeignKey("product_variants.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    note = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    reservation = relationship("Reservation", back_populates="items")
    variant = relationship("ProductVariant")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_reservation_item_quantity"),
    )
