# backend/modules/tables/models/table_models.py

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Uuid,
    Enum as SQLEnum,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from core.database import Base
from core.mixins import TimestampMixin


class TableStatus(str, Enum):
    """Table occupancy status"""

    AVAILABLE = "Available"
    OCCUPIED = "Occupied"
    RESERVED = "Reserved"
    MAINTENANCE = "Maintenance"


class Room(Base, TimestampMixin):
    """Dining room with declared table and seating limits"""

    __tablename__ = "rooms"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text)

    # Declared limits; see RoomTableService for how they are enforced
    table_count = Column(Integer, nullable=False, default=0)
    total_capacity = Column(Integer, nullable=False, default=0)

    tables = relationship("Table", back_populates="room")

    __table_args__ = (
        CheckConstraint("table_count >= 0", name="chk_room_table_count"),
        CheckConstraint("total_capacity >= 0", name="chk_room_total_capacity"),
    )


class Table(Base, TimestampMixin):
    """Physical seating unit"""

    __tablename__ = "tables"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    room_id = Column(Uuid, ForeignKey("rooms.id"), nullable=False)

    table_number = Column(String(20), nullable=False, unique=True)
    table_name = Column(String(50))
    capacity = Column(Integer, nullable=False)

    status = Column(SQLEnum(TableStatus), nullable=False, default=TableStatus.AVAILABLE)
    is_active = Column(Boolean, nullable=False, default=True)

    room = relationship("Room", back_populates="tables")

    __table_args__ = (
        CheckConstraint("capacity > 0", name="chk_table_capacity"),
    )


class TableStateLog(Base):
    """Audit trail of applied table status changes"""

    __tablename__ = "table_state_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    table_id = Column(Uuid, ForeignKey("tables.id"), nullable=False, index=True)
    previous_status = Column(SQLEnum(TableStatus))
    new_status = Column(SQLEnum(TableStatus), nullable=False)
    reason = Column(String(200))
    changed_at = Column(DateTime, nullable=False, default=datetime.utcnow)
