# backend/modules/tables/services/room_table_service.py

"""
Room and table management with per-room capacity tracking.
"""

import logging
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.config import get_settings
from core.exceptions import ConflictError, NotFoundError, ValidationError
from ..models.table_models import Room, Table, TableStateLog, TableStatus
from .table_state_service import TableStateService

logger = logging.getLogger(__name__)


class RoomTableService:
    """CRUD for rooms and tables plus the room capacity tracker"""

    def __init__(self, db: Session, enforce_room_limits: Optional[bool] = None):
        self.db = db
        self.state_service = TableStateService(db)
        if enforce_room_limits is None:
            enforce_room_limits = get_settings().enforce_room_limits
        self.enforce_room_limits = enforce_room_limits

    # ---------------------------------------------------------------- rooms

    def get_all_rooms(self) -> List[Room]:
        return self.db.query(Room).order_by(Room.name).all()

    def get_room_by_id(self, room_id: UUID) -> Optional[Room]:
        return self.db.query(Room).filter(Room.id == room_id).first()

    def get_room_by_name(self, name: str) -> Optional[Room]:
        if not name:
            return None
        return self.db.query(Room).filter(Room.name == name.strip()).first()

    def _validate_room(self, room: Room) -> None:
        if not room.name or not room.name.strip():
            raise ValidationError("room name must not be empty")
        if room.table_count is None or room.table_count < 1:
            raise ValidationError("room table count must be positive")
        if room.total_capacity is None or room.total_capacity < 1:
            raise ValidationError("room total capacity must be positive")
        room.name = room.name.strip()

    def _ensure_unique_room_name(self, name: str, exclude_id: Optional[UUID] = None) -> None:
        query = self.db.query(Room.id).filter(Room.name == name)
        if exclude_id is not None:
            query = query.filter(Room.id != exclude_id)
        if query.first() is not None:
            raise ConflictError(f"room name already exists: {name}", error_code="DUPLICATE_ROOM")

    def add_room(self, room: Room) -> bool:
        """Validate and persist a new room; ``room.id`` is populated on success"""
        self._validate_room(room)
        self._ensure_unique_room_name(room.name)

        try:
            self.db.add(room)
            self.db.commit()
            self.db.refresh(room)
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Created room {room.name} ({room.id})")
        return True

    def update_room(self, room: Room) -> bool:
        """Apply the fields of ``room`` to the stored room with the same id"""
        if room.id is None:
            return False
        existing = self.get_room_by_id(room.id)
        if existing is None:
            return False

        self._validate_room(room)
        self._ensure_unique_room_name(room.name, exclude_id=existing.id)

        self._check_room_limits(
            existing,
            table_count=self.current_table_count(existing.id),
            total_capacity=self.current_total_capacity(existing.id),
            declared_tables=room.table_count,
            declared_capacity=room.total_capacity,
        )

        try:
            existing.name = room.name
            existing.description = room.description
            existing.table_count = room.table_count
            existing.total_capacity = room.total_capacity
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Updated room {existing.name} ({existing.id})")
        return True

    def delete_room(self, room_id: UUID) -> bool:
        """
        Delete a room. Rooms still holding active tables cannot be deleted;
        inactive tables without history are removed with the room.
        """
        room = self.get_room_by_id(room_id)
        if room is None:
            return False

        if self.current_table_count(room_id) > 0:
            raise ConflictError(
                "cannot delete a room that still has active tables",
                error_code="ROOM_NOT_EMPTY",
            )

        remaining = self.db.query(Table).filter(Table.room_id == room_id).all()
        if any(self._has_session_history(table.id) for table in remaining):
            raise ConflictError(
                "cannot delete a room whose tables have session history",
                error_code="ROOM_HAS_HISTORY",
            )

        try:
            for table in remaining:
                self._purge_table(table)
            self.db.delete(room)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Deleted room {room_id}")
        return True

    # --------------------------------------------------------------- tables

    def get_all_tables(self) -> List[Table]:
        return (
            self.db.query(Table)
            .filter(Table.is_active.is_(True))
            .order_by(Table.table_number)
            .all()
        )

    def get_tables_by_room_id(self, room_id: UUID) -> List[Table]:
        return (
            self.db.query(Table)
            .filter(Table.room_id == room_id, Table.is_active.is_(True))
            .order_by(Table.table_number)
            .all()
        )

    def get_table_by_id(self, table_id: UUID) -> Optional[Table]:
        return (
            self.db.query(Table)
            .filter(Table.id == table_id, Table.is_active.is_(True))
            .first()
        )

    def get_table_by_number(self, table_number: str) -> Optional[Table]:
        if not table_number:
            return None
        return (
            self.db.query(Table)
            .filter(Table.table_number == table_number.strip(), Table.is_active.is_(True))
            .first()
        )

    def _validate_table(self, table: Table) -> Room:
        if not table.table_number or not table.table_number.strip():
            raise ValidationError("table number must not be empty")
        if table.capacity is None or table.capacity < 1:
            raise ValidationError("table capacity must be positive")
        if table.room_id is None:
            raise ValidationError("table must belong to a room")

        table.table_number = table.table_number.strip()
        if not table.table_name or not table.table_name.strip():
            table.table_name = f"Table {table.table_number}"

        room = self.get_room_by_id(table.room_id)
        if room is None:
            raise NotFoundError("room not found", error_code="ROOM_NOT_FOUND")
        return room

    def _ensure_unique_table_number(self, number: str, exclude_id: Optional[UUID] = None) -> None:
        query = self.db.query(Table.id).filter(Table.table_number == number)
        if exclude_id is not None:
            query = query.filter(Table.id != exclude_id)
        if query.first() is not None:
            raise ConflictError(
                f"table number already exists: {number}", error_code="DUPLICATE_TABLE"
            )

    def add_table(self, table: Table) -> bool:
        """Validate and persist a new table; it always starts Available"""
        room = self._validate_table(table)
        self._ensure_unique_table_number(table.table_number)

        self._check_room_limits(
            room,
            table_count=self.current_table_count(room.id) + 1,
            total_capacity=self.current_total_capacity(room.id) + table.capacity,
        )

        try:
            table.status = TableStatus.AVAILABLE
            table.is_active = True
            self.db.add(table)
            self.db.commit()
            self.db.refresh(table)
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Created table {table.table_number} in room {room.name}")
        return True

    def update_table(self, table: Table) -> bool:
        """Apply number, name, capacity and room of ``table`` to the stored table"""
        if table.id is None:
            return False
        existing = self.get_table_by_id(table.id)
        if existing is None:
            return False

        # ``table`` may be the persistent row itself; read the stored values
        old_room_id, old_capacity = (
            self.db.query(Table.room_id, Table.capacity).filter(Table.id == existing.id).one()
        )
        new_room_id = table.room_id
        new_capacity = table.capacity

        room = self._validate_table(table)
        self._ensure_unique_table_number(table.table_number, exclude_id=existing.id)

        count = self.current_table_count(new_room_id)
        capacity = self.current_total_capacity(new_room_id)
        if new_room_id == old_room_id:
            capacity = capacity - (old_capacity or 0) + new_capacity
        else:
            count += 1
            capacity += new_capacity
        self._check_room_limits(room, table_count=count, total_capacity=capacity)

        try:
            existing.table_number = table.table_number
            existing.table_name = table.table_name
            existing.capacity = new_capacity
            existing.room_id = new_room_id
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Updated table {existing.table_number} ({existing.id})")
        return True

    def delete_table(self, table_id: UUID) -> bool:
        """
        Remove a table. Tables with session history are soft-deleted so the
        history stays intact; others are physically deleted.
        """
        table = self.get_table_by_id(table_id)
        if table is None:
            return False

        if self._has_active_session(table_id):
            raise ConflictError(
                "cannot delete a table with an active session",
                error_code="TABLE_IN_USE",
            )

        try:
            if self._has_session_history(table_id):
                table.is_active = False
                logger.info(f"Soft-deleted table {table.table_number}")
            else:
                self._purge_table(table)
                logger.info(f"Deleted table {table.table_number}")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return True

    def update_table_status(
        self,
        table_id: UUID,
        status: Union[str, TableStatus],
        reason: Optional[str] = None,
    ) -> bool:
        """Staff override of a table's status; False when the table is unknown"""
        return self.state_service.update_status(table_id, status, reason=reason)

    def _purge_table(self, table: Table) -> None:
        from modules.reservations.models.reservation_models import Reservation

        self.db.query(Reservation).filter(Reservation.table_id == table.id).update(
            {Reservation.table_id: None}, synchronize_session=False
        )
        self.db.query(TableStateLog).filter(TableStateLog.table_id == table.id).delete(
            synchronize_session=False
        )
        self.db.delete(table)

    def _has_session_history(self, table_id: UUID) -> bool:
        from modules.orders.models.order_models import TableSession

        return (
            self.db.query(TableSession.id)
            .filter(TableSession.table_id == table_id)
            .first()
            is not None
        )

    def _has_active_session(self, table_id: UUID) -> bool:
        from modules.orders.models.order_models import SessionStatus, TableSession

        return (
            self.db.query(TableSession.id)
            .filter(
                TableSession.table_id == table_id,
                TableSession.status == SessionStatus.ACTIVE,
            )
            .first()
            is not None
        )

    # ------------------------------------------------------ capacity tracker

    def current_table_count(self, room_id: UUID) -> int:
        """Number of active tables assigned to a room"""
        count = (
            self.db.query(func.count(Table.id))
            .filter(Table.room_id == room_id, Table.is_active.is_(True))
            .scalar()
        )
        return int(count or 0)

    def current_total_capacity(self, room_id: UUID) -> int:
        """Sum of seats over the active tables of a room"""
        total = (
            self.db.query(func.coalesce(func.sum(Table.capacity), 0))
            .filter(Table.room_id == room_id, Table.is_active.is_(True))
            .scalar()
        )
        return int(total or 0)

    def get_room_capacity_usage(self, room_id: UUID) -> Dict[str, Any]:
        room = self.get_room_by_id(room_id)
        if room is None:
            raise NotFoundError("room not found", error_code="ROOM_NOT_FOUND")
        return {
            "room_id": room.id,
            "declared_table_count": room.table_count,
            "declared_total_capacity": room.total_capacity,
            "current_table_count": self.current_table_count(room.id),
            "current_total_capacity": self.current_total_capacity(room.id),
        }

    def _check_room_limits(
        self,
        room: Room,
        table_count: int,
        total_capacity: int,
        declared_tables: Optional[int] = None,
        declared_capacity: Optional[int] = None,
    ) -> None:
        limit_tables = room.table_count if declared_tables is None else declared_tables
        limit_capacity = room.total_capacity if declared_capacity is None else declared_capacity

        problems = []
        if limit_tables is not None and table_count > limit_tables:
            problems.append(f"table count {table_count} exceeds room limit {limit_tables}")
        if limit_capacity is not None and total_capacity > limit_capacity:
            problems.append(
                f"total capacity {total_capacity} exceeds room limit {limit_capacity}"
            )

        if not problems:
            return

        message = f"Room {room.name}: " + "; ".join(problems)
        if self.enforce_room_limits:
            raise ConflictError(message, error_code="ROOM_LIMIT_EXCEEDED")
        logger.warning(message)

    # --------------------------------------------------------------- counters

    def get_total_rooms(self) -> int:
        return int(self.db.query(func.count(Room.id)).scalar() or 0)

    def get_total_tables(self) -> int:
        return int(
            self.db.query(func.count(Table.id)).filter(Table.is_active.is_(True)).scalar() or 0
        )

    def _count_tables_with_status(self, status: TableStatus) -> int:
        return int(
            self.db.query(func.count(Table.id))
            .filter(Table.is_active.is_(True), Table.status == status)
            .scalar()
            or 0
        )

    def get_available_tables(self) -> int:
        return self._count_tables_with_status(TableStatus.AVAILABLE)

    def get_occupied_tables(self) -> int:
        return self._count_tables_with_status(TableStatus.OCCUPIED)
