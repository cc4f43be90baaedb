# backend/modules/reservations/services/reservation_service.py

"""
Reservation management: booking codes, availability and table assignment.
"""

import logging
import re
import secrets
import string
from contextlib import ExitStack, contextmanager
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set, Union
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.config import get_settings
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.locks import KeyedLockManager, table_lock_key, table_locks
from modules.inventory.services.stock_ledger import StockLedger
from modules.orders.models.order_models import SessionStatus, TableSession
from modules.tables.models.table_models import Table, TableStatus
from modules.tables.services.table_state_service import (
    TableStateService,
    is_transition_allowed,
)
from ..events.reservation_events import (
    ReservationCancelledEvent,
    ReservationConfirmedEvent,
    ReservationCreatedEvent,
    ReservationEvent,
    ReservationSeatedEvent,
    ReservationTableAssignedEvent,
    ReservationUpdatedEvent,
    emit_reservation_event,
)
from ..models.reservation_models import Reservation, ReservationItem, ReservationStatus
from ..schemas.reservation_schemas import (
    PreOrderedItem,
    ReservationCreate,
    ReservationUpdate,
)

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8

_LOCAL_PHONE = re.compile(r"0[1-9][0-9]{8,9}")
_INTERNATIONAL_PHONE = re.compile(r"\+84[0-9]{9,10}")


def validate_phone_number(value: Optional[str]) -> bool:
    """
    Vietnamese phone number check on the trimmed value.

    Accepts ``0`` followed by 9-10 digits (the second digit not ``0``) or
    ``+84`` followed by 9-10 digits.
    """
    if value is None:
        return False
    candidate = value.strip()
    if not candidate:
        return False
    return bool(
        _LOCAL_PHONE.fullmatch(candidate) or _INTERNATIONAL_PHONE.fullmatch(candidate)
    )


def _as_uuid(value: Union[str, UUID], label: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"invalid {label}: {value}")


def to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Arrival times are stored as naive server-local time"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class ReservationService:
    """Service for managing reservations"""

    def __init__(self, db: Session, locks: Optional[KeyedLockManager] = None):
        self.db = db
        self.locks = locks or table_locks
        self.table_state = TableStateService(db)
        self.ledger = StockLedger(db)
        self._issued_codes: Set[str] = set()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _hold(self, reservation_id: UUID, table_ids: Iterable[Optional[UUID]] = ()):
        """Reservation lock first, then table locks in sorted order"""
        table_keys = sorted(
            {table_lock_key(table_id) for table_id in table_ids if table_id is not None}
        )
        with ExitStack() as stack:
            stack.enter_context(self.locks.hold(f"reservation:{reservation_id}"))
            for key in table_keys:
                stack.enter_context(self.locks.hold(key))
            yield

    def _load(self, reservation_id: UUID, for_update: bool = False) -> Reservation:
        query = self.db.query(Reservation).filter(Reservation.id == reservation_id)
        if for_update:
            query = query.with_for_update()
        reservation = query.first()
        if reservation is None:
            raise NotFoundError("reservation not found", error_code="RESERVATION_NOT_FOUND")
        return reservation

    def _load_table(self, table_id: UUID) -> Table:
        table = self.table_state.get_table(table_id, for_update=True)
        if table is None or not table.is_active:
            raise NotFoundError("table not found", error_code="TABLE_NOT_FOUND")
        return table

    def _release_table(self, reservation: Reservation, reason: str) -> None:
        """Free the table held by ``reservation`` if it is still Reserved"""
        if reservation.table_id is None:
            return
        table = self.table_state.get_table(reservation.table_id, for_update=True)
        if table is not None and table.status == TableStatus.RESERVED:
            self.table_state.apply_status(table, TableStatus.AVAILABLE, reason=reason)

    def _hold_table(self, reservation: Reservation, table: Table) -> None:
        """Capacity and availability checks, then Reserved; caller holds the locks"""
        if table.capacity < reservation.number_of_guests:
            raise ConflictError(
                "insufficient table capacity for number of guests",
                error_code="INSUFFICIENT_CAPACITY",
            )

        if reservation.table_id == table.id and table.status == TableStatus.RESERVED:
            return

        if table.status != TableStatus.AVAILABLE or not is_transition_allowed(
            table.status, TableStatus.RESERVED
        ):
            raise ConflictError("table is not available", error_code="TABLE_NOT_AVAILABLE")

        if reservation.table_id is not None and reservation.table_id != table.id:
            self._release_table(reservation, reason=f"Reservation {reservation.reservation_code} moved")

        reservation.table_id = table.id
        reservation.room_id = table.room_id
        self.table_state.apply_status(
            table, TableStatus.RESERVED, reason=f"Reservation {reservation.reservation_code}"
        )

    def _require_active(self, reservation: Reservation, action: str) -> None:
        if not reservation.is_active:
            raise ValidationError(
                f"cannot {action} a {reservation.status.value.lower()} reservation",
                error_code="INVALID_RESERVATION_STATE",
            )

    def _validate_arrival_time(self, arrival_time: datetime) -> None:
        if arrival_time is None:
            raise ValidationError("arrival time is required")
        if arrival_time < datetime.now():
            raise ValidationError("arrival time must be in the future")

    def _validate_guests(self, number_of_guests: Optional[int]) -> None:
        if number_of_guests is None or number_of_guests < 1:
            raise ValidationError("number of guests must be at least 1")

    def _add_items(self, reservation: Reservation, items: List[PreOrderedItem]) -> None:
        for item in items:
            if item.quantity < 1:
                raise ValidationError("quantity must be at least 1")
            if self.ledger.get_variant(item.variant_id) is None:
                raise NotFoundError(
                    f"variant not found: {item.variant_id}", error_code="VARIANT_NOT_FOUND"
                )
            reservation.items.append(
                ReservationItem(variant_id=item.variant_id, quantity=item.quantity, note=item.note)
            )

    def _commit(self, event: Optional[ReservationEvent] = None) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        if event is not None:
            emit_reservation_event(event)

    # ------------------------------------------------------------------
    # Codes, phone and availability
    # ------------------------------------------------------------------

    def generate_reservation_code(self, for_date: Optional[date] = None) -> str:
        """Generate a unique ``RS-XXXXXXXX`` reservation code"""
        max_attempts = get_settings().reservation_code_max_attempts
        for _ in range(max_attempts):
            code = "RS-" + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
            if code in self._issued_codes:
                continue
            exists = (
                self.db.query(Reservation.id)
                .filter(Reservation.reservation_code == code)
                .first()
            )
            if exists is None:
                self._issued_codes.add(code)
                return code

        logger.error(f"No unique reservation code after {max_attempts} attempts")
        raise ConflictError(
            "could not generate a unique reservation code", error_code="CODE_EXHAUSTED"
        )

    def validate_phone_number(self, value: Optional[str]) -> bool:
        return validate_phone_number(value)

    def validate_availability(self, arrival_time: datetime, guest_count: int) -> bool:
        """
        Whether the restaurant can currently seat ``guest_count`` guests.

        Sums the capacity of every active table that is Available right now;
        ``arrival_time`` is accepted for future slot-based checks but does not
        narrow the query.
        """
        if guest_count is None or guest_count < 1:
            raise ValidationError("number of guests must be at least 1")

        total_capacity = (
            self.db.query(func.coalesce(func.sum(Table.capacity), 0))
            .filter(Table.is_active.is_(True), Table.status == TableStatus.AVAILABLE)
            .scalar()
        )
        return int(total_capacity or 0) >= guest_count

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_reservation(self, reservation_id: Union[str, UUID]) -> Optional[Reservation]:
        return (
            self.db.query(Reservation)
            .filter(Reservation.id == _as_uuid(reservation_id, "reservation id"))
            .first()
        )

    def get_reservations_by_date(self, for_date: Optional[date] = None) -> List[Reservation]:
        """Reservations arriving on ``for_date`` (today by default), earliest first"""
        for_date = for_date or date.today()
        start = datetime.combine(for_date, time.min)
        end = start + timedelta(days=1)
        return (
            self.db.query(Reservation)
            .filter(Reservation.arrival_time >= start, Reservation.arrival_time < end)
            .order_by(Reservation.arrival_time)
            .all()
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_reservation(self, data: ReservationCreate) -> Reservation:
        """Create a booking, optionally holding a table for it right away"""
        name = (data.customer_name or "").strip()
        if not name:
            raise ValidationError("customer name is required")
        if not validate_phone_number(data.customer_phone):
            raise ValidationError("invalid phone number", error_code="INVALID_PHONE")
        arrival_time = to_local_naive(data.arrival_time)
        self._validate_arrival_time(arrival_time)
        self._validate_guests(data.number_of_guests)

        reservation = Reservation(
            reservation_code=self.generate_reservation_code(arrival_time.date()),
            customer_name=name,
            customer_phone=data.customer_phone.strip(),
            customer_email=data.customer_email,
            arrival_time=arrival_time,
            number_of_guests=data.number_of_guests,
            status=ReservationStatus.PENDING,
            room_id=data.room_id,
            notes=data.notes,
        )

        try:
            self._add_items(reservation, data.pre_ordered_items)
            self.db.add(reservation)
            self.db.flush()

            if data.table_id is not None:
                with self._hold(reservation.id, [data.table_id]):
                    self._hold_table(reservation, self._load_table(data.table_id))
                    self.db.commit()
            else:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Created reservation {reservation.reservation_code} for {reservation.number_of_guests} "
            f"guest(s) at {reservation.arrival_time}"
        )
        emit_reservation_event(
            ReservationCreatedEvent(
                reservation_id=str(reservation.id),
                reservation_code=reservation.reservation_code,
                number_of_guests=reservation.number_of_guests,
                arrival_time=reservation.arrival_time.isoformat(),
            )
        )
        return reservation

    def update_reservation(
        self, reservation_id: Union[str, UUID], data: ReservationUpdate
    ) -> Reservation:
        """Update booking details of a pending or confirmed reservation"""
        reservation_id = _as_uuid(reservation_id, "reservation id")
        changes: Dict[str, Any] = data.model_dump(
            exclude_unset=True, exclude={"reservation_id", "pre_ordered_items"}
        )

        with self._hold(reservation_id):
            reservation = self._load(reservation_id, for_update=True)
            self._require_active(reservation, "update")

            if "customer_name" in changes:
                changes["customer_name"] = (changes["customer_name"] or "").strip()
                if not changes["customer_name"]:
                    raise ValidationError("customer name is required")
            if "customer_phone" in changes:
                if not validate_phone_number(changes["customer_phone"]):
                    raise ValidationError("invalid phone number", error_code="INVALID_PHONE")
                changes["customer_phone"] = changes["customer_phone"].strip()
            if "arrival_time" in changes:
                changes["arrival_time"] = to_local_naive(changes["arrival_time"])
                self._validate_arrival_time(changes["arrival_time"])
            if "number_of_guests" in changes:
                self._validate_guests(changes["number_of_guests"])
                if (
                    reservation.table is not None
                    and reservation.table.capacity < changes["number_of_guests"]
                ):
                    raise ConflictError(
                        "insufficient table capacity for number of guests",
                        error_code="INSUFFICIENT_CAPACITY",
                    )

            try:
                for key, value in changes.items():
                    setattr(reservation, key, value)
                if data.pre_ordered_items is not None:
                    reservation.items.clear()
                    self._add_items(reservation, data.pre_ordered_items)
            except Exception:
                self.db.rollback()
                raise

            self._commit(
                ReservationUpdatedEvent(
                    reservation_id=str(reservation.id),
                    reservation_code=reservation.reservation_code,
                    changes={key: str(value) for key, value in changes.items()},
                )
            )

        logger.info(f"Updated reservation {reservation.reservation_code}: {sorted(changes)}")
        return reservation

    def confirm_reservation(self, reservation_id: Union[str, UUID]) -> Reservation:
        reservation_id = _as_uuid(reservation_id, "reservation id")
        with self._hold(reservation_id):
            reservation = self._load(reservation_id, for_update=True)
            if reservation.status == ReservationStatus.CONFIRMED:
                return reservation
            self._require_active(reservation, "confirm")

            reservation.status = ReservationStatus.CONFIRMED
            reservation.confirmed_at = datetime.utcnow()
            self._commit(
                ReservationConfirmedEvent(
                    reservation_id=str(reservation.id),
                    reservation_code=reservation.reservation_code,
                )
            )

        logger.info(f"Confirmed reservation {reservation.reservation_code}")
        return reservation

    def assign_table(
        self, reservation_id: Union[str, UUID], table_id: Union[str, UUID]
    ) -> bool:
        """
        Hold a table for a reservation.

        Raises:
            NotFoundError: unknown reservation or table
            ConflictError: capacity below the number of guests, or table not Available
        """
        reservation_id = _as_uuid(reservation_id, "reservation id")
        table_id = _as_uuid(table_id, "table id")

        current = self.get_reservation(reservation_id)
        if current is None:
            raise NotFoundError("reservation not found", error_code="RESERVATION_NOT_FOUND")

        with self._hold(reservation_id, [table_id, current.table_id]):
            try:
                reservation = self._load(reservation_id, for_update=True)
                table = self._load_table(table_id)
                self._require_active(reservation, "assign a table to")
                self._hold_table(reservation, table)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        logger.info(
            f"Assigned table {table.table_number} to reservation {reservation.reservation_code}"
        )
        emit_reservation_event(
            ReservationTableAssignedEvent(
                reservation_id=str(reservation.id),
                reservation_code=reservation.reservation_code,
                table_id=str(table.id),
                table_number=table.table_number,
            )
        )
        return True

    def confirm_arrival(self, reservation_id: Union[str, UUID]) -> Reservation:
        """Seat the guests: reservation SEATED, held table Occupied with an open session"""
        reservation_id = _as_uuid(reservation_id, "reservation id")
        current = self.get_reservation(reservation_id)
        if current is None:
            raise NotFoundError("reservation not found", error_code="RESERVATION_NOT_FOUND")

        with self._hold(reservation_id, [current.table_id]):
            try:
                reservation = self._load(reservation_id, for_update=True)
                self._require_active(reservation, "confirm arrival for")

                table = None
                if reservation.table_id is not None:
                    table = self._load_table(reservation.table_id)
                    if table.status == TableStatus.OCCUPIED or not is_transition_allowed(
                        table.status, TableStatus.OCCUPIED
                    ):
                        raise ConflictError(
                            "table is not available", error_code="TABLE_NOT_AVAILABLE"
                        )
                    self.table_state.apply_status(
                        table,
                        TableStatus.OCCUPIED,
                        reason=f"Reservation {reservation.reservation_code} arrived",
                    )
                    active = (
                        self.db.query(TableSession.id)
                        .filter(
                            TableSession.table_id == table.id,
                            TableSession.status == SessionStatus.ACTIVE,
                        )
                        .first()
                    )
                    if active is None:
                        self.db.add(
                            TableSession(
                                table_id=table.id,
                                status=SessionStatus.ACTIVE,
                                invoice_name=f"{reservation.customer_name} ({reservation.reservation_code})",
                                total_amount=0,
                                check_in_time=datetime.utcnow(),
                            )
                        )
                    else:
                        logger.info(
                            f"Table {table.table_number} already has active session "
                            f"{active.id}; seating {reservation.reservation_code} on it"
                        )

                reservation.status = ReservationStatus.SEATED
                reservation.seated_at = datetime.utcnow()
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        logger.info(f"Reservation {reservation.reservation_code} seated")
        emit_reservation_event(
            ReservationSeatedEvent(
                reservation_id=str(reservation.id),
                reservation_code=reservation.reservation_code,
                table_number=table.table_number if table else None,
            )
        )
        return reservation

    def cancel_reservation(
        self, reservation_id: Union[str, UUID], reason: Optional[str] = None
    ) -> Reservation:
        reservation_id = _as_uuid(reservation_id, "reservation id")
        current = self.get_reservation(reservation_id)
        if current is None:
            raise NotFoundError("reservation not found", error_code="RESERVATION_NOT_FOUND")

        with self._hold(reservation_id, [current.table_id]):
            try:
                reservation = self._load(reservation_id, for_update=True)
                self._require_active(reservation, "cancel")

                self._release_table(
                    reservation, reason=f"Reservation {reservation.reservation_code} cancelled"
                )
                reservation.status = ReservationStatus.CANCELLED
                reservation.cancellation_reason = reason
                reservation.cancelled_at = datetime.utcnow()
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        logger.info(f"Cancelled reservation {reservation.reservation_code}: {reason or 'no reason'}")
        emit_reservation_event(
            ReservationCancelledEvent(
                reservation_id=str(reservation.id),
                reservation_code=reservation.reservation_code,
                reason=reason,
            )
        )
        return reservation
