# backend/modules/orders/services/order_service.py

"""
Session and order coordination for the cashier.

Every write path runs as one unit of work under the per-table lock: session
lookup-or-create, order lines, stock deduction, the session running total
and the table status either all persist or none do. Kitchen notification
happens after the commit and never affects the caller.
"""

import itertools
import logging
import threading
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy.orm import Session

from core.config import get_settings
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.locks import KeyedLockManager, table_lock_key, table_locks
from modules.inventory.services.stock_ledger import StockLedger
from modules.tables.models.table_models import Table, TableStatus
from modules.tables.services.table_state_service import (
    TableStateService,
    is_transition_allowed,
)
from ..enums.order_enums import (
    DiscountType,
    OrderPaymentStatus,
    OrderStatus,
    PaymentMethod,
    SessionStatus,
)
from ..events.order_events import (
    OrderCreatedEvent,
    OrderStatusChangedEvent,
    SessionCheckedOutEvent,
    emit_order_event,
)
from ..models.order_models import Invoice, Order, OrderDetail, TableSession
from .order_calculation_service import OrderCalculationService, to_decimal

logger = logging.getLogger(__name__)

_sequence = itertools.count(1)
_sequence_lock = threading.Lock()


def generate_document_number(prefix: str) -> str:
    """``prefix`` + UTC timestamp + process-wide sequence, unique per process"""
    with _sequence_lock:
        seq = next(_sequence)
    return f"{prefix}{datetime.utcnow().strftime('%Y%m%d%H%M%S')}{seq:06d}"


def _item_value(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def _as_uuid(value: Union[str, UUID], label: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"invalid {label}: {value}")


def parse_order_status(value: Union[str, OrderStatus]) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    if isinstance(value, str):
        candidate = value.strip().lower()
        for status in OrderStatus:
            if candidate in (status.value.lower(), status.name.lower()):
                return status
    raise ValidationError("invalid status")


class OrderService:
    """Cashier-facing coordinator over sessions, orders, stock and table status"""

    def __init__(
        self,
        db: Session,
        locks: Optional[KeyedLockManager] = None,
        calculator: Optional[OrderCalculationService] = None,
    ):
        self.db = db
        self.locks = locks or table_locks
        self.calculator = calculator or OrderCalculationService()
        self.ledger = StockLedger(db)
        self.table_state = TableStateService(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_table(self, table_id: UUID, for_update: bool = False) -> Table:
        table = self.table_state.get_table(table_id, for_update=for_update)
        if table is None or not table.is_active:
            raise NotFoundError("table not found", error_code="TABLE_NOT_FOUND")
        return table

    def _find_active_session(
        self,
        table_id: Optional[UUID],
        invoice_name: Optional[str] = None,
        for_update: bool = False,
    ) -> Optional[TableSession]:
        query = self.db.query(TableSession).filter(
            TableSession.status == SessionStatus.ACTIVE
        )
        if table_id is not None:
            query = query.filter(TableSession.table_id == table_id)
        else:
            query = query.filter(
                TableSession.table_id.is_(None),
                TableSession.invoice_name == invoice_name,
            )
        if for_update:
            query = query.with_for_update()
        return query.order_by(TableSession.check_in_time.desc()).first()

    def get_active_session(
        self, table_id: Optional[UUID], invoice_name: Optional[str] = None
    ) -> Optional[TableSession]:
        """The open session of a table, or of a take-away invoice when no table is given"""
        return self._find_active_session(table_id, invoice_name)

    def get_session_orders(self, session_id: UUID) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.session_id == session_id)
            .order_by(Order.order_date)
            .all()
        )

    def get_order(self, order_id: UUID) -> Optional[Order]:
        return self.db.query(Order).filter(Order.id == order_id).first()

    # ------------------------------------------------------------------
    # Order creation
    # ------------------------------------------------------------------

    def _aggregate_lines(self, items: Optional[Sequence[Any]]) -> "OrderedDict[UUID, Dict]":
        """Collapse repeated variants into one line; first non-empty note wins"""
        if not items:
            raise ValidationError("item list must not be empty")

        lines: "OrderedDict[UUID, Dict]" = OrderedDict()
        for item in items:
            quantity = _item_value(item, "quantity")
            if isinstance(quantity, bool) or not isinstance(quantity, int):
                raise ValidationError("quantity must be a whole number")
            if quantity < 1:
                raise ValidationError("quantity must be at least 1")

            variant_id = _as_uuid(_item_value(item, "variant_id"), "variant id")
            note = _item_value(item, "note")
            note = note.strip() if isinstance(note, str) else None

            line = lines.get(variant_id)
            if line is None:
                lines[variant_id] = {"quantity": quantity, "note": note or None}
            else:
                line["quantity"] += quantity
                if not line["note"] and note:
                    line["note"] = note
        return lines

    def create_order_and_notify_kitchen(
        self,
        table_id: Optional[Union[str, UUID]],
        items: Optional[Sequence[Any]],
        discount: Optional[Union[Decimal, int, float, str]] = None,
        invoice_name: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Place an order on a table (or a take-away invoice) and notify the kitchen.

        Args:
            table_id: Physical table, or None for take-away/delivery
            items: Lines carrying ``variant_id``, ``quantity`` and optional ``note``
            discount: Requested discount, recorded on the order and applied at checkout
            invoice_name: Display name for a newly opened session
            note: Free-text order note

        Returns:
            ``order_id``, ``order_number``, ``session_id`` and ``total_amount``
        """
        lines = self._aggregate_lines(items)

        if table_id is not None:
            table_id = _as_uuid(table_id, "table id")
        else:
            invoice_name = (invoice_name or "").strip()
            if not invoice_name:
                raise ValidationError("invoice name is required for orders without a table")

        with self.locks.hold(table_lock_key(table_id, invoice_name)):
            try:
                table = None
                if table_id is not None:
                    table = self._get_table(table_id, for_update=True)
                    if not is_transition_allowed(table.status, TableStatus.OCCUPIED):
                        raise ConflictError(
                            f"table {table.table_number} is {table.status.value} "
                            f"and cannot take orders",
                            error_code="TABLE_NOT_AVAILABLE",
                        )

                variants = {}
                for variant_id in lines:
                    variant = self.ledger.get_variant(variant_id)
                    if variant is None or not self.ledger.has_stock_record(variant_id):
                        raise NotFoundError(
                            f"variant not found: {variant_id}",
                            error_code="VARIANT_NOT_FOUND",
                        )
                    variants[variant_id] = variant

                session = self._find_active_session(table_id, invoice_name, for_update=True)
                if session is None:
                    session = TableSession(
                        table_id=table_id,
                        status=SessionStatus.ACTIVE,
                        invoice_name=invoice_name,
                        total_amount=Decimal("0.00"),
                        check_in_time=datetime.utcnow(),
                    )
                    self.db.add(session)
                    self.db.flush()
                    logger.info(f"Opened session {session.id} ({invoice_name})")

                totals = self.calculator.calculate_order_totals(
                    (variants[variant_id].price, line["quantity"])
                    for variant_id, line in lines.items()
                )

                order = Order(
                    session_id=session.id,
                    order_number=generate_document_number("ORD"),
                    order_date=datetime.utcnow(),
                    status=OrderStatus.PENDING,
                    payment_status=OrderPaymentStatus.UNPAID,
                    sub_total=totals.sub_total,
                    vat=totals.vat,
                    discount_amount=to_decimal(discount),
                    total_amount=totals.total_amount,
                    note=note,
                )
                for variant_id, line in lines.items():
                    unit_price = to_decimal(variants[variant_id].price)
                    order.details.append(
                        OrderDetail(
                            variant_id=variant_id,
                            quantity=line["quantity"],
                            unit_price=unit_price,
                            total_price=unit_price * line["quantity"],
                            special_instructions=line["note"],
                        )
                    )
                self.db.add(order)

                for variant_id, line in lines.items():
                    self.ledger.deduct(variant_id, line["quantity"])

                if table is not None:
                    self.table_state.apply_status(
                        table, TableStatus.OCCUPIED, reason=f"Order {order.order_number}"
                    )

                session.total_amount = to_decimal(session.total_amount) + totals.total_amount
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        logger.info(
            f"Created order {order.order_number} with {len(lines)} line(s), "
            f"total {totals.total_amount}, session {session.id}"
        )

        emit_order_event(
            OrderCreatedEvent(
                order_id=str(order.id),
                session_id=str(session.id),
                order_number=order.order_number,
                table_name=(table.table_name or table.table_number) if table else invoice_name,
                items=[
                    {
                        "variant_id": str(variant_id),
                        "name": variants[variant_id].display_name,
                        "quantity": line["quantity"],
                        "note": line["note"],
                    }
                    for variant_id, line in lines.items()
                ],
                note=note,
            )
        )

        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "session_id": str(session.id),
            "total_amount": totals.total_amount,
        }

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def checkout(
        self,
        table_id: Optional[Union[str, UUID]],
        payment_method: Union[str, PaymentMethod],
        amount_paid: Union[Decimal, int, float, str],
        discount: Optional[Union[Decimal, int, float, str]] = None,
        discount_type: Optional[Union[str, DiscountType]] = DiscountType.PERCENT,
        invoice_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Settle every unpaid order of the active session and release the table.

        A session whose orders were all cancelled is closed without an invoice;
        ``invoice_number`` is then None.

        Raises:
            NotFoundError: no active session for the table
            ValidationError: nothing to check out, bad payment input, or underpayment
        """
        try:
            method = PaymentMethod(str(payment_method).strip().upper())
        except ValueError:
            raise ValidationError(f"invalid payment method: {payment_method}")

        try:
            kind = DiscountType(str(discount_type).strip().lower()) if discount_type else None
        except ValueError:
            raise ValidationError(f"invalid discount type: {discount_type}")

        paid = to_decimal(amount_paid)
        if paid < 0:
            raise ValidationError("amount paid must not be negative")

        if table_id is not None:
            table_id = _as_uuid(table_id, "table id")
        else:
            invoice_name = (invoice_name or "").strip()

        with self.locks.hold(table_lock_key(table_id, invoice_name)):
            try:
                session = self._find_active_session(table_id, invoice_name, for_update=True)
                if session is None:
                    raise NotFoundError(
                        "no active session for table", error_code="SESSION_NOT_FOUND"
                    )

                session_orders = self.get_session_orders(session.id)
                if not session_orders:
                    raise ValidationError("no orders to check out", error_code="NO_ORDERS")

                orders = [
                    order
                    for order in session_orders
                    if order.payment_status == OrderPaymentStatus.UNPAID
                    and order.status != OrderStatus.CANCELLED
                ]
                invoice = None
                if orders:
                    sub_total = sum((to_decimal(o.sub_total) for o in orders), Decimal("0.00"))
                    totals = self.calculator.calculate_checkout_totals(sub_total, discount, kind)
                else:
                    # Nothing left to bill; the orders were cancelled
                    totals = self.calculator.calculate_checkout_totals(Decimal("0.00"), None, None)

                if paid < totals.total_amount:
                    raise ValidationError(
                        "amount paid is less than the amount due",
                        error_code="INSUFFICIENT_PAYMENT",
                    )
                change = paid - totals.total_amount

                for order in orders:
                    order.payment_status = OrderPaymentStatus.PAID

                session.status = SessionStatus.CLOSED
                session.check_out_time = datetime.utcnow()
                session.total_amount = totals.total_amount
                self._release_table(session)

                if orders:
                    invoice = Invoice(
                        invoice_number=generate_document_number("INV"),
                        session_id=session.id,
                        payment_method=method,
                        sub_total=totals.sub_total,
                        discount_type=totals.discount_type,
                        discount_value=totals.discount_value,
                        discount_amount=totals.discount_amount,
                        vat=totals.vat,
                        total_amount=totals.total_amount,
                        amount_paid=paid,
                        change_amount=change,
                    )
                    self.db.add(invoice)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        invoice_number = invoice.invoice_number if invoice else None
        if invoice is None:
            logger.info(f"Closed session {session.id} with no billable orders")
        else:
            logger.info(
                f"Checked out session {session.id}: invoice {invoice_number}, "
                f"total {totals.total_amount}, paid {paid} by {method.value}"
            )

        emit_order_event(
            SessionCheckedOutEvent(
                session_id=str(session.id),
                invoice_number=invoice_number,
                table_id=str(session.table_id) if session.table_id else None,
            )
        )

        return {
            "invoice_number": invoice_number,
            "session_id": str(session.id),
            "invoice_name": session.invoice_name,
            "payment_method": method.value,
            "order_count": len(orders),
            "sub_total": totals.sub_total,
            "discount_amount": totals.discount_amount,
            "vat": totals.vat,
            "total_amount": totals.total_amount,
            "amount_paid": paid,
            "change_amount": change,
        }

    def _release_table(self, session: TableSession) -> None:
        """Move the session's table back to Available when the policy allows it"""
        if session.table_id is None:
            return
        table = self.table_state.get_table(session.table_id, for_update=True)
        if table is None:
            return
        if is_transition_allowed(table.status, TableStatus.AVAILABLE):
            self.table_state.apply_status(table, TableStatus.AVAILABLE, reason="Checkout")
        else:
            logger.warning(
                f"Table {table.table_number} left {table.status.value} after checkout"
            )

    # ------------------------------------------------------------------
    # Order status
    # ------------------------------------------------------------------

    def update_order_status(
        self, order_id: Union[str, UUID], status: Union[str, OrderStatus]
    ) -> bool:
        new_status = parse_order_status(status)
        order_id = _as_uuid(order_id, "order id")

        order = self.get_order(order_id)
        if order is None:
            raise NotFoundError("order not found", error_code="ORDER_NOT_FOUND")

        session = order.session
        lock_key = table_lock_key(session.table_id, session.invoice_name)

        with self.locks.hold(lock_key):
            try:
                order = (
                    self.db.query(Order)
                    .filter(Order.id == order_id)
                    .with_for_update()
                    .first()
                )
                previous = order.status
                if previous == new_status:
                    return True

                if previous == OrderStatus.CANCELLED:
                    raise ConflictError(
                        "a cancelled order cannot change status",
                        error_code="ORDER_CANCELLED",
                    )

                if new_status == OrderStatus.CANCELLED:
                    if order.payment_status == OrderPaymentStatus.PAID:
                        raise ConflictError(
                            "a paid order cannot be cancelled", error_code="ORDER_PAID"
                        )
                    if get_settings().restock_on_cancellation:
                        for detail in order.details:
                            self.ledger.restock(detail.variant_id, detail.quantity)
                    order.session.total_amount = to_decimal(
                        order.session.total_amount
                    ) - to_decimal(order.total_amount)

                order.status = new_status
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        logger.info(
            f"Order {order.order_number} status {previous.value} -> {new_status.value}"
        )
        emit_order_event(
            OrderStatusChangedEvent(
                order_id=str(order.id),
                session_id=str(order.session_id),
                previous_status=previous.value,
                new_status=new_status.value,
            )
        )
        return True

    # ------------------------------------------------------------------
    # Cashier helpers
    # ------------------------------------------------------------------

    def get_next_invoice_number(self, table_id: Union[str, UUID]) -> str:
        """Display name for the next session of a table, e.g. "Table 1 - Invoice 3" """
        table = self._get_table(_as_uuid(table_id, "table id"))
        session_count = (
            self.db.query(TableSession).filter(TableSession.table_id == table.id).count()
        )
        return f"{table.table_name or table.table_number} - Invoice {session_count + 1}"

    def get_notification_history(self, days: Optional[int] = None) -> List[Dict[str, Any]]:
        """Kitchen notifications of the last ``days`` days, newest first"""
        if days is None:
            days = get_settings().notification_history_default_days
        if days < 1:
            raise ValidationError("days must be at least 1")

        since = datetime.utcnow() - timedelta(days=days)
        orders = (
            self.db.query(Order)
            .filter(Order.order_date >= since)
            .order_by(Order.order_date.desc())
            .all()
        )

        history = []
        for order in orders:
            table = order.session.table
            history.append(
                {
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "table_name": (table.table_name or table.table_number)
                    if table
                    else order.session.invoice_name,
                    "status": order.status.value,
                    "order_date": order.order_date.isoformat(),
                    "item_count": sum(detail.quantity for detail in order.details),
                    "note": order.note,
                }
            )
        return history
