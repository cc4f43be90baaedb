# backend/modules/orders/tests/test_checkout.py

"""
Tests for session checkout and the pricing arithmetic behind it.
"""

import uuid
from decimal import Decimal

import pytest

from core.exceptions import NotFoundError, ValidationError
from modules.orders.models.order_models import (
    DiscountType,
    Invoice,
    OrderPaymentStatus,
    SessionStatus,
    TableSession,
)
from modules.orders.services.order_calculation_service import OrderCalculationService
from modules.orders.services.order_service import OrderService
from modules.tables.models.table_models import TableStatus


@pytest.fixture
def service(db_session):
    return OrderService(db_session)


@pytest.fixture
def seated_table(service, restaurant):
    """Table 1 with one order of 2 x 45000 (total 99000 incl. VAT)"""
    table = restaurant["table1"]
    service.create_order_and_notify_kitchen(
        table.id,
        [{"variant_id": restaurant["variant"].id, "quantity": 2}],
        None,
        "Table 1 - Invoice 1",
        None,
    )
    return table


class TestCalculation:
    @pytest.fixture
    def calculator(self):
        return OrderCalculationService(vat_rate="0.10")

    def test_order_totals(self, calculator):
        totals = calculator.calculate_order_totals([(Decimal("45000"), 2)])

        assert totals.sub_total == Decimal("90000.00")
        assert totals.vat == Decimal("9000.00")
        assert totals.total_amount == Decimal("99000.00")

    def test_percent_discount_applies_before_vat(self, calculator):
        totals = calculator.calculate_checkout_totals(
            Decimal("90000"), 10, DiscountType.PERCENT
        )

        assert totals.discount_amount == Decimal("9000.00")
        assert totals.vat == Decimal("8100.00")
        assert totals.total_amount == Decimal("89100.00")

    def test_amount_discount(self, calculator):
        totals = calculator.calculate_checkout_totals(
            Decimal("90000"), "20000", DiscountType.AMOUNT
        )

        assert totals.discount_amount == Decimal("20000.00")
        assert totals.total_amount == Decimal("77000.00")

    def test_rounding_is_half_up(self, calculator):
        totals = calculator.calculate_order_totals([(Decimal("0.05"), 1)])

        assert totals.vat == Decimal("0.01")

    @pytest.mark.parametrize(
        "discount,kind",
        [
            (-1, DiscountType.PERCENT),
            (101, DiscountType.PERCENT),
            (100001, DiscountType.AMOUNT),
        ],
    )
    def test_discount_out_of_range(self, calculator, discount, kind):
        with pytest.raises(ValidationError):
            calculator.calculate_checkout_totals(Decimal("100000"), discount, kind)


class TestCheckout:
    def test_checkout_closes_session_and_frees_table(
        self, service, db_session, seated_table
    ):
        result = service.checkout(seated_table.id, "CASH", Decimal("100000"))

        assert result["invoice_number"].startswith("INV")
        assert result["total_amount"] == Decimal("99000.00")
        assert result["change_amount"] == Decimal("1000.00")

        session = db_session.query(TableSession).filter_by(
            id=uuid.UUID(result["session_id"])
        ).one()
        assert session.status == SessionStatus.CLOSED
        assert session.check_out_time is not None
        assert all(
            order.payment_status == OrderPaymentStatus.PAID for order in session.orders
        )

        db_session.refresh(seated_table)
        assert seated_table.status == TableStatus.AVAILABLE

        invoice = db_session.query(Invoice).filter_by(
            invoice_number=result["invoice_number"]
        ).one()
        assert invoice.amount_paid == Decimal("100000.00")

    def test_checkout_aggregates_all_unpaid_orders(
        self, service, restaurant, seated_table
    ):
        service.create_order_and_notify_kitchen(
            seated_table.id,
            [{"variant_id": restaurant["variant"].id, "quantity": 1}],
            None,
            None,
            None,
        )

        result = service.checkout(seated_table.id, "CARD", 200000, discount=10)

        assert result["order_count"] == 2
        assert result["sub_total"] == Decimal("135000.00")
        assert result["discount_amount"] == Decimal("13500.00")
        assert result["total_amount"] == Decimal("133650.00")

    def test_cancelled_orders_are_not_billed(self, service, restaurant, seated_table):
        extra = service.create_order_and_notify_kitchen(
            seated_table.id,
            [{"variant_id": restaurant["variant"].id, "quantity": 5}],
            None,
            None,
            None,
        )
        service.update_order_status(extra["order_id"], "Cancelled")

        result = service.checkout(seated_table.id, "CASH", 99000)

        assert result["order_count"] == 1
        assert result["change_amount"] == Decimal("0.00")

    def test_underpayment_is_rejected_without_change(
        self, service, db_session, seated_table
    ):
        with pytest.raises(ValidationError) as exc_info:
            service.checkout(seated_table.id, "CASH", Decimal("50000"))

        assert str(exc_info.value) == "amount paid is less than the amount due"
        session = service.get_active_session(seated_table.id)
        assert session is not None
        db_session.refresh(seated_table)
        assert seated_table.status == TableStatus.OCCUPIED
        assert db_session.query(Invoice).count() == 0

    def test_no_active_session(self, service, restaurant):
        with pytest.raises(NotFoundError) as exc_info:
            service.checkout(restaurant["table2"].id, "CASH", 1000)
        assert str(exc_info.value) == "no active session for table"

    def test_session_without_billable_orders(self, service, db_session, restaurant):
        db_session.add(
            TableSession(
                table_id=restaurant["table2"].id,
                status=SessionStatus.ACTIVE,
                invoice_name="Empty",
                total_amount=0,
            )
        )
        db_session.commit()

        with pytest.raises(ValidationError) as exc_info:
            service.checkout(restaurant["table2"].id, "CASH", 1000)
        assert str(exc_info.value) == "no orders to check out"

    def test_invalid_payment_method(self, service, seated_table):
        with pytest.raises(ValidationError):
            service.checkout(seated_table.id, "BARTER", 100000)

    def test_takeaway_checkout_by_invoice_name(self, service, db_session, restaurant):
        service.create_order_and_notify_kitchen(
            None,
            [{"variant_id": restaurant["variant"].id, "quantity": 1}],
            None,
            "Delivery 12",
            None,
        )

        result = service.checkout(None, "TRANSFER", 49500, invoice_name="Delivery 12")

        assert result["invoice_name"] == "Delivery 12"
        assert service.get_active_session(None, "Delivery 12") is None

    def test_takeaway_invoice_name_is_trimmed(self, service, restaurant):
        service.create_order_and_notify_kitchen(
            None,
            [{"variant_id": restaurant["variant"].id, "quantity": 1}],
            None,
            "  Delivery 12  ",
            None,
        )

        result = service.checkout(None, "CASH", 49500, invoice_name="  Delivery 12  ")

        assert result["invoice_name"] == "Delivery 12"
        assert result["total_amount"] == Decimal("49500.00")

    def test_fully_cancelled_session_is_closed_without_invoice(
        self, service, db_session, restaurant
    ):
        table = restaurant["table1"]
        placed = service.create_order_and_notify_kitchen(
            table.id,
            [{"variant_id": restaurant["variant"].id, "quantity": 2}],
            None,
            "Table 1 - Invoice 1",
            None,
        )
        service.update_order_status(placed["order_id"], "Cancelled")

        result = service.checkout(table.id, "CASH", 0)

        assert result["invoice_number"] is None
        assert result["order_count"] == 0
        assert result["total_amount"] == Decimal("0.00")
        session = db_session.get(TableSession, uuid.UUID(placed["session_id"]))
        assert session.status == SessionStatus.CLOSED
        assert session.check_out_time is not None
        db_session.refresh(table)
        assert table.status == TableStatus.AVAILABLE
        assert db_session.query(Invoice).count() == 0

    def test_table_can_be_reused_after_checkout(self, service, restaurant, seated_table):
        first = service.checkout(seated_table.id, "CASH", 99000)

        again = service.create_order_and_notify_kitchen(
            seated_table.id,
            [{"variant_id": restaurant["variant"].id, "quantity": 1}],
            None,
            "Table 1 - Invoice 2",
            None,
        )

        assert again["session_id"] != first["session_id"]
