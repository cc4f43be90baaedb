# backend/modules/orders/models/order_models.py

import uuid
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Numeric,
    Uuid,
    Enum as SQLEnum,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from core.database import Base
from core.mixins import TimestampMixin
# Registers the Table and ProductVariant mappers referenced below
from modules.inventory.models.stock_models import ProductVariant  # noqa: F401
from modules.tables.models.table_models import Table  # noqa: F401
from ..enums.order_enums import (
    OrderStatus,
    OrderPaymentStatus,
    SessionStatus,
    PaymentMethod,
    DiscountType,
)

__all__ = [
    "TableSession",
    "Order",
    "OrderDetail",
    "Invoice",
    "OrderStatus",
    "OrderPaymentStatus",
    "SessionStatus",
    "PaymentMethod",
    "DiscountType",
]


class TableSession(Base, TimestampMixin):
    """One continuous occupancy of a table, or of a take-away/delivery slot"""

    __tablename__ = "table_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Null for take-away / delivery sessions
    table_id = Column(Uuid, ForeignKey("tables.id"), nullable=True, index=True)

    status = Column(SQLEnum(SessionStatus), nullable=False, default=SessionStatus.ACTIVE)
    invoice_name = Column(String(150))
    total_amount = Column(Numeric(15, 2), nullable=False, default=0)

    check_in_time = Column(DateTime, nullable=False, default=datetime.utcnow)
    check_out_time = Column(DateTime)

    table = relationship("Table")
    orders = relationship("Order", back_populates="session", order_by="Order.order_date")


class Order(Base, TimestampMixin):
    """A billable request within a session"""

    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("table_sessions.id"), nullable=False, index=True)
    order_number = Column(String(40), nullable=False, unique=True)
    order_date = Column(DateTime, nullable=False, default=datetime.utcnow)

    status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    payment_status = Column(
        SQLEnum(OrderPaymentStatus), nullable=False, default=OrderPaymentStatus.UNPAID
    )

    sub_total = Column(Numeric(15, 2), nullable=False, default=0)
    vat = Column(Numeric(15, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(15, 2), nullable=False, default=0)
    total_amount = Column(Numeric(15, 2), nullable=False, default=0)
    note = Column(Text)

    session = relationship("TableSession", back_populates="orders")
    details = relationship(
        "OrderDetail", back_populates="order", cascade="all, delete-orphan"
    )


class OrderDetail(Base):
    """One line per distinct product variant within an order"""

    __tablename__ = "order_details"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=False, index=True)
    variant_id = Column(Uuid, ForeignKey("product_variants.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    total_price = Column(Numeric(15, 2), nullable=False)
    special_instructions = Column(String(255))

    order = relationship("Order", back_populates="details")
    variant = relationship("ProductVariant")

    __table_args__ = (
        UniqueConstraint("order_id", "variant_id", name="uix_order_detail_variant"),
        CheckConstraint("quantity > 0", name="chk_order_detail_quantity"),
    )


class Invoice(Base):
    """Checkout result for a session"""

    __tablename__ = "invoices"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_number = Column(String(40), nullable=False, unique=True)
    session_id = Column(Uuid, ForeignKey("table_sessions.id"), nullable=False, unique=True)

    payment_method = Column(SQLEnum(PaymentMethod), nullable=False)
    sub_total = Column(Numeric(15, 2), nullable=False)
    discount_type = Column(SQLEnum(DiscountType))
    discount_value = Column(Numeric(15, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(15, 2), nullable=False, default=0)
    vat = Column(Numeric(15, 2), nullable=False)
    total_amount = Column(Numeric(15, 2), nullable=False)
    amount_paid = Column(Numeric(15, 2), nullable=False)
    change_amount = Column(Numeric(15, 2), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    session = relationship("TableSession")
