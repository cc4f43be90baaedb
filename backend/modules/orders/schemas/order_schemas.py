# backend/modules/orders/schemas/order_schemas.py

"""
Request and response bodies for the cashier endpoints.

Fields are exposed in camelCase (``tableId``, ``amountPaid``) and also
accepted by their Python names.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..enums.order_enums import DiscountType, OrderStatus, PaymentMethod


class CashierModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderItemRequest(CashierModel):
    variant_id: UUID
    # Range is checked by the service so the caller gets its message
    quantity: int
    note: Optional[str] = Field(None, max_length=255)


class OrderCreateRequest(CashierModel):
    table_id: Optional[UUID] = None
    items: List[OrderItemRequest] = []
    discount: Optional[Decimal] = None
    invoice_name: Optional[str] = Field(None, max_length=150)
    note: Optional[str] = None


class OrderCreateResponse(CashierModel):
    success: bool = True
    message: str = "Order created and sent to the kitchen"
    order_id: UUID
    order_number: str
    session_id: UUID
    total_amount: Decimal


class CheckoutRequest(CashierModel):
    table_id: Optional[UUID] = None
    invoice_name: Optional[str] = None
    payment_method: PaymentMethod
    amount_paid: Decimal
    discount: Optional[Decimal] = None
    discount_type: DiscountType = DiscountType.PERCENT


class CheckoutResponse(CashierModel):
    success: bool = True
    message: str = "Checkout completed"
    invoice_number: Optional[str] = None
    session_id: UUID
    invoice_name: Optional[str] = None
    payment_method: PaymentMethod
    order_count: int
    sub_total: Decimal
    discount_amount: Decimal
    vat: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    change_amount: Decimal


class OrderStatusUpdateRequest(CashierModel):
    # Free text so an unknown status is reported by the service as "invalid status"
    status: str


class OrderStatusUpdateResponse(CashierModel):
    success: bool = True
    message: str
    order_id: UUID
    status: OrderStatus


class NextInvoiceNumberResponse(CashierModel):
    success: bool = True
    message: str = "OK"
    invoice_name: str


class NotificationItem(CashierModel):
    order_id: UUID
    order_number: str
    table_name: Optional[str] = None
    status: OrderStatus
    order_date: datetime
    item_count: int
    note: Optional[str] = None


class NotificationHistoryResponse(CashierModel):
    success: bool = True
    message: str = "OK"
    notifications: List[NotificationItem]
