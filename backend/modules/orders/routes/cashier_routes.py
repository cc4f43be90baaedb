# backend/modules/orders/routes/cashier_routes.py

"""
Cashier API routes: order placement, checkout and kitchen history.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from core.database import get_db
from ..services.order_service import OrderService
from ..schemas.order_schemas import (
    OrderCreateRequest,
    OrderCreateResponse,
    CheckoutRequest,
    CheckoutResponse,
    OrderStatusUpdateRequest,
    OrderStatusUpdateResponse,
    NextInvoiceNumberResponse,
    NotificationHistoryResponse,
    NotificationItem,
)

router = APIRouter(prefix="/api/cashier", tags=["Cashier"])


@router.post(
    "/order/create",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_order(request: OrderCreateRequest, db: Session = Depends(get_db)):
    """
    Place an order and send it to the kitchen.

    Opens a session for the table when none is active, deducts stock and
    marks the table Occupied.
    """
    result = OrderService(db).create_order_and_notify_kitchen(
        table_id=request.table_id,
        items=request.items,
        discount=request.discount,
        invoice_name=request.invoice_name,
        note=request.note,
    )
    return OrderCreateResponse(**result)


@router.post("/checkout", response_model=CheckoutResponse)
def checkout(request: CheckoutRequest, db: Session = Depends(get_db)):
    """Settle the active session of a table and release it"""
    result = OrderService(db).checkout(
        table_id=request.table_id,
        payment_method=request.payment_method,
        amount_paid=request.amount_paid,
        discount=request.discount,
        discount_type=request.discount_type,
        invoice_name=request.invoice_name,
    )
    if result["invoice_number"] is None:
        return CheckoutResponse(message="Session closed, nothing to bill", **result)
    return CheckoutResponse(**result)


@router.put("/orders/{order_id}/status", response_model=OrderStatusUpdateResponse)
def update_order_status(
    order_id: UUID,
    request: OrderStatusUpdateRequest,
    db: Session = Depends(get_db),
):
    service = OrderService(db)
    service.update_order_status(order_id, request.status)
    order = service.get_order(order_id)
    return OrderStatusUpdateResponse(
        message=f"Order {order.order_number} is {order.status.value}",
        order_id=order.id,
        status=order.status,
    )


@router.get("/invoice/next-number", response_model=NextInvoiceNumberResponse)
def get_next_invoice_number(
    table_id: UUID = Query(..., alias="tableId"),
    db: Session = Depends(get_db),
):
    return NextInvoiceNumberResponse(
        invoice_name=OrderService(db).get_next_invoice_number(table_id)
    )


@router.get("/notification/history", response_model=NotificationHistoryResponse)
def get_notification_history(
    days: Optional[int] = Query(None, ge=1, le=90),
    db: Session = Depends(get_db),
):
    """Orders sent to the kitchen during the last ``days`` days"""
    history = OrderService(db).get_notification_history(days)
    return NotificationHistoryResponse(
        notifications=[NotificationItem(**entry) for entry in history]
    )
