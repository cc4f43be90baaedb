from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PREPARING = "Preparing"
    READY = "Ready"
    SERVED = "Served"
    CANCELLED = "Cancelled"


class OrderPaymentStatus(str, Enum):
    UNPAID = "Unpaid"
    PAID = "Paid"


class SessionStatus(str, Enum):
    ACTIVE = "Active"
    CLOSED = "Closed"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    TRANSFER = "TRANSFER"
    EWALLET = "EWALLET"


class DiscountType(str, Enum):
    PERCENT = "percent"
    AMOUNT = "amount"
