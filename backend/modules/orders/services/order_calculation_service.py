# backend/modules/orders/services/order_calculation_service.py

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple, Union
import logging

from core.config import get_settings
from core.exceptions import ValidationError
from ..enums.order_enums import DiscountType

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Optional[Number]) -> Decimal:
    """Exact decimal for money input; floats go through ``str`` to avoid binary drift"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderTotals:
    sub_total: Decimal
    vat: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class CheckoutTotals:
    sub_total: Decimal
    discount_type: Optional[DiscountType]
    discount_value: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    vat: Decimal
    total_amount: Decimal


class OrderCalculationService:
    """Order and checkout arithmetic with exact decimal semantics"""

    def __init__(self, vat_rate: Optional[Number] = None):
        if vat_rate is None:
            vat_rate = get_settings().vat_rate
        self.vat_rate = to_decimal(vat_rate)

    def calculate_vat(self, amount: Decimal) -> Decimal:
        return quantize_money(amount * self.vat_rate)

    def calculate_order_totals(
        self, lines: Iterable[Tuple[Number, int]]
    ) -> OrderTotals:
        """
        Totals for an order.

        Args:
            lines: (unit price, quantity) pairs

        Returns:
            sub_total = sum(price * quantity), vat = sub_total * VAT rate,
            total = sub_total + vat
        """
        sub_total = ZERO
        for unit_price, quantity in lines:
            sub_total += to_decimal(unit_price) * quantity
        sub_total = quantize_money(sub_total)
        vat = self.calculate_vat(sub_total)
        return OrderTotals(sub_total=sub_total, vat=vat, total_amount=sub_total + vat)

    def calculate_discount(
        self,
        sub_total: Decimal,
        discount: Optional[Number],
        discount_type: Optional[DiscountType] = DiscountType.PERCENT,
    ) -> Decimal:
        value = to_decimal(discount)
        if value == 0:
            return ZERO
        if value < 0:
            raise ValidationError("discount must not be negative")

        if discount_type is None or discount_type == DiscountType.PERCENT:
            if value > HUNDRED:
                raise ValidationError("discount percentage must be between 0 and 100")
            return quantize_money(sub_total * value / HUNDRED)

        if value > sub_total:
            raise ValidationError("discount amount must not exceed the subtotal")
        return quantize_money(value)

    def calculate_checkout_totals(
        self,
        sub_total: Decimal,
        discount: Optional[Number] = None,
        discount_type: Optional[DiscountType] = DiscountType.PERCENT,
    ) -> CheckoutTotals:
        """Apply the discount to the aggregated subtotal and recompute VAT on the discounted base"""
        sub_total = quantize_money(to_decimal(sub_total))
        discount_amount = self.calculate_discount(sub_total, discount, discount_type)
        taxable_amount = sub_total - discount_amount
        vat = self.calculate_vat(taxable_amount)
        total_amount = taxable_amount + vat

        logger.debug(
            f"Checkout totals: subtotal {sub_total}, discount {discount_amount}, "
            f"VAT {vat}, total {total_amount}"
        )

        return CheckoutTotals(
            sub_total=sub_total,
            discount_type=discount_type if discount_amount > 0 else None,
            discount_value=to_decimal(discount),
            discount_amount=discount_amount,
            taxable_amount=taxable_amount,
            vat=vat,
            total_amount=total_amount,
        )
