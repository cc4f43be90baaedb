# backend/modules/inventory/services/stock_ledger.py

"""
Authoritative sellable-quantity tracker per product variant.

The ledger never commits: deductions and restocks are written inside the
caller's unit of work so that an order and its stock movement succeed or
fail together.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError, ValidationError
from ..models.stock_models import ProductStock, ProductVariant

logger = logging.getLogger(__name__)


class StockLedger:
    """Stock deduction and restock over ``ProductStock`` rows"""

    def __init__(self, db: Session):
        self.db = db

    def _locked_stock(self, variant_id: UUID) -> Optional[ProductStock]:
        # Highest stock first so a single location covers the line when possible
        return (
            self.db.query(ProductStock)
            .filter(ProductStock.variant_id == variant_id)
            .order_by(ProductStock.amount.desc())
            .with_for_update()
            .first()
        )

    def get_variant(self, variant_id: UUID) -> Optional[ProductVariant]:
        return (
            self.db.query(ProductVariant)
            .filter(ProductVariant.id == variant_id, ProductVariant.is_active.is_(True))
            .first()
        )

    def has_stock_record(self, variant_id: UUID) -> bool:
        return (
            self.db.query(ProductStock.id)
            .filter(ProductStock.variant_id == variant_id)
            .first()
            is not None
        )

    def get_quantity(self, variant_id: UUID) -> int:
        """Total sellable quantity of a variant across all locations"""
        total = (
            self.db.query(func.coalesce(func.sum(ProductStock.amount), 0))
            .filter(ProductStock.variant_id == variant_id)
            .scalar()
        )
        return int(total or 0)

    def deduct(self, variant_id: UUID, quantity: int) -> int:
        """
        Decrement the stock of ``variant_id`` by ``quantity``.

        Returns:
            The new quantity of the stock row that was decremented

        Raises:
            ValidationError: quantity is not positive
            NotFoundError: the variant has no stock record
            ConflictError: the stock is insufficient
        """
        if quantity is None or quantity < 1:
            raise ValidationError("quantity must be at least 1")

        stock = self._locked_stock(variant_id)
        if stock is None:
            raise NotFoundError(
                f"stock record not found for variant {variant_id}",
                error_code="STOCK_NOT_FOUND",
            )

        # Guarded decrement; ``stock`` may be stale once other tables sell the variant
        result = self.db.execute(
            update(ProductStock)
            .where(ProductStock.id == stock.id, ProductStock.amount >= quantity)
            .values(amount=ProductStock.amount - quantity)
            .execution_options(synchronize_session=False)
        )
        self.db.expire(stock, ["amount"])

        if result.rowcount == 0:
            logger.warning(
                f"Insufficient stock for variant {variant_id}: "
                f"available {stock.amount}, requested {quantity}"
            )
            raise ConflictError(
                f"insufficient stock for variant {variant_id}: "
                f"available {stock.amount}, requested {quantity}",
                error_code="INSUFFICIENT_STOCK",
            )

        logger.debug(f"Deducted {quantity} of variant {variant_id}, {stock.amount} left")
        return stock.amount

    def restock(self, variant_id: UUID, quantity: int) -> int:
        """Return ``quantity`` units of ``variant_id`` to stock (e.g. a cancelled order)"""
        if quantity is None or quantity < 1:
            raise ValidationError("quantity must be at least 1")

        stock = self._locked_stock(variant_id)
        if stock is None:
            raise NotFoundError(
                f"stock record not found for variant {variant_id}",
                error_code="STOCK_NOT_FOUND",
            )

        self.db.execute(
            update(ProductStock)
            .where(ProductStock.id == stock.id)
            .values(amount=ProductStock.amount + quantity)
            .execution_options(synchronize_session=False)
        )
        self.db.expire(stock, ["amount"])

        logger.info(f"Restocked {quantity} of variant {variant_id}, now {stock.amount}")
        return stock.amount
