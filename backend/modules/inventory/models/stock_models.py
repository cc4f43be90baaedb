# backend/modules/inventory/models/stock_models.py

import uuid

from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    ForeignKey,
    Numeric,
    Uuid,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from core.database import Base
from core.mixins import TimestampMixin


class ProductVariant(Base, TimestampMixin):
    """A sellable size/flavour of a product with its current price"""

    __tablename__ = "product_variants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_name = Column(String(150), nullable=False)
    size = Column(String(20))
    price = Column(Numeric(15, 2), nullable=False)
    original_price = Column(Numeric(15, 2))
    is_active = Column(Boolean, default=True, nullable=False)

    stocks = relationship("ProductStock", back_populates="variant")

    @property
    def display_name(self) -> str:
        if self.size:
            return f"{self.product_name} ({self.size})"
        return self.product_name


class Inventory(Base, TimestampMixin):
    """Storage location holding product stock"""

    __tablename__ = "inventories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    store_location = Column(String(100), nullable=False)

    stocks = relationship("ProductStock", back_populates="inventory")


class ProductStock(Base, TimestampMixin):
    """Sellable quantity of one variant at one inventory location"""

    __tablename__ = "product_stocks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    variant_id = Column(Uuid, ForeignKey("product_variants.id"), nullable=False)
    inventory_id = Column(Uuid, ForeignKey("inventories.id"), nullable=False)
    amount = Column(Integer, nullable=False, default=0)

    variant = relationship("ProductVariant", back_populates="stocks")
    inventory = relationship("Inventory", back_populates="stocks")

    __table_args__ = (
        UniqueConstraint("variant_id", "inventory_id", name="uix_stock_variant_inventory"),
        CheckConstraint("amount >= 0", name="chk_stock_amount_non_negative"),
    )
