# app/models/product.py
"""
Catalog domain models: Product, ProductVariant.

Specifics:
- A product is identified by its unique name and owns an ordered list of variants.
- Variant ids are supplied by the catalog manager and are the table primary key,
  so they are unique across the whole catalog and addressable without product context.
- `stock >= 0` is enforced by a CHECK constraint on top of the conditional decrement.
- Money fields: Numeric(14, 2).
- Deleting a product removes its variants (ORM cascade + ON DELETE CASCADE).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.core.db import Base


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    image: Mapped[str] = mapped_column(String(500), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    variants: Mapped[list[ProductVariant]] = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProductVariant.position",
    )

    @validates("name")
    def _validate_name(self, _key: str, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("Product name must not be empty")
        return value

    def find_variant(self, variant_id: int) -> Optional[ProductVariant]:
        for v in self.variants:
            if v.id == variant_id:
                return v
        return None

    @property
    def next_position(self) -> int:
        return max((v.position for v in self.variants), default=-1) + 1

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} variants={len(self.variants)}>"


class ProductVariant(Base):
    __tablename__ = "product_variants"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_variant_stock_nonneg"),
        CheckConstraint("price >= 0", name="ck_variant_price_nonneg"),
        Index("ix_variant_product_position", "product_id", "position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image: Mapped[str] = mapped_column(String(500), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product: Mapped[Product] = relationship("Product", back_populates="variants")

    @validates("stock")
    def _validate_stock(self, _key: str, value: int) -> int:
        if value is None or int(value) < 0:
            raise ValueError("Stock cannot be negative")
        return int(value)

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id} product_id={self.product_id} stock={self.stock}>"
