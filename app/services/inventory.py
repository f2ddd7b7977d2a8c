"""
Inventory store primitives.

Every call here hits current database state (no session-cached stock) and is
bounded by STORE_TIMEOUT_SECONDS. Driver failures and timeouts surface as
InfrastructureError; "nothing matched" is a normal return value.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import get_settings
from app.core.exceptions import InfrastructureError
from app.core.logging import get_logger
from app.models import Product, ProductVariant

logger = get_logger(__name__)

T = TypeVar("T")


async def bounded(awaitable: Awaitable[T], *, op: str) -> T:
    """Await a store call under the configured timeout, mapping failures to InfrastructureError."""
    timeout = get_settings().STORE_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error("store_timeout", op=op, timeout_s=timeout)
        raise InfrastructureError() from e
    except IntegrityError:
        # constraint violations are domain outcomes (duplicates), left to the caller
        raise
    except SQLAlchemyError as e:
        logger.error("store_error", op=op, error=type(e).__name__, exc_info=e)
        raise InfrastructureError() from e


async def find_product_by_variant(db: AsyncSession, variant_id: int) -> Optional[Product]:
    """Product owning the given variant id, with all its variants freshly loaded."""
    stmt = (
        select(Product)
        .join(ProductVariant, ProductVariant.product_id == Product.id)
        .where(ProductVariant.id == variant_id)
        .options(selectinload(Product.variants))
        .execution_options(populate_existing=True)
    )
    res = await bounded(db.execute(stmt), op="find_product_by_variant")
    return res.scalars().first()


async def get_variant(db: AsyncSession, variant_id: int) -> Optional[ProductVariant]:
    stmt = (
        select(ProductVariant)
        .where(ProductVariant.id == variant_id)
        .execution_options(populate_existing=True)
    )
    res = await bounded(db.execute(stmt), op="get_variant")
    return res.scalar_one_or_none()


async def _execute_and_commit(db: AsyncSession, stmt) -> Optional[ProductVariant]:
    try:
        res = await db.execute(stmt)
        variant = res.scalars().first()
        await db.commit()
        return variant
    except BaseException:
        await db.rollback()
        raise


async def decrement_stock(db: AsyncSession, variant_id: int, quantity: int) -> Optional[ProductVariant]:
    """
    Conditional atomic decrement.

    Issues a single ``UPDATE ... SET stock = stock - :q WHERE id = :id AND stock >= :q``
    and commits it. Returns the updated variant, or None when no variant with that id
    had enough stock at the instant of the write (a missing variant and an insufficient
    one are not distinguished).
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    stmt = (
        update(ProductVariant)
        .where(ProductVariant.id == variant_id, ProductVariant.stock >= quantity)
        .values(stock=ProductVariant.stock - quantity)
        .returning(ProductVariant)
        .execution_options(populate_existing=True)
    )
    variant = await bounded(_execute_and_commit(db, stmt), op="decrement_stock")
    if variant is None:
        logger.info("stock_decrement_no_match", variant_id=variant_id, quantity=quantity)
    else:
        logger.info("stock_decremented", variant_id=variant_id, quantity=quantity, stock=variant.stock)
    return variant


async def update_variant(db: AsyncSession, variant_id: int, **values: Any) -> Optional[ProductVariant]:
    """Overwrite variant columns (catalog management); None when the id is unknown."""
    stmt = (
        update(ProductVariant)
        .where(ProductVariant.id == variant_id)
        .values(**values)
        .returning(ProductVariant)
        .execution_options(populate_existing=True)
    )
    return await bounded(_execute_and_commit(db, stmt), op="update_variant")

