"""
Checkout orchestration for POST /finalizar-compra.

Flow:
1) parse_cart: shape/type validation, no store access.
2) validate (Phase 1): read-only pass over the cart in submitted order against fresh stock.
3) commit (Phase 2): one conditional decrement per line, same order, each committed on its own.

Phase 2 does not undo earlier lines when a later one loses a race; the client
gets a ConcurrentConflictError naming the variant and retries the whole cart.
"""

from __future__ import annotations

from typing import Any, Sequence

from fastapi import status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConcurrentConflictError,
    InputError,
    InsufficientStockError,
    NotFoundError,
)
from app.core.logging import get_logger
from app.schemas.checkout import CartLine, CheckoutRequest
from app.services import inventory

logger = get_logger(__name__)

EMPTY_CART_MESSAGE = "No valid products were received for the purchase."
SUCCESS_MESSAGE = "Purchase completed successfully."

_FIELD_HINTS = {
    "id": "must be an integer",
    "quantity": "must be a positive integer",
}
_RANGE_ERRORS = {"greater_than_equal", "less_than_equal"}


def _cart_error_message(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = err.get("loc", ())
    # errors above line level: payload not an object, products missing/empty/not a list
    if len(loc) < 2 or loc[0] != "products" or not isinstance(loc[1], int):
        return EMPTY_CART_MESSAGE

    line_no = loc[1] + 1
    if len(loc) < 3:
        return f"Invalid cart line {line_no}: expected an object with 'id' and 'quantity'"

    field = str(loc[2])
    if err.get("type") == "missing":
        return f"Invalid cart line {line_no}: '{field}' is required"
    if err.get("type") in _RANGE_ERRORS:
        return f"Invalid cart line {line_no}: '{field}' is out of range"
    return f"Invalid cart line {line_no}: '{field}' {_FIELD_HINTS.get(field, 'is invalid')}"


class CheckoutService:
    """Validates a cart against live inventory and applies the stock decrements."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def parse_cart(payload: Any) -> list[CartLine]:
        """Turn a raw request body into cart lines or raise InputError."""
        if payload is None:
            raise InputError(EMPTY_CART_MESSAGE)
        try:
            request = CheckoutRequest.model_validate(payload)
        except ValidationError as e:
            raise InputError(_cart_error_message(e)) from e
        return request.products

    async def validate(self, lines: Sequence[CartLine]) -> None:
        """Phase 1: every line must name an existing variant with enough stock."""
        for line in lines:
            product = await inventory.find_product_by_variant(self.db, line.id)
            if product is None:
                raise NotFoundError(
                    f"Product with variant {line.id} not found.",
                    http_status=status.HTTP_400_BAD_REQUEST,
                )

            variant = product.find_variant(line.id)
            if variant is None:
                raise NotFoundError(
                    f"Variant {line.id} not found.",
                    http_status=status.HTTP_400_BAD_REQUEST,
                )

            if variant.stock < line.quantity:
                logger.info(
                    "checkout_insufficient_stock",
                    variant_id=line.id,
                    available=variant.stock,
                    requested=line.quantity,
                )
                raise InsufficientStockError(line.id, variant.stock, line.quantity)

            logger.debug("checkout_line_valid", variant_id=line.id, quantity=line.quantity, stock=variant.stock)

    async def commit(self, lines: Sequence[CartLine]) -> None:
        """Phase 2: conditional decrement per line; the first miss aborts the rest."""
        for applied, line in enumerate(lines):
            updated = await inventory.decrement_stock(self.db, line.id, line.quantity)
            if updated is None:
                logger.warning(
                    "checkout_concurrent_conflict",
                    variant_id=line.id,
                    quantity=line.quantity,
                    lines_already_applied=applied,
                )
                raise ConcurrentConflictError(line.id)

    async def finalize(self, payload: Any) -> str:
        lines = self.parse_cart(payload)
        logger.info("checkout_start", lines=len(lines))
        await self.validate(lines)
        await self.commit(lines)
        logger.info("checkout_completed", lines=len(lines), variants=[line.id for line in lines])
        return SUCCESS_MESSAGE


__all__ = ["CheckoutService", "EMPTY_CART_MESSAGE", "SUCCESS_MESSAGE"]
