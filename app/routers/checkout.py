# app/routers/checkout.py
from __future__ import annotations

"""
Checkout router.

POST /finalizar-compra validates the whole cart against live stock, then
decrements it line by line. The raw body is taken as-is so malformed carts are
reported with the checkout's own messages rather than generic field errors.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends

from app.core.dependencies import get_checkout_service
from app.schemas.base import OkResponse
from app.services.checkout import CheckoutService

router = APIRouter(tags=["checkout"])


@router.post(
    "/finalizar-compra",
    response_model=OkResponse,
    response_model_exclude_none=True,
    summary="Finalize a purchase",
    responses={
        400: {"model": OkResponse, "description": "Invalid cart, unknown variant, insufficient stock or lost race"},
        500: {"model": OkResponse, "description": "Store unavailable"},
    },
)
async def finalize_purchase(
    payload: Any = Body(None),
    service: CheckoutService = Depends(get_checkout_service),
) -> OkResponse:
    message = await service.finalize(payload)
    return OkResponse(ok=True, message=message)
