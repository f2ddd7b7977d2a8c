# app/core/dependencies.py
from __future__ import annotations

"""
FastAPI dependency providers:
- per-request service objects bound to the request's DB session
- public base URL for generated links (PUBLIC_URL, else the request's own base URL)
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.services.catalog import CatalogService
from app.services.checkout import CheckoutService
from app.services.image_storage import ImageStorage, get_image_storage
from app.services.invoices import InvoiceService


def get_base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


def get_images() -> ImageStorage:
    return get_image_storage()


def get_catalog_service(
    db: AsyncSession = Depends(get_db),
    images: ImageStorage = Depends(get_images),
) -> CatalogService:
    return CatalogService(db, images)


def get_checkout_service(db: AsyncSession = Depends(get_db)) -> CheckoutService:
    return CheckoutService(db)


def get_invoice_service(base_url: str = Depends(get_base_url)) -> InvoiceService:
    return InvoiceService(base_url)


__all__ = [
    "get_base_url",
    "get_images",
    "get_catalog_service",
    "get_checkout_service",
    "get_invoice_service",
]
