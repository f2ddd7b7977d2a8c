# app/routers/products.py
from __future__ import annotations

"""
Catalog router: products, variants and stock.

- Products are addressed by their unique name, variants by their catalog-wide id.
- Images arrive as multipart files and go through the configured ImageStorage.
- Duplicate names / variant ids -> 409, unknown -> 404, bad form data -> 400.
"""

from decimal import Decimal
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile, status

from app.core.dependencies import get_catalog_service
from app.schemas.base import DB_INT_MAX, DB_INT_MIN, MessageResponse
from app.schemas.product import (
    ProductImageUpdated,
    PRICE_FIELD,
    ProductResponse,
    ProductUpdate,
    StockResponse,
    VariantCreate,
    VariantResponse,
    VariantUpdate,
    VariantUpdated,
)
from app.services.catalog import CatalogService

router = APIRouter(prefix="/productos", tags=["productos"])

VariantId = Annotated[int, Path(ge=DB_INT_MIN, le=DB_INT_MAX, description="Catalog-wide variant id")]


# ---------------------------------------------------------------------
# Variants (declared first: static segment before /{name})
# ---------------------------------------------------------------------


@router.get("/variantes", response_model=list[VariantResponse], summary="List all variants")
async def list_variants(service: CatalogService = Depends(get_catalog_service)):
    return [VariantResponse.model_validate(v) for v in await service.list_variants()]


@router.get("/variantes/{variant_id}", response_model=StockResponse, summary="Current stock of a variant")
async def get_variant_stock(variant_id: VariantId, service: CatalogService = Depends(get_catalog_service)):
    return StockResponse(stock=await service.get_variant_stock(variant_id))


@router.patch("/variantes/{variant_id}", response_model=VariantUpdated, summary="Set variant stock and/or price")
async def update_variant(
    payload: VariantUpdate,
    variant_id: VariantId,
    service: CatalogService = Depends(get_catalog_service),
):
    variant = await service.update_variant(variant_id, payload)
    return VariantUpdated(message="Variant updated", variant=VariantResponse.model_validate(variant))


@router.delete("/variantes/{variant_id}", response_model=MessageResponse, summary="Delete a variant")
async def delete_variant(variant_id: VariantId, service: CatalogService = Depends(get_catalog_service)):
    await service.delete_variant(variant_id)
    return MessageResponse(message="Variant deleted")


# ---------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------


@router.get("", response_model=list[ProductResponse], summary="List products with their variants")
async def list_products(service: CatalogService = Depends(get_catalog_service)):
    return [ProductResponse.model_validate(p) for p in await service.list_products()]


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a product",
)
async def create_product(
    name: str = Form(..., min_length=1),
    image: Optional[UploadFile] = File(None),
    service: CatalogService = Depends(get_catalog_service),
):
    product = await service.create_product(name, image)
    return ProductResponse.model_validate(product)


@router.delete("/{name}", response_model=MessageResponse, summary="Delete a product and its variants")
async def delete_product(name: str, service: CatalogService = Depends(get_catalog_service)):
    await service.delete_product(name)
    return MessageResponse(message="Product deleted")


@router.put("/{name}", response_model=ProductResponse, summary="Rename a product")
async def rename_product(
    name: str,
    payload: ProductUpdate,
    service: CatalogService = Depends(get_catalog_service),
):
    product = await service.rename_product(name, payload.name)
    return ProductResponse.model_validate(product)


@router.put("/{name}/imagen", response_model=ProductImageUpdated, summary="Replace the product image")
async def replace_product_image(
    name: str,
    image: Optional[UploadFile] = File(None),
    service: CatalogService = Depends(get_catalog_service),
):
    product = await service.replace_product_image(name, image)
    return ProductImageUpdated(image=product.image, message="Image updated")


@router.post(
    "/{name}/variantes",
    response_model=VariantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Append a variant to a product",
)
async def add_variant(
    name: str,
    variant_id: int = Form(..., alias="id", ge=DB_INT_MIN, le=DB_INT_MAX),
    price: Decimal = Form(..., **PRICE_FIELD),
    stock: int = Form(..., ge=0, le=DB_INT_MAX),
    image: Optional[UploadFile] = File(None),
    service: CatalogService = Depends(get_catalog_service),
):
    variant = await service.add_variant(name, VariantCreate(id=variant_id, price=price, stock=stock), image)
    return VariantResponse.model_validate(variant)
