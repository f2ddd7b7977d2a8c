"""
Catalog management: products, their variants, images and stock.
"""

from __future__ import annotations

from typing import Optional

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, InputError, NotFoundError
from app.core.logging import get_logger
from app.models import Product, ProductVariant
from app.schemas.product import VariantCreate, VariantUpdate
from app.services import inventory
from app.services.image_storage import ImageStorage

logger = get_logger(__name__)


class CatalogService:
    def __init__(self, db: AsyncSession, images: ImageStorage):
        self.db = db
        self.images = images

    # ------------------------------------------------------------------ helpers

    async def _get_product(self, name: str) -> Product:
        stmt = (
            select(Product)
            .where(Product.name == name)
            .options(selectinload(Product.variants))
            .execution_options(populate_existing=True)
        )
        res = await inventory.bounded(self.db.execute(stmt), op="get_product")
        product = res.scalars().first()
        if product is None:
            raise NotFoundError(f"Product '{name}' not found.")
        return product

    async def _get_variant(self, variant_id: int) -> ProductVariant:
        variant = await inventory.get_variant(self.db, variant_id)
        if variant is None:
            raise NotFoundError(f"Variant {variant_id} not found.")
        return variant

    async def _commit(self, *, op: str, conflict_message: str) -> None:
        try:
            await inventory.bounded(self.db.commit(), op=op)
        except IntegrityError as e:
            await self.db.rollback()
            logger.info("catalog_conflict", op=op, error=str(e.orig))
            raise ConflictError(conflict_message) from e

    # ------------------------------------------------------------------ products

    async def list_products(self) -> list[Product]:
        stmt = (
            select(Product)
            .options(selectinload(Product.variants))
            .order_by(Product.name)
            .execution_options(populate_existing=True)
        )
        res = await inventory.bounded(self.db.execute(stmt), op="list_products")
        return list(res.scalars().all())

    async def create_product(self, name: str, image: Optional[UploadFile]) -> Product:
        name = (name or "").strip()
        if not name:
            raise InputError("Product name is required")

        existing = await inventory.bounded(
            self.db.execute(select(Product.id).where(Product.name == name)), op="check_product_name"
        )
        if existing.first() is not None:
            raise ConflictError(f"Product '{name}' already exists.")

        reference = await self.images.save(image, prefix="producto")
        product = Product(name=name, image=reference, variants=[])
        self.db.add(product)
        try:
            await self._commit(op="create_product", conflict_message=f"Product '{name}' already exists.")
        except ConflictError:
            await self.images.delete(reference)
            raise

        logger.info("product_created", product_id=product.id, name=name)
        return product

    async def delete_product(self, name: str) -> None:
        product = await self._get_product(name)
        references = [product.image] + [v.image for v in product.variants]
        await self.db.delete(product)
        await inventory.bounded(self.db.commit(), op="delete_product")
        logger.info("product_deleted", name=name, variants=len(references) - 1)
        for ref in references:
            await self.images.delete(ref)

    async def rename_product(self, name: str, new_name: str) -> Product:
        new_name = (new_name or "").strip()
        if not new_name:
            raise InputError("Product name is required")
        product = await self._get_product(name)
        if new_name == product.name:
            return product

        existing = await inventory.bounded(
            self.db.execute(select(Product.id).where(Product.name == new_name)), op="check_product_name"
        )
        if existing.first() is not None:
            raise ConflictError(f"Product '{new_name}' already exists.")

        product.name = new_name
        await self._commit(op="rename_product", conflict_message=f"Product '{new_name}' already exists.")
        logger.info("product_renamed", product_id=product.id, old_name=name, name=new_name)
        return product

    async def replace_product_image(self, name: str, image: Optional[UploadFile]) -> Product:
        product = await self._get_product(name)
        reference = await self.images.save(image, prefix="producto")
        previous = product.image
        product.image = reference
        await inventory.bounded(self.db.commit(), op="replace_product_image")
        logger.info("product_image_replaced", name=name, image=reference)
        if previous and previous != reference:
            await self.images.delete(previous)
        return product

    # ------------------------------------------------------------------ variants

    async def add_variant(self, name: str, data: VariantCreate, image: Optional[UploadFile]) -> ProductVariant:
        product = await self._get_product(name)

        if await inventory.get_variant(self.db, data.id) is not None:
            raise ConflictError(f"A variant with id {data.id} already exists.")

        reference = await self.images.save(image, prefix="variante")
        variant = ProductVariant(
            id=data.id,
            price=data.price,
            stock=data.stock,
            image=reference,
            position=product.next_position,
        )
        product.variants.append(variant)
        try:
            await self._commit(op="add_variant", conflict_message=f"A variant with id {data.id} already exists.")
        except ConflictError:
            await self.images.delete(reference)
            raise

        logger.info("variant_added", product=name, variant_id=data.id, stock=data.stock)
        return variant

    async def list_variants(self) -> list[ProductVariant]:
        stmt = (
            select(ProductVariant)
            .order_by(ProductVariant.product_id, ProductVariant.position)
            .execution_options(populate_existing=True)
        )
        res = await inventory.bounded(self.db.execute(stmt), op="list_variants")
        return list(res.scalars().all())

    async def get_variant_stock(self, variant_id: int) -> int:
        return (await self._get_variant(variant_id)).stock

    async def update_variant(self, variant_id: int, data: VariantUpdate) -> ProductVariant:
        values = data.model_dump(include={"stock", "price"}, exclude_none=True)
        if not values:
            raise InputError("Provide 'stock' and/or 'price'")
        if values.get("stock", 0) < 0 or values.get("price", 0) < 0:
            raise InputError("Stock and price cannot be negative")
        variant = await inventory.update_variant(self.db, variant_id, **values)
        if variant is None:
            raise NotFoundError(f"Variant {variant_id} not found.")
        logger.info("variant_updated", variant_id=variant_id, **{k: str(v) for k, v in values.items()})
        return variant

    async def delete_variant(self, variant_id: int) -> None:
        variant = await self._get_variant(variant_id)
        reference = variant.image
        await self.db.delete(variant)
        await inventory.bounded(self.db.commit(), op="delete_variant")
        logger.info("variant_deleted", variant_id=variant_id)
        await self.images.delete(reference)


__all__ = ["CatalogService"]
