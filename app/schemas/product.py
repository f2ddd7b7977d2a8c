"""
Catalog schemas: products, variants and stock.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field, model_validator

from app.schemas.base import DB_INT_MAX, DB_INT_MIN, BaseSchema

# Numeric(14, 2); inf/nan never reach the column
PRICE_FIELD = dict(ge=0, max_digits=14, decimal_places=2, allow_inf_nan=False)


class VariantResponse(BaseSchema):
    """A purchasable variant as exposed by the API."""

    id: int = Field(..., description="Catalog-wide variant id")
    price: float = Field(..., ge=0, description="Unit price")
    stock: int = Field(..., ge=0, description="Units available")
    image: str = Field(..., description="Stored image reference")


class ProductResponse(BaseSchema):
    """Product with its ordered variants."""

    id: int
    name: str
    image: str
    variants: list[VariantResponse] = Field(default_factory=list)


class ProductUpdate(BaseSchema):
    """Body of PUT /productos/{name}."""

    name: str = Field(..., min_length=1, max_length=255, description="New unique product name")


class StockResponse(BaseSchema):
    stock: int


class VariantUpdate(BaseSchema):
    """Body of PATCH /productos/variantes/{id}: new absolute stock, new price, or both."""

    stock: Optional[int] = Field(None, ge=0, le=DB_INT_MAX, description="New absolute stock value")
    price: Optional[Decimal] = Field(None, description="New unit price", **PRICE_FIELD)

    @model_validator(mode="after")
    def _something_to_update(self):
        if self.stock is None and self.price is None:
            raise ValueError("Provide 'stock' and/or 'price'")
        return self


class VariantUpdated(BaseSchema):
    message: str
    variant: VariantResponse


class ProductImageUpdated(BaseSchema):
    image: str
    message: str


class VariantCreate(BaseSchema):
    """Validated form data for a new variant (the image arrives as a file)."""

    id: int = Field(..., ge=DB_INT_MIN, le=DB_INT_MAX, description="Catalog-wide variant id")
    price: Decimal = Field(..., **PRICE_FIELD)
    stock: int = Field(..., ge=0, le=DB_INT_MAX)
    image: Optional[str] = None
