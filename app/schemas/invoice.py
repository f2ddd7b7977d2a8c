"""
Invoice schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field


class InvoiceLine(BaseModel):
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., gt=0)
    image: Optional[str] = Field(None, description="Image file name inside IMAGES_DIR")

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class InvoiceRequest(BaseModel):
    customer: dict[str, Any] = Field(default_factory=dict)
    cart: list[InvoiceLine] = Field(default_factory=list)


class InvoiceResult(BaseModel):
    file_path: str
    public_link: str
    whatsapp_url: str


class InvoiceFile(BaseModel):
    name: str
    url: str
    date: datetime
    size_kb: str


class UploadedPdf(BaseModel):
    url: str
