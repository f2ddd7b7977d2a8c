from app.schemas.base import BaseSchema, MessageResponse, OkResponse
from app.schemas.checkout import CartLine, CheckoutRequest
from app.schemas.invoice import InvoiceFile, InvoiceLine, InvoiceRequest, InvoiceResult, UploadedPdf
from app.schemas.product import (
    ProductImageUpdated,
    ProductResponse,
    ProductUpdate,
    StockResponse,
    VariantCreate,
    VariantResponse,
    VariantUpdate,
    VariantUpdated,
)

__all__ = [
    "BaseSchema",
    "MessageResponse",
    "OkResponse",
    "CartLine",
    "CheckoutRequest",
    "InvoiceFile",
    "InvoiceLine",
    "InvoiceRequest",
    "InvoiceResult",
    "UploadedPdf",
    "ProductImageUpdated",
    "ProductResponse",
    "ProductUpdate",
    "StockResponse",
    "VariantCreate",
    "VariantResponse",
    "VariantUpdate",
    "VariantUpdated",
]
