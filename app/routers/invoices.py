# app/routers/invoices.py
from __future__ import annotations

"""
Invoice router: generate purchase PDFs, list and delete the archive.
"""

from fastapi import APIRouter, Depends, status

from app.core.dependencies import get_invoice_service
from app.schemas.base import MessageResponse
from app.schemas.invoice import InvoiceFile, InvoiceRequest, InvoiceResult
from app.services.invoices import InvoiceService

router = APIRouter(prefix="/facturas", tags=["facturas"])


@router.post(
    "/pdf",
    response_model=InvoiceResult,
    status_code=status.HTTP_201_CREATED,
    summary="Generate an invoice PDF for a cart",
)
async def create_invoice(payload: InvoiceRequest, service: InvoiceService = Depends(get_invoice_service)):
    return await service.create_invoice(payload)


@router.get("", response_model=list[InvoiceFile], summary="List stored invoices")
def list_invoices(service: InvoiceService = Depends(get_invoice_service)):
    return service.list_invoices()


@router.delete("/{name}", response_model=MessageResponse, summary="Delete an invoice and its order data")
def delete_invoice(name: str, service: InvoiceService = Depends(get_invoice_service)):
    service.delete_invoice(name)
    return MessageResponse(message="Invoice and order data deleted")
