# app/routers/uploads.py
from __future__ import annotations

"""
Upload router: store a client-provided invoice PDF under /uploads.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from app.core.dependencies import get_invoice_service
from app.schemas.invoice import UploadedPdf
from app.services.invoices import InvoiceService

router = APIRouter(tags=["uploads"])


@router.post("/upload-pdf", response_model=UploadedPdf, summary="Upload a PDF into /uploads")
async def upload_pdf(
    pdf: Optional[UploadFile] = File(None),
    service: InvoiceService = Depends(get_invoice_service),
):
    return await service.store_uploaded_pdf(pdf)
