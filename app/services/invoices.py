"""
Invoice archive: PDF generation, listing, deletion and raw PDF uploads.

Everything lives in UPLOAD_DIR (served under /uploads). Each generated invoice
`Compra_<cliente>_<epoch_ms>.pdf` has a `.json` sidecar with the order data.
"""

from __future__ import annotations

import asyncio
import json
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import UploadFile

from app.core.config import get_settings
from app.core.exceptions import InfrastructureError, InputError, NotFoundError
from app.core.logging import get_logger
from app.schemas.invoice import InvoiceFile, InvoiceRequest, InvoiceResult, UploadedPdf
from app.services.image_storage import read_upload, unique_filename
from app.utils.pdf import InvoicePDFGenerator

logger = get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_\-.]")


def safe_customer_name(customer: dict) -> str:
    return _UNSAFE_CHARS.sub("_", str(customer.get("nombre") or "cliente"))


def whatsapp_share_url(number: Optional[str], link: str) -> str:
    message = f"Hola! Aquí está mi compra en pdf: {link}"
    return f"https://wa.me/{number or ''}?text={quote(message, safe='')}"


class InvoiceService:
    def __init__(self, base_url: str):
        s = get_settings()
        self.base_url = (s.PUBLIC_URL or base_url).rstrip("/")
        self.directory = s.upload_path
        self.images_dir = s.images_path
        self.logo_path = s.images_path / s.LOGO_FILE
        self.whatsapp_number = s.WHATSAPP_NUMBER

    def public_url(self, file_name: str) -> str:
        return f"{self.base_url}/uploads/{quote(file_name)}"

    def _write_sidecar(self, path: Path, request: InvoiceRequest, total) -> None:
        payload = {
            "customer": request.customer,
            "cart": [line.model_dump(mode="json") for line in request.cart],
            "total": float(total),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2, default=str), encoding="utf-8")

    async def create_invoice(self, request: InvoiceRequest) -> InvoiceResult:
        if not request.cart:
            raise InputError("The cart is empty")

        self.directory.mkdir(parents=True, exist_ok=True)
        file_name = f"Compra_{safe_customer_name(request.customer)}_{int(time.time() * 1000)}.pdf"
        path = self.directory / file_name

        generator = InvoicePDFGenerator(self.images_dir, self.logo_path)
        try:
            total = await asyncio.to_thread(generator.build, path, request.customer, request.cart)
            await asyncio.to_thread(self._write_sidecar, path.with_suffix(".json"), request, total)
        except OSError as e:
            logger.error("invoice_write_failed", file=file_name, error=str(e))
            raise InfrastructureError("Could not generate the invoice PDF.") from e

        link = self.public_url(file_name)
        logger.info("invoice_created", file=file_name, lines=len(request.cart), total=str(total))
        return InvoiceResult(
            file_path=str(path),
            public_link=link,
            whatsapp_url=whatsapp_share_url(self.whatsapp_number, link),
        )

    def list_invoices(self) -> list[InvoiceFile]:
        if not self.directory.is_dir():
            return []
        files = []
        for path in sorted(self.directory.glob("*.pdf")):
            st = path.stat()
            files.append(
                InvoiceFile(
                    name=path.name,
                    url=self.public_url(path.name),
                    date=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
                    size_kb=f"{st.st_size / 1024:.2f}",
                )
            )
        return files

    def delete_invoice(self, name: str) -> None:
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise InputError("Invalid invoice name")

        path = self.directory / name
        if not path.is_file():
            raise NotFoundError("Invoice not found")

        path.unlink()
        if path.suffix.lower() == ".pdf":
            path.with_suffix(".json").unlink(missing_ok=True)
        logger.info("invoice_deleted", file=name)

    async def store_uploaded_pdf(self, upload: Optional[UploadFile]) -> UploadedPdf:
        if upload is None or not upload.filename:
            raise InputError("No file was uploaded")
        if upload.content_type != PDF_CONTENT_TYPE:
            raise InputError("Only PDF files are allowed")

        contents = await read_upload(upload, what="PDF")
        self.directory.mkdir(parents=True, exist_ok=True)
        file_name = unique_filename("factura", "upload.pdf")
        await asyncio.to_thread((self.directory / file_name).write_bytes, contents)
        logger.info("pdf_uploaded", file=file_name, size=len(contents))
        return UploadedPdf(url=self.public_url(file_name))


__all__ = ["InvoiceService", "safe_customer_name", "whatsapp_share_url"]
