"""
Purchase invoice PDF rendering (ReportLab platypus).

Layout (A4):
- blue header band with optional logo and the title "Factura de Compra" (first page)
- "Datos del Cliente" block, one row per customer field
- item table (Producto / Precio / Cantidad / Subtotal), header repeated on every page,
  product thumbnail inside the Producto cell when the image exists locally
- total and a thank-you line
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.core.logging import get_logger
from app.schemas.invoice import InvoiceLine

logger = get_logger(__name__)

TITLE = "Factura de Compra"
THANKS = "¡Gracias por tu compra!"
HEADER_BLUE = colors.Color(40 / 255, 116 / 255, 240 / 255)
BAND_HEIGHT = 60
THUMB_SIZE = 1.8 * cm


def money(value: Decimal) -> str:
    return f"${value:,.2f}"


def capitalize(key: str) -> str:
    return key[:1].upper() + key[1:]


class InvoicePDFGenerator:
    """Renders one invoice to a file path."""

    def __init__(self, images_dir: Path, logo_path: Optional[Path] = None):
        self.images_dir = images_dir
        self.logo_path = logo_path if logo_path and logo_path.is_file() else None
        styles = getSampleStyleSheet()
        self.normal = styles["Normal"]
        self.heading = styles["Heading3"]
        self.cell = ParagraphStyle("cell", parent=styles["Normal"], fontSize=10, leading=12)
        self.total_style = ParagraphStyle(
            "total", parent=styles["Normal"], fontName="Helvetica-Bold", fontSize=14, alignment=TA_RIGHT
        )
        self.thanks_style = ParagraphStyle("thanks", parent=styles["Normal"], fontName="Helvetica-Bold", fontSize=12)

    # -------------------------------------------------------------- page chrome

    def _draw_header(self, canvas, doc) -> None:
        width, height = A4
        canvas.saveState()
        canvas.setFillColor(HEADER_BLUE)
        canvas.rect(0, height - BAND_HEIGHT, width, BAND_HEIGHT, fill=1, stroke=0)
        if self.logo_path is not None:
            try:
                canvas.drawImage(
                    str(self.logo_path), doc.leftMargin, height - 55, 50, 50,
                    preserveAspectRatio=True, mask="auto",
                )
            except Exception as e:  # unreadable logo must not break the invoice
                logger.warning("invoice_logo_unreadable", path=str(self.logo_path), error=str(e))
        canvas.setFillColor(colors.white)
        canvas.setFont("Helvetica-Bold", 20)
        canvas.drawCentredString(width / 2, height - 40, TITLE)
        canvas.restoreState()

    # -------------------------------------------------------------- blocks

    def _customer_block(self, customer: Mapping[str, Any]) -> list:
        story: list = [Paragraph("Datos del Cliente:", self.heading)]
        if not customer:
            return story
        rows = [
            [
                Paragraph(f"<b>{escape(capitalize(str(k)))}:</b>", self.normal),
                Paragraph(escape(str(v)), self.normal),
            ]
            for k, v in customer.items()
        ]
        table = Table(rows, colWidths=[4 * cm, 12 * cm], hAlign="LEFT")
        table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP"), ("LEFTPADDING", (0, 0), (-1, -1), 10)]))
        story.append(table)
        return story

    def _thumbnail(self, image: Optional[str]):
        if not image:
            return None
        path = self.images_dir / Path(image).name
        if not path.is_file():
            return None
        try:
            # decode fully here so a corrupt file cannot fail doc.build
            ImageReader(str(path)).getRGBData()
            return Image(str(path), width=THUMB_SIZE, height=THUMB_SIZE, kind="proportional")
        except Exception as e:  # row is rendered without a thumbnail
            logger.warning("invoice_thumbnail_unreadable", image=path.name, error=str(e))
            return None

    def _items_table(self, lines: Sequence[InvoiceLine]) -> Table:
        data: list[list[Any]] = [["Producto", "Precio", "Cantidad", "Subtotal"]]
        for line in lines:
            name = Paragraph(escape(line.name), self.cell)
            thumb = self._thumbnail(line.image)
            data.append(
                [
                    [thumb, name] if thumb is not None else name,
                    money(line.price),
                    str(line.quantity),
                    money(line.subtotal),
                ]
            )

        table = Table(data, colWidths=[8 * cm, 3 * cm, 2.5 * cm, 3.5 * cm], repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.Color(240 / 255, 240 / 255, 240 / 255)),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, 0), 12),
                    ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
                    ("FONTSIZE", (1, 1), (-1, -1), 11),
                    ("VALIGN", (0, 1), (-1, -1), "MIDDLE"),
                    ("LINEBELOW", (0, 1), (-1, -1), 0.5, colors.Color(200 / 255, 200 / 255, 200 / 255)),
                ]
            )
        )
        return table

    # -------------------------------------------------------------- public

    def build(self, file_path: Path, customer: Mapping[str, Any], lines: Sequence[InvoiceLine]) -> Decimal:
        """Write the PDF and return the invoice total."""
        total = sum((line.subtotal for line in lines), Decimal("0"))

        doc = SimpleDocTemplate(
            str(file_path),
            pagesize=A4,
            leftMargin=2 * cm,
            rightMargin=2 * cm,
            topMargin=BAND_HEIGHT + 1 * cm,
            bottomMargin=2 * cm,
            title=TITLE,
        )
        story: list = []
        story.extend(self._customer_block(customer))
        story.append(Spacer(1, 0.6 * cm))
        story.append(self._items_table(lines))
        story.append(Spacer(1, 0.8 * cm))
        story.append(Paragraph(f"Total: {money(total)}", self.total_style))
        story.append(Spacer(1, 0.8 * cm))
        story.append(Paragraph(THANKS, self.thanks_style))

        doc.build(story, onFirstPage=self._draw_header)
        logger.info("invoice_pdf_rendered", file=file_path.name, lines=len(lines), total=str(total))
        return total


__all__ = ["InvoicePDFGenerator", "money", "capitalize"]
