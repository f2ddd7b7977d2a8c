"""HTTP tests for invoice generation, the invoice archive and PDF uploads."""

import json
import re
from pathlib import Path
from urllib.parse import unquote

import pytest

from app.services.invoices import safe_customer_name, whatsapp_share_url

INVOICE = {
    "customer": {"nombre": "Juan Pérez", "telefono": "341 555-0101", "direccion": "Calle 1"},
    "cart": [
        {"name": "Remera roja", "price": 1000, "quantity": 2, "image": "remera-roja.png"},
        {"name": "Gorra negra", "price": 500.5, "quantity": 1},
    ],
}


async def _create(client) -> dict:
    r = await client.post("/facturas/pdf", json=INVOICE)
    assert r.status_code == 201, r.text
    return r.json()


class TestCreateInvoice:
    @pytest.mark.asyncio
    async def test_generates_pdf_and_sidecar(self, client, test_settings):
        body = await _create(client)

        pdf = Path(body["file_path"])
        assert pdf.parent == Path(test_settings.UPLOAD_DIR)
        assert re.match(r"^Compra_Juan_P_rez_\d+\.pdf$", pdf.name)
        assert pdf.read_bytes().startswith(b"%PDF")

        sidecar = json.loads(pdf.with_suffix(".json").read_text(encoding="utf-8"))
        assert sidecar["customer"]["nombre"] == "Juan Pérez"
        assert sidecar["total"] == pytest.approx(2500.5)
        assert len(sidecar["cart"]) == 2

    @pytest.mark.asyncio
    async def test_links(self, client):
        body = await _create(client)
        name = Path(body["file_path"]).name
        assert body["public_link"] == f"http://test/uploads/{name}"
        assert body["whatsapp_url"].startswith("https://wa.me/5491100000000?text=")
        assert body["public_link"] in unquote(body["whatsapp_url"])

    @pytest.mark.asyncio
    async def test_public_url_setting_wins(self, client, test_settings, monkeypatch):
        monkeypatch.setattr(test_settings, "PUBLIC_URL", "https://tienda.example.com/")
        body = await _create(client)
        assert body["public_link"].startswith("https://tienda.example.com/uploads/Compra_")

    @pytest.mark.asyncio
    async def test_generated_file_is_served(self, client):
        body = await _create(client)
        r = await client.get(f"/uploads/{Path(body['file_path']).name}")
        assert r.status_code == 200
        assert r.content.startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_unreadable_thumbnail_is_skipped(self, client, test_settings, png_bytes):
        images = Path(test_settings.IMAGES_DIR)
        (images / "remera-roja.png").write_bytes(png_bytes)
        (images / "gorra.jpg").write_bytes(b"not an image")
        cart = [
            {"name": "Remera roja", "price": 1000, "quantity": 1, "image": "remera-roja.png"},
            {"name": "Gorra", "price": 500, "quantity": 2, "image": "gorra.jpg"},
        ]
        r = await client.post("/facturas/pdf", json={"customer": {"nombre": "Ana"}, "cart": cart})
        assert r.status_code == 201, r.text
        pdf = Path(r.json()["file_path"])
        assert pdf.read_bytes().startswith(b"%PDF")
        assert json.loads(pdf.with_suffix(".json").read_text(encoding="utf-8"))["total"] == pytest.approx(2000)

    @pytest.mark.asyncio
    async def test_empty_cart_rejected(self, client, test_settings):
        r = await client.post("/facturas/pdf", json={"customer": {"nombre": "Ana"}, "cart": []})
        assert r.status_code == 400
        assert r.json()["ok"] is False
        assert list(Path(test_settings.UPLOAD_DIR).glob("*.pdf")) == []

    @pytest.mark.asyncio
    async def test_invalid_line_rejected(self, client):
        r = await client.post("/facturas/pdf", json={"cart": [{"name": "x", "price": 1, "quantity": 0}]})
        assert r.status_code == 400

    @pytest.mark.asyncio
    async def test_many_lines_span_pages(self, client):
        cart = [{"name": f"Producto {i}", "price": 10, "quantity": 1} for i in range(80)]
        r = await client.post("/facturas/pdf", json={"customer": {}, "cart": cart})
        assert r.status_code == 201
        assert "Compra_cliente_" in r.json()["file_path"]


class TestArchive:
    @pytest.mark.asyncio
    async def test_list(self, client):
        created = await _create(client)
        r = await client.get("/facturas")
        assert r.status_code == 200
        items = r.json()
        assert len(items) == 1
        item = items[0]
        assert item["name"] == Path(created["file_path"]).name
        assert item["url"] == created["public_link"]
        assert re.match(r"^\d+\.\d{2}$", item["size_kb"])
        assert item["date"]

    @pytest.mark.asyncio
    async def test_list_empty(self, client, session_factory):
        r = await client.get("/facturas")
        assert r.status_code == 200
        assert r.json() == []

    @pytest.mark.asyncio
    async def test_delete_removes_pdf_and_sidecar(self, client):
        created = await _create(client)
        pdf = Path(created["file_path"])
        r = await client.delete(f"/facturas/{pdf.name}")
        assert r.status_code == 200
        assert not pdf.exists()
        assert not pdf.with_suffix(".json").exists()
        assert (await client.delete(f"/facturas/{pdf.name}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_rejects_path_separators(self, client, session_factory):
        r = await client.delete("/facturas/..%5Csecret.pdf")
        assert r.status_code == 400


class TestUploadPdf:
    @pytest.mark.asyncio
    async def test_upload(self, client, test_settings):
        r = await client.post(
            "/upload-pdf", files={"pdf": ("pedido.pdf", b"%PDF-1.4\n%%EOF\n", "application/pdf")}
        )
        assert r.status_code == 200
        url = r.json()["url"]
        assert url.startswith("http://test/uploads/")
        assert url.endswith(".pdf")
        assert (Path(test_settings.UPLOAD_DIR) / url.rsplit("/", 1)[1]).is_file()

    @pytest.mark.asyncio
    async def test_non_pdf_rejected(self, client, test_settings):
        r = await client.post("/upload-pdf", files={"pdf": ("nota.txt", b"hola", "text/plain")})
        assert r.status_code == 400
        assert r.json()["message"] == "Only PDF files are allowed"

    @pytest.mark.asyncio
    async def test_missing_file_rejected(self, client, session_factory):
        r = await client.post("/upload-pdf")
        assert r.status_code == 400


def test_safe_customer_name():
    assert safe_customer_name({"nombre": "Ana María / López"}) == "Ana_Mar_a___L_pez"
    assert safe_customer_name({}) == "cliente"


def test_whatsapp_share_url_without_number():
    assert whatsapp_share_url(None, "http://x/uploads/a.pdf").startswith("https://wa.me/?text=Hola")
