"""Tests for app.services.image_storage."""

import io
import re

import pytest
from fastapi import UploadFile

from app.core.exceptions import InputError
from app.services.image_storage import (
    CloudinaryImageStorage,
    LocalImageStorage,
    get_image_storage,
    unique_filename,
)


def _upload(data: bytes, name: str = "foto.JPG") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=name)


def test_unique_filename_shape():
    name = unique_filename("variante", "Foto.JPEG")
    assert re.match(r"^variante-\d{13}-\d+\.jpeg$", name)


class TestLocalImageStorage:
    @pytest.mark.asyncio
    async def test_save_and_delete(self, tmp_path, test_settings, png_bytes):
        storage = LocalImageStorage(tmp_path)
        ref = await storage.save(_upload(png_bytes), prefix="producto")
        assert ref.startswith("producto-") and ref.endswith(".jpg")
        assert (tmp_path / ref).read_bytes() == png_bytes

        await storage.delete(ref)
        assert not (tmp_path / ref).exists()

    @pytest.mark.asyncio
    async def test_delete_missing_is_silent(self, tmp_path, test_settings):
        await LocalImageStorage(tmp_path).delete("nope.png")
        await LocalImageStorage(tmp_path).delete(None)

    @pytest.mark.asyncio
    async def test_delete_stays_inside_directory(self, tmp_path, test_settings):
        outside = tmp_path / "outside.png"
        outside.write_bytes(b"x")
        inner = tmp_path / "inner"
        inner.mkdir()
        await LocalImageStorage(inner).delete("../outside.png")
        assert outside.exists()

    @pytest.mark.asyncio
    async def test_empty_and_oversized_rejected(self, tmp_path, test_settings, monkeypatch):
        storage = LocalImageStorage(tmp_path)
        with pytest.raises(InputError):
            await storage.save(_upload(b""), prefix="producto")
        monkeypatch.setattr(test_settings, "MAX_UPLOAD_SIZE", 4)
        with pytest.raises(InputError):
            await storage.save(_upload(b"12345"), prefix="producto")


class TestCloudinary:
    @pytest.mark.parametrize(
        "url, public_id",
        [
            ("https://res.cloudinary.com/demo/image/upload/v1712345/tienda/productos/producto-1-2.jpg",
             "tienda/productos/producto-1-2"),
            ("https://res.cloudinary.com/demo/image/upload/tienda/productos/abc.webp", "tienda/productos/abc"),
            ("https://example.com/foo.jpg", None),
        ],
    )
    def test_public_id_from_url(self, url, public_id):
        assert CloudinaryImageStorage.public_id_from_url(url) == public_id

    def test_factory_selects_backend(self, test_settings, monkeypatch):
        assert isinstance(get_image_storage(), LocalImageStorage)
        monkeypatch.setattr(test_settings, "CLOUDINARY_CLOUD_NAME", "demo")
        monkeypatch.setattr(test_settings, "CLOUDINARY_API_KEY", "key")
        monkeypatch.setattr(test_settings, "CLOUDINARY_API_SECRET", "secret")
        assert isinstance(get_image_storage(), CloudinaryImageStorage)

    @pytest.mark.asyncio
    async def test_save_uses_secure_url(self, test_settings, monkeypatch, png_bytes):
        calls = {}

        def fake_upload(data, **options):
            calls.update(options)
            return {"secure_url": "https://res.cloudinary.com/demo/image/upload/v1/tienda/productos/p.jpg"}

        monkeypatch.setattr("cloudinary.uploader.upload", fake_upload)
        storage = CloudinaryImageStorage(folder="tienda/productos")
        ref = await storage.save(_upload(png_bytes), prefix="producto")
        assert ref.startswith("https://res.cloudinary.com/")
        assert calls["folder"] == "tienda/productos"

    @pytest.mark.asyncio
    async def test_delete_failure_is_logged_not_raised(self, test_settings, monkeypatch):
        def fake_destroy(public_id):
            raise RuntimeError("network down")

        monkeypatch.setattr("cloudinary.uploader.destroy", fake_destroy)
        await CloudinaryImageStorage().delete(
            "https://res.cloudinary.com/demo/image/upload/v1/tienda/productos/p.jpg"
        )
