"""
Product/variant image storage.

Two backends behind the same interface:
- LocalImageStorage: files in IMAGES_DIR, served under /img/productos; reference = file name.
- CloudinaryImageStorage: uploads into CLOUDINARY_FOLDER; reference = secure_url.

Deletion is best-effort: failures are logged, never raised.
"""

from __future__ import annotations

import asyncio
import random
import re
import time
from pathlib import Path
from typing import Optional

import cloudinary
import cloudinary.uploader
from fastapi import UploadFile

from app.core.config import get_settings
from app.core.exceptions import InfrastructureError, InputError
from app.core.logging import get_logger

logger = get_logger(__name__)

_VERSION_SEGMENT = re.compile(r"^v\d+/")


def unique_filename(prefix: str, original: Optional[str]) -> str:
    """`{prefix}-{epoch_ms}-{random}{ext}`, keeping the uploaded file's extension."""
    ext = Path(original or "").suffix.lower()
    return f"{prefix}-{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext}"


async def read_upload(upload: Optional[UploadFile], *, what: str = "Image") -> bytes:
    if upload is None or not upload.filename:
        raise InputError(f"{what} file is required")
    contents = await upload.read()
    if not contents:
        raise InputError(f"{what} file is empty")
    if len(contents) > get_settings().MAX_UPLOAD_SIZE:
        raise InputError(f"{what} file exceeds the maximum upload size")
    return contents


class ImageStorage:
    """Interface: save an uploaded image and return its reference; delete by reference."""

    async def save(self, upload: UploadFile, prefix: str) -> str:
        raise NotImplementedError

    async def delete(self, reference: Optional[str]) -> None:
        raise NotImplementedError


class LocalImageStorage(ImageStorage):
    def __init__(self, directory: Optional[Path] = None):
        self.directory = directory or get_settings().images_path

    async def save(self, upload: UploadFile, prefix: str) -> str:
        contents = await read_upload(upload)
        name = unique_filename(prefix, upload.filename)
        self.directory.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread((self.directory / name).write_bytes, contents)
        logger.info("image_saved", backend="local", reference=name, size=len(contents))
        return name

    async def delete(self, reference: Optional[str]) -> None:
        if not reference:
            return
        # only the bare name is used so a stored reference can never escape the directory
        path = self.directory / Path(reference).name
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
            logger.info("image_deleted", backend="local", reference=reference)
        except OSError as e:
            logger.warning("image_delete_failed", backend="local", reference=reference, error=str(e))


class CloudinaryImageStorage(ImageStorage):
    def __init__(self, folder: Optional[str] = None):
        s = get_settings()
        cloudinary.config(
            cloud_name=s.CLOUDINARY_CLOUD_NAME,
            api_key=s.CLOUDINARY_API_KEY,
            api_secret=s.CLOUDINARY_API_SECRET,
            secure=True,
        )
        self.folder = folder or s.CLOUDINARY_FOLDER

    @staticmethod
    def public_id_from_url(url: str) -> Optional[str]:
        """
        https://res.cloudinary.com/<cloud>/image/upload/v123/<folder>/<name>.jpg
        -> <folder>/<name>
        """
        if "/upload/" not in url:
            return None
        tail = _VERSION_SEGMENT.sub("", url.split("/upload/", 1)[1])
        public_id = tail.rsplit(".", 1)[0] if "." in tail.rsplit("/", 1)[-1] else tail
        return public_id or None

    async def save(self, upload: UploadFile, prefix: str) -> str:
        contents = await read_upload(upload)
        public_id = Path(unique_filename(prefix, None)).stem
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                contents,
                folder=self.folder,
                public_id=public_id,
                resource_type="image",
            )
        except Exception as e:
            logger.error("image_upload_failed", backend="cloudinary", error=str(e))
            raise InfrastructureError("Could not store the image.") from e

        url = result.get("secure_url")
        if not url:
            logger.error("image_upload_failed", backend="cloudinary", result=result)
            raise InfrastructureError("Could not store the image.")
        logger.info("image_saved", backend="cloudinary", reference=url, public_id=result.get("public_id"))
        return url

    async def delete(self, reference: Optional[str]) -> None:
        if not reference:
            return
        public_id = self.public_id_from_url(reference)
        if not public_id:
            logger.warning("image_delete_skipped", backend="cloudinary", reference=reference)
            return
        try:
            result = await asyncio.to_thread(cloudinary.uploader.destroy, public_id)
        except Exception as e:
            logger.warning("image_delete_failed", backend="cloudinary", public_id=public_id, error=str(e))
            return
        if result.get("result") == "ok":
            logger.info("image_deleted", backend="cloudinary", public_id=public_id)
        else:
            logger.warning("image_delete_failed", backend="cloudinary", public_id=public_id, result=result)


def get_image_storage() -> ImageStorage:
    """Cloudinary when all three credentials are configured, local disk otherwise."""
    if get_settings().cloudinary_enabled:
        return CloudinaryImageStorage()
    return LocalImageStorage()


__all__ = [
    "ImageStorage",
    "LocalImageStorage",
    "CloudinaryImageStorage",
    "get_image_storage",
    "read_upload",
    "unique_filename",
]
