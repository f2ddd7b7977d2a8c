# tests/conftest.py
"""
Pytest configuration and fixtures for async database testing.

Key points:
- Every test gets its own temporary SQLite file (sqlite+aiosqlite), so concurrent
  sessions see real locking instead of a shared in-memory connection.
- Upload/image directories live under tmp_path; file logging is disabled.
- `client` drives a freshly built app through httpx.AsyncClient + ASGITransport,
  with get_db overridden to the per-test session factory.
- `seeded` inserts a small catalog used by the checkout scenarios.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncIterator, Callable
from decimal import Decimal
from pathlib import Path

# Environment must be in place before app.core.config builds its settings.
_BOOT_DIR = Path(tempfile.mkdtemp(prefix="tienda-tests-"))
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("UPLOAD_DIR", str(_BOOT_DIR / "uploads"))
os.environ.setdefault("IMAGES_DIR", str(_BOOT_DIR / "img"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_BOOT_DIR / 'boot.db'}")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings, get_settings
from app.core.db import close_db_async, get_db, get_sessionmaker, init_db_async
from app.models import Product, ProductVariant
from app.services import inventory


@pytest.fixture
def test_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    s = get_settings()
    monkeypatch.setattr(s, "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'tienda.db'}")
    monkeypatch.setattr(s, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(s, "IMAGES_DIR", str(tmp_path / "img" / "productos"))
    monkeypatch.setattr(s, "LOG_TO_FILE", False)
    monkeypatch.setattr(s, "PUBLIC_URL", None)
    monkeypatch.setattr(s, "WHATSAPP_NUMBER", "5491100000000")
    monkeypatch.setattr(s, "CLOUDINARY_CLOUD_NAME", None)
    monkeypatch.setattr(s, "CLOUDINARY_API_KEY", None)
    monkeypatch.setattr(s, "CLOUDINARY_API_SECRET", None)
    monkeypatch.setattr(s, "STORE_TIMEOUT_SECONDS", 5.0)
    s.ensure_dirs()
    return s


@pytest_asyncio.fixture
async def session_factory(test_settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    await close_db_async()
    await init_db_async()
    try:
        yield get_sessionmaker()
    finally:
        await close_db_async()


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncClient]:
    from app.main import create_app

    app = create_app()

    async def _override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        try:
            yield c
        finally:
            app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, int]:
    """
    Remera: 101 (stock 5), 102 (stock 3)
    Gorra:  201 (stock 1)
    """
    async with session_factory() as s:
        remera = Product(name="Remera", image="remera.png")
        remera.variants = [
            ProductVariant(id=101, price=Decimal("1000.00"), stock=5, image="remera-roja.png", position=0),
            ProductVariant(id=102, price=Decimal("1200.00"), stock=3, image="remera-azul.png", position=1),
        ]
        gorra = Product(name="Gorra", image="gorra.png")
        gorra.variants = [
            ProductVariant(id=201, price=Decimal("500.00"), stock=1, image="gorra-negra.png", position=0),
        ]
        s.add_all([remera, gorra])
        await s.commit()
    return {"remera_roja": 101, "remera_azul": 102, "gorra": 201}


@pytest.fixture
def read_stock(session_factory: async_sessionmaker[AsyncSession]) -> Callable:
    """Stock as currently persisted, read through a fresh session."""

    async def _read(variant_id: int) -> int | None:
        async with session_factory() as s:
            variant = await inventory.get_variant(s, variant_id)
            return None if variant is None else variant.stock

    return _read


@pytest.fixture
def png_bytes() -> bytes:
    # the catalog stores whatever is uploaded; content is never decoded
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
