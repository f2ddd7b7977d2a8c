# app/core/db.py
"""
Database configuration and session management for Tienda (async).

Key points:
- Lazy engine creation (no connection at import time).
- Default URL is sqlite+aiosqlite; Postgres URLs are normalized to asyncpg in settings.
- SQLite connections get `PRAGMA foreign_keys=ON` so variant rows follow their product.
- Utilities: get_db(), init_db_async(), close_db_async(),
  health_check_db_async().
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Declarative base (SQLAlchemy 2.x)
# -----------------------------------------------------------------------------
class Base(DeclarativeBase):
    pass


__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "get_sessionmaker",
    "init_db_async",
    "close_db_async",
    "health_check_db_async",
    "install_sqlite_pragmas",
]

_ASYNC_ENGINE: Optional[AsyncEngine] = None
_ASYNC_SESSION_MAKER: Optional[async_sessionmaker[AsyncSession]] = None


def install_sqlite_pragmas(engine: Engine) -> None:
    """Enable FK enforcement on every new SQLite connection."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _conn_rec):  # pragma: no cover (low-level hook)
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()


def _engine_options() -> dict:
    s = get_settings()
    opts: dict = {"echo": s.SQLALCHEMY_ECHO, "future": True}
    if not s.is_sqlite:
        opts.update(pool_pre_ping=True, pool_size=10, max_overflow=20, pool_recycle=1800)
    return opts


def get_engine() -> AsyncEngine:
    """Create and cache the async engine lazily (no connection yet)."""
    global _ASYNC_ENGINE, _ASYNC_SESSION_MAKER
    if _ASYNC_ENGINE is not None:
        return _ASYNC_ENGINE

    url = get_settings().DATABASE_URL
    _ASYNC_ENGINE = create_async_engine(url, **_engine_options())
    install_sqlite_pragmas(_ASYNC_ENGINE.sync_engine)
    _ASYNC_SESSION_MAKER = async_sessionmaker(
        bind=_ASYNC_ENGINE, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    return _ASYNC_ENGINE


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    get_engine()
    assert _ASYNC_SESSION_MAKER is not None
    return _ASYNC_SESSION_MAKER


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency: one session per request, closed on exit.
    The connection is opened here, not at import time.
    """
    session = get_sessionmaker()()
    try:
        yield session
    finally:
        await session.close()


async def init_db_async(drop_all: bool = False) -> None:
    # register mappers before create_all
    import app.models  # noqa: F401

    eng = get_engine()
    async with eng.begin() as conn:
        if drop_all:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("db_schema_ready", url=eng.url.render_as_string(hide_password=True))


async def close_db_async() -> None:
    global _ASYNC_ENGINE, _ASYNC_SESSION_MAKER
    if _ASYNC_ENGINE is not None:
        await _ASYNC_ENGINE.dispose()
    _ASYNC_ENGINE = None
    _ASYNC_SESSION_MAKER = None


async def health_check_db_async(timeout_seconds: float = 2.0) -> dict:
    try:
        eng = get_engine()

        async def _ping() -> None:
            async with eng.connect() as conn:
                await conn.execute(text("SELECT 1"))

        await asyncio.wait_for(_ping(), timeout=timeout_seconds)
        return {"ok": True, "error": None, "dialect": eng.dialect.name}
    except Exception as e:
        logger.error("db_health_check_failed", error=str(e))
        return {"ok": False, "error": type(e).__name__, "dialect": None}
