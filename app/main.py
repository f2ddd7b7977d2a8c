# app/main.py
from __future__ import annotations

"""
Application entrypoint: FastAPI factory, lifespan, middleware, static mounts and health.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.core.config import get_settings
from app.core.db import close_db_async, health_check_db_async, init_db_async
from app.core.exceptions import register_exception_handlers
from app.core.logging import LoggingContextMiddleware, get_logger, setup_logging
from app.routers import api_routers

logger = get_logger(__name__)


# ======================================================================================
# LIFESPAN (startup -> yield -> shutdown)
# ======================================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    setup_logging()
    logger.info("app_startup", env=settings.ENVIRONMENT, version=settings.VERSION)

    settings.ensure_dirs()
    await init_db_async()
    if settings.cloudinary_enabled:
        logger.info("image_storage", backend="cloudinary", folder=settings.CLOUDINARY_FOLDER)
    else:
        logger.info("image_storage", backend="local", directory=settings.IMAGES_DIR)

    try:
        yield
    finally:
        await close_db_async()
        logger.info("app_shutdown")


# ======================================================================================
# APP FACTORY
# ======================================================================================
def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    # outermost: request id and access log wrap everything else
    app.add_middleware(LoggingContextMiddleware)

    register_exception_handlers(app)

    for router in api_routers:
        app.include_router(router)

    @app.get("/", tags=["meta"])
    async def root() -> dict[str, Any]:
        return {"name": settings.APP_NAME, "version": settings.VERSION, "docs": "/docs"}

    @app.get("/health", tags=["meta"])
    async def health() -> JSONResponse:
        db = await health_check_db_async()
        body = {
            "status": "ok" if db["ok"] else "degraded",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "database": db,
        }
        return JSONResponse(status_code=200 if db["ok"] else 503, content=body)

    settings.ensure_dirs()
    app.mount("/uploads", StaticFiles(directory=settings.upload_path), name="uploads")
    app.mount("/img/productos", StaticFiles(directory=settings.images_path), name="images")

    return app


# Uvicorn entrypoint
app: FastAPI = create_app()


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    _s = get_settings()
    uvicorn.run("app.main:app", host=_s.HOST, port=_s.PORT, reload=_s.DEBUG)
