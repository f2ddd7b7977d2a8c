# app/core/exceptions.py
from __future__ import annotations

"""
Unified exceptions & handlers for Tienda.

- Domain exceptions for checkout and catalog (InputError, NotFoundError,
  InsufficientStockError, ConcurrentConflictError, ConflictError, InfrastructureError)
- Global FastAPI handlers with structured logging via app.core.logging
- Every error body has the shape {"ok": false, "message": ..., "code": ...}
- RequestValidationError, SQLAlchemyError and uncaught exceptions are mapped too;
  internal store errors are never exposed verbatim
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import get_logger

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "Internal error while processing the request."

# -----------------------------------------------------------------------------
# Custom domain exceptions
# -----------------------------------------------------------------------------


class TiendaException(Exception):
    """Base domain exception."""

    default_status: int = status.HTTP_400_BAD_REQUEST
    default_code: str = "BAD_REQUEST"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        *,
        extra: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.extra = extra or {}
        self.http_status = http_status or self.default_status
        super().__init__(self.message)


class InputError(TiendaException):
    """Malformed payload, rejected before any store access."""

    default_code = "INVALID_INPUT"


class NotFoundError(TiendaException):
    """Resource not found."""

    default_status = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class InsufficientStockError(TiendaException):
    """Requested quantity exceeds the current stock of a variant."""

    default_code = "INSUFFICIENT_STOCK"

    def __init__(self, variant_id: int, available: int, requested: int):
        self.variant_id = variant_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for variant {variant_id}. "
            f"available: {available}, requested: {requested}",
            extra={"variant_id": variant_id, "available": available, "requested": requested},
        )


class ConcurrentConflictError(TiendaException):
    """A conditional decrement matched nothing after validation passed."""

    default_code = "CONCURRENT_CONFLICT"

    def __init__(self, variant_id: int):
        self.variant_id = variant_id
        super().__init__(
            f"Could not decrement stock for variant {variant_id}. "
            "Another customer may have bought it just before; retry the purchase.",
            extra={"variant_id": variant_id},
        )


class ConflictError(TiendaException):
    """Duplicate product name or variant id."""

    default_status = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class InfrastructureError(TiendaException):
    """Store unreachable, timed out or failed."""

    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "INFRASTRUCTURE_ERROR"

    def __init__(self, message: str = GENERIC_ERROR_MESSAGE, **kwargs: Any):
        super().__init__(message, **kwargs)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def error_body(message: str, code: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"ok": False, "message": message}
    if code:
        body["code"] = code
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


# -----------------------------------------------------------------------------
# Exception Handlers (FastAPI)
# -----------------------------------------------------------------------------


async def tienda_exception_handler(request: Request, exc: TiendaException) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error(
            "domain_error",
            code=exc.code,
            path=request.url.path,
            method=request.method,
            exc_info=exc.__cause__ or exc,
        )
    else:
        logger.info("domain_rejection", code=exc.code, path=request.url.path, message=exc.message)
    return JSONResponse(status_code=exc.http_status, content=error_body(exc.message, exc.code))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
        for e in exc.errors()
    ]
    first = errors[0] if errors else {"loc": [], "msg": "invalid request"}
    field = ".".join(str(p) for p in first["loc"] if p not in ("body", "query", "path", "form"))
    message = f"Invalid field '{field}': {first['msg']}" if field else f"Invalid request: {first['msg']}"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, "INVALID_INPUT", errors=errors),
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("database_error", path=request.url.path, method=request.method, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(GENERIC_ERROR_MESSAGE, "DATABASE_ERROR"),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for uncaught exceptions."""
    logger.error("unhandled_exception", path=request.url.path, method=request.method, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(GENERIC_ERROR_MESSAGE, "INTERNAL_ERROR"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TiendaException, tienda_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, global_exception_handler)


__all__ = [
    "TiendaException",
    "InputError",
    "NotFoundError",
    "InsufficientStockError",
    "ConcurrentConflictError",
    "ConflictError",
    "InfrastructureError",
    "GENERIC_ERROR_MESSAGE",
    "error_body",
    "register_exception_handlers",
]
