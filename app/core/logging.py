# app/core/logging.py
"""
Centralized logging for Tienda.

Features:
- Stdlib logging (dictConfig): console + size-rotated app log + error log.
- structlog on top (JSON renderer in production or LOG_FORMAT=json, dev console otherwise).
- Sensitive fields redaction.
- Request context (request_id, client_ip) via contextvars.
- ASGI middleware for request context & access logs.
"""

from __future__ import annotations

import logging
import logging.config
import os
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Dict, Optional, Tuple

import structlog

from app.core.config import get_settings


# ---------- Context vars ----------
_ctx_request_id: ContextVar[str] = ContextVar("request_id", default="")
_ctx_client_ip: ContextVar[str] = ContextVar("client_ip", default="")

_CONFIGURED = False


# ---------- Secrets redaction ----------
_SECRET_KEYS = ("secret", "password", "token", "dsn", "api_key", "api_secret", "access_key")


def _mask_secret_value(v: Any) -> Any:
    s = str(v)
    if len(s) <= 6:
        return "***"
    return s[:3] + "***" + s[-3:]


def redact_secrets(data: Any) -> Any:
    if isinstance(data, dict):
        out: Dict[str, Any] = {}
        for k, v in data.items():
            lk = str(k).lower()
            if any(x in lk for x in _SECRET_KEYS):
                out[k] = _mask_secret_value(v)
            else:
                out[k] = redact_secrets(v)
        return out
    if isinstance(data, list):
        return [redact_secrets(v) for v in data]
    if isinstance(data, tuple):
        return tuple(redact_secrets(v) for v in data)
    return data


# ---------- structlog processors ----------
def _inject_context(_, __, event_dict):
    rid = _ctx_request_id.get()
    cip = _ctx_client_ip.get()
    if rid:
        event_dict["request_id"] = rid
    if cip:
        event_dict["client_ip"] = cip
    return event_dict


def _redact_processor(_, __, event_dict):
    return redact_secrets(event_dict)


def _add_app(_, __, event_dict):
    s = get_settings()
    event_dict["app"] = s.APP_NAME
    event_dict["version"] = s.VERSION
    return event_dict


# ---------- Stdlib dictConfig ----------
def _build_stdlib_dict_config() -> dict:
    s = get_settings()
    level = (s.LOG_LEVEL or "INFO").upper()

    handlers: Dict[str, dict] = {
        "console": {
            "level": level,
            "class": "logging.StreamHandler",
            "formatter": "plain",
            "stream": "ext://sys.stdout",
        },
    }
    root_handlers = ["console"]

    if s.LOG_TO_FILE:
        logs_dir = os.path.dirname(s.LOG_PATH) or "logs"
        os.makedirs(logs_dir, exist_ok=True)
        handlers["file"] = {
            "level": "DEBUG",
            "class": "logging.handlers.RotatingFileHandler",
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "formatter": "plain",
            "filename": s.LOG_PATH,
            "encoding": "utf8",
        }
        handlers["error_file"] = {
            "level": "ERROR",
            "class": "logging.handlers.RotatingFileHandler",
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "formatter": "plain",
            "filename": os.path.join(logs_dir, "errors.log"),
            "encoding": "utf8",
        }
        root_handlers += ["file", "error_file"]

    return {
        "version": 1,
        "disable_existing_loggers": False,
        # structlog renders the final line; stdlib only routes it
        "formatters": {"plain": {"format": "%(message)s"}},
        "handlers": handlers,
        "loggers": {
            "": {"handlers": root_handlers, "level": level, "propagate": False},
            "uvicorn": {"handlers": root_handlers, "level": "INFO", "propagate": False},
            "uvicorn.error": {"handlers": root_handlers, "level": "INFO", "propagate": False},
            "uvicorn.access": {"handlers": root_handlers, "level": "WARNING", "propagate": False},
        },
    }


# ---------- structlog configure ----------
def _configure_structlog() -> None:
    s = get_settings()
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        _inject_context,
        _redact_processor,
        _add_app,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = (
        structlog.processors.JSONRenderer()
        if s.is_production or s.LOG_FORMAT == "json"
        else structlog.dev.ConsoleRenderer()
    )
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# ---------- Public API ----------
def setup_logging() -> None:
    """
    Centralized logging setup:
    - stdlib dictConfig (console + rotating file + error file)
    - structlog (JSON/console)
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logging.config.dictConfig(_build_stdlib_dict_config())
    _configure_structlog()

    lg = get_logger(__name__)
    lg.info("logging_initialized", log_path=get_settings().LOG_PATH if get_settings().LOG_TO_FILE else None)
    lg.debug("settings", **get_settings().dump_settings_safe())

    _CONFIGURED = True


def get_logger(name: str):
    return structlog.get_logger(name)


# ---------- Context helpers ----------
@contextmanager
def bound_context(request_id: Optional[str] = None, client_ip: Optional[str] = None):
    tokens: list[Tuple[ContextVar[str], Token]] = []
    if request_id is not None:
        tokens.append((_ctx_request_id, _ctx_request_id.set(request_id)))
    if client_ip is not None:
        tokens.append((_ctx_client_ip, _ctx_client_ip.set(client_ip)))
    try:
        yield
    finally:
        for var, tok in reversed(tokens):
            var.reset(tok)


def current_request_id() -> str:
    return _ctx_request_id.get()


# ---------- ASGI middleware ----------
class LoggingContextMiddleware:
    """
    - Generates/reads X-Request-ID and echoes it on the response
    - Binds request context
    - Logs start/end with duration and status
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        # ASGI header bytes are latin-1
        headers = {k.decode("latin-1").lower(): v.decode("latin-1") for k, v in scope.get("headers", [])}
        request_id = headers.get("x-request-id") or headers.get("x-correlation-id") or str(uuid.uuid4())
        client = scope.get("client") or ("", 0)
        client_ip = client[0] if isinstance(client, (list, tuple)) and client else ""
        path = scope.get("path", "")
        method = scope.get("method", "")

        start = time.perf_counter()
        status_code_holder = {"code": 500}

        async def _send(message):
            if message["type"] == "http.response.start":
                status_code_holder["code"] = message.get("status", 200)
                message.setdefault("headers", [])
                message["headers"] = list(message["headers"]) + [(b"x-request-id", request_id.encode("latin-1"))]
            await send(message)

        with bound_context(request_id=request_id, client_ip=client_ip):
            lg = get_logger("http")
            lg.info("request_start", method=method, path=path)
            try:
                await self.app(scope, receive, _send)
            finally:
                dur_ms = (time.perf_counter() - start) * 1000.0
                lg.info(
                    "request_end",
                    method=method,
                    path=path,
                    status=status_code_holder["code"],
                    duration_ms=round(dur_ms, 2),
                )


__all__ = [
    "setup_logging",
    "get_logger",
    "bound_context",
    "current_request_id",
    "redact_secrets",
    "LoggingContextMiddleware",
]
