# app/core/config.py
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ================================
# HELPERS
# ================================
def _mask_secret(val: Optional[str]) -> Optional[str]:
    if val is None:
        return None
    s = str(val)
    if not s:
        return s
    if len(s) <= 6:
        return "***"
    return s[:3] + "***" + s[-3:]


def _is_secret_key_name(key: str) -> bool:
    lk = key.lower()
    if any(s in lk for s in ("secret", "password", "token", "dsn")):
        return True
    if "key" in lk and "public" not in lk:
        return True
    return False


def _parse_list_like(v):
    if isinstance(v, str):
        v = v.strip()
        if v.startswith("[") and v.endswith("]"):
            try:
                parsed = json.loads(v)
            except ValueError:
                parsed = None
            if isinstance(parsed, list):
                return [str(i).strip() for i in parsed if str(i).strip()]
        return [i.strip() for i in v.split(",") if i.strip()]
    return v


def normalize_async_db_url(url: str) -> str:
    """Map plain Postgres URLs onto the asyncpg driver; other URLs pass through."""
    url = url.strip()
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql+"):
        return "postgresql+asyncpg://" + url.split("://", 1)[1]
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


# ================================
# SETTINGS (Pydantic v2)
# ================================
class Settings(BaseSettings):
    """
    Tienda configuration layer.
    - Values come from the environment and `.env`.
    - SQLite (aiosqlite) by default, PostgreSQL (asyncpg) in production.
    - Secrets are masked in dumps.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    # ---- base
    APP_NAME: str = Field(default="Tienda", description="Application name")
    VERSION: str = Field(default="0.1.0", description="Application version")
    ENVIRONMENT: str = Field(default="development", description="Environment")
    DEBUG: bool = Field(default=False, description="Debug mode")
    HOST: str = Field(default="127.0.0.1", description="Server host")
    PORT: int = Field(default=5000, description="Server port")
    PUBLIC_URL: Optional[str] = Field(default=None, description="Public base URL for generated links")

    # ---- database
    DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./tienda.db", description="Database URL")
    SQLALCHEMY_ECHO: bool = Field(default=False, description="Echo SQL statements")
    STORE_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0, description="Upper bound for a single store call")

    # ---- CORS
    CORS_ORIGINS: str = Field(default="*", description="CORS origins (comma separated or JSON list)")

    # ---- files
    UPLOAD_DIR: str = Field(default="uploads", description="Invoices and uploaded PDFs")
    IMAGES_DIR: str = Field(default="img/productos", description="Product and variant images")
    LOGO_FILE: str = Field(default="logo2.jpg", description="Invoice logo file name inside IMAGES_DIR")
    MAX_UPLOAD_SIZE: int = Field(default=10 * 1024 * 1024, description="Max upload size (bytes)")

    # ---- logs
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="console", description="Logging format (json|console)")
    LOG_PATH: str = Field(default="logs/app.log", description="Log file path")
    LOG_TO_FILE: bool = Field(default=True, description="Write logs to LOG_PATH")

    # ---- providers
    CLOUDINARY_CLOUD_NAME: Optional[str] = Field(default=None, description="Cloudinary cloud name")
    CLOUDINARY_API_KEY: Optional[str] = Field(default=None, description="Cloudinary API key")
    CLOUDINARY_API_SECRET: Optional[str] = Field(default=None, description="Cloudinary API secret")
    CLOUDINARY_FOLDER: str = Field(default="tienda/productos", description="Cloudinary folder")

    WHATSAPP_NUMBER: Optional[str] = Field(default=None, description="Number invoices are shared with")

    # ---- validators
    @field_validator("DATABASE_URL")
    @classmethod
    def _normalize_db_url(cls, v: str) -> str:
        return normalize_async_db_url(v)

    @field_validator("LOG_FORMAT")
    @classmethod
    def _check_log_format(cls, v: str) -> str:
        v = (v or "console").lower()
        if v not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v

    # ---- derived
    @property
    def cors_origins(self) -> List[str]:
        return _parse_list_like(self.CORS_ORIGINS) or ["*"]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in ("prod", "production")

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def cloudinary_enabled(self) -> bool:
        return bool(self.CLOUDINARY_CLOUD_NAME and self.CLOUDINARY_API_KEY and self.CLOUDINARY_API_SECRET)

    @property
    def upload_path(self) -> Path:
        return Path(self.UPLOAD_DIR)

    @property
    def images_path(self) -> Path:
        return Path(self.IMAGES_DIR)

    def ensure_dirs(self) -> None:
        for p in (self.upload_path, self.images_path):
            p.mkdir(parents=True, exist_ok=True)
        if self.LOG_TO_FILE:
            Path(self.LOG_PATH).parent.mkdir(parents=True, exist_ok=True)

    def dump_settings_safe(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for k, v in self.model_dump().items():
            out[k] = _mask_secret(v) if _is_secret_key_name(k) and isinstance(v, str) else v
        return out


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
