# app/core/__init__.py
"""
Core package: settings, logging, database plumbing, errors and dependencies.

    from app.core import settings, get_logger
"""

from app.core.config import get_settings, settings
from app.core.logging import get_logger, setup_logging

__all__ = ["get_settings", "settings", "get_logger", "setup_logging"]
