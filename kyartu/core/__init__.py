"""Core module exports."""

from kyartu.core.config import Settings, get_settings
from kyartu.core.exceptions import (
    AppException,
    CacheError,
    KeyValueStoreError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from kyartu.core.logging import get_logger, setup_logging

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Logging
    "get_logger",
    "setup_logging",
    # Exceptions
    "AppException",
    "CacheError",
    "KeyValueStoreError",
    "NotFoundError",
    "RateLimitError",
    "ValidationError",
]
