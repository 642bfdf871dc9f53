"""Database module exports."""

from kyartu.db.models import Base, LocalCacheEntry
from kyartu.db.session import (
    close_db,
    get_engine,
    get_session_factory,
    init_db,
)

__all__ = [
    # Models
    "Base",
    "LocalCacheEntry",
    # Session management
    "get_engine",
    "get_session_factory",
    "init_db",
    "close_db",
]
