"""Routes module exports."""

from kyartu.api.routes.health import router as health_router
from kyartu.api.routes.kv import router as kv_router
from kyartu.api.routes.state import router as state_router

__all__ = [
    "health_router",
    "kv_router",
    "state_router",
]
