"""API module exports."""

from kyartu.api.deps import Cache, ConversationService
from kyartu.api.routes import health_router, kv_router, state_router

__all__ = [
    # Routers
    "health_router",
    "kv_router",
    "state_router",
    # Dependencies
    "Cache",
    "ConversationService",
]
