"""Services module exports."""

from kyartu.services.analysis import MessageAnalysis, analyze_message
from kyartu.services.cache import CacheService, get_cache_service
from kyartu.services.conversation import (
    ConversationStateService,
    ExchangeOutcome,
    get_conversation_state_service,
)

__all__ = [
    # Analysis
    "MessageAnalysis",
    "analyze_message",
    # Cache
    "CacheService",
    "get_cache_service",
    # Conversation state
    "ConversationStateService",
    "ExchangeOutcome",
    "get_conversation_state_service",
]
