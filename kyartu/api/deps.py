"""API dependencies for FastAPI routes."""

from typing import Annotated

from fastapi import Depends

from kyartu.core.exceptions import ValidationError
from kyartu.services.cache import CacheService, get_cache_service
from kyartu.services.conversation import (
    ConversationStateService,
    get_conversation_state_service,
)

MAX_IDENTIFIER_LENGTH = 128


def validate_identifier(value: str, name: str = "identifier") -> str:
    """Reject identifiers that cannot form a cache key.

    Raises:
        ValidationError: If the identifier is blank, too long or contains ':'
    """
    cleaned = value.strip()
    if not cleaned or len(cleaned) > MAX_IDENTIFIER_LENGTH or ":" in cleaned:
        raise ValidationError(f"Invalid {name}", {name: value})
    return cleaned


# Type aliases for cleaner route signatures
Cache = Annotated[CacheService, Depends(get_cache_service)]
ConversationService = Annotated[
    ConversationStateService, Depends(get_conversation_state_service)
]
