"""Session-scoped cache operations: chat history and session state."""

from typing import Any

from pydantic import ValidationError

from kyartu.core.logging import get_logger
from kyartu.services.cache.base import BaseCacheOperations
from kyartu.services.cache.constants import MAX_CHAT_MESSAGES, Namespace
from kyartu.services.cache.models import (
    ChatHistorySnapshot,
    ChatMessage,
    ConversationMode,
    SessionState,
    now_ms,
)

logger = get_logger(__name__)


def _to_messages(messages: list[ChatMessage | dict[str, Any]]) -> list[ChatMessage]:
    return [
        message if isinstance(message, ChatMessage) else ChatMessage.model_validate(message)
        for message in messages
    ]


class ConversationCacheMixin(BaseCacheOperations):
    """Chat history and session state caching operations."""

    # ========== Chat history ==========

    async def store_chat_history(
        self,
        session_id: str,
        messages: list[ChatMessage | dict[str, Any]],
    ) -> bool:
        """Replace the whole chat history of a session."""
        try:
            snapshot = ChatHistorySnapshot(messages=_to_messages(messages), last_updated=now_ms())
        except ValidationError as e:
            logger.warning("Rejected malformed chat history", session_id=session_id, error=str(e))
            return False
        return await self._save(Namespace.CHAT_HISTORY, session_id, snapshot.to_document())

    async def get_chat_history(self, session_id: str) -> ChatHistorySnapshot:
        """Get the chat history, empty when nothing is cached."""
        snapshot = await self._load_model(Namespace.CHAT_HISTORY, session_id, ChatHistorySnapshot)
        return snapshot or ChatHistorySnapshot()

    async def append_chat_messages(
        self,
        session_id: str,
        *messages: ChatMessage | dict[str, Any],
    ) -> bool:
        """Append messages and rewrite the history, keeping the last MAX_CHAT_MESSAGES."""
        if not messages:
            return False
        snapshot = await self.get_chat_history(session_id)
        combined = [*snapshot.messages, *_to_messages(list(messages))]
        return await self.store_chat_history(session_id, combined[-MAX_CHAT_MESSAGES:])

    async def clear_chat_history(self, session_id: str) -> bool:
        return await self._remove(Namespace.CHAT_HISTORY, session_id)

    # ========== Session state ==========

    async def store_session_state(
        self,
        session_id: str,
        state: SessionState | dict[str, Any],
    ) -> bool:
        """Replace the session state document."""
        try:
            if not isinstance(state, SessionState):
                state = SessionState.model_validate(state)
        except ValidationError as e:
            logger.warning("Rejected malformed session state", session_id=session_id, error=str(e))
            return False
        return await self._save(Namespace.SESSION_STATE, session_id, state.to_document())

    async def get_session_state(self, session_id: str) -> SessionState:
        """Get the session state; defaults to the default mode with ``joinedAt`` 0."""
        state = await self._load_model(Namespace.SESSION_STATE, session_id, SessionState)
        return state or SessionState(joined_at=0)

    async def create_session_state(
        self,
        session_id: str,
        last_page: str = "chat",
        **extra: Any,
    ) -> SessionState:
        """Start a session in the default mode."""
        state = SessionState(last_page=last_page, **extra)
        await self.store_session_state(session_id, state)
        return state

    async def set_session_mode(
        self,
        session_id: str,
        mode: ConversationMode | str,
        last_page: str | None = None,
    ) -> SessionState:
        """Switch the conversational mode; unknown modes leave the state unchanged."""
        state = await self.get_session_state(session_id)
        if not state.joined_at:
            state.joined_at = now_ms()

        try:
            state.current_mode = ConversationMode(mode)
        except ValueError:
            logger.warning("Ignoring unknown conversation mode", session_id=session_id, mode=mode)
            return state

        if last_page is not None:
            state.last_page = last_page
        await self.store_session_state(session_id, state)
        return state
