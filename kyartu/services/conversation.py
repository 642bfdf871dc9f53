"""Conversation state orchestration.

Coordinates one chat exchange across the cache:
- Chat history (both sides of the exchange)
- Respect meter (delta from message analysis)
- Mood meter (transition when the display-scale mood changes)
- Session mode, joke bank and last-seen heartbeat

Response generation stays outside; callers pass the assistant text in.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from kyartu.core.exceptions import RateLimitError
from kyartu.core.logging import get_logger
from kyartu.services.analysis import (
    MessageAnalysis,
    analyze_message,
    determine_mode,
    mood_from_display,
)
from kyartu.services.cache import (
    CALL_COOLDOWN_SECONDS,
    INACTIVITY_WINDOW_SECONDS,
    CacheService,
    generate_message_id,
    generate_session_id,
    generate_user_id,
    get_cache_service,
)
from kyartu.services.cache.models import (
    ChatMessage,
    ConversationMode,
    Mood,
    RespectMeter,
    Role,
    SessionState,
    now_ms,
)

logger = get_logger(__name__)

Analyzer = Callable[[str], MessageAnalysis]


@dataclass
class SessionStart:
    session_id: str
    user_id: str
    state: SessionState


@dataclass
class ExchangeOutcome:
    """What one exchange changed in the cached state."""

    analysis: MessageAnalysis
    respect: RespectMeter
    mood: Mood
    mode: ConversationMode
    mood_changed: bool = False
    mode_changed: bool = False
    joke_added: bool = False
    message_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "analysis": self.analysis.to_dict(),
            "respectScore": self.respect.respect_score,
            "respectDisplay": self.respect.display_score,
            "mood": self.mood.value,
            "mode": self.mode.value,
            "moodChanged": self.mood_changed,
            "modeChanged": self.mode_changed,
            "jokeAdded": self.joke_added,
            "messageIds": self.message_ids,
        }


class ConversationStateService:
    """Applies chat exchanges to the cached conversational state."""

    def __init__(
        self,
        cache: CacheService | None = None,
        analyzer: Analyzer = analyze_message,
    ) -> None:
        self._cache = cache or get_cache_service()
        self._analyzer = analyzer

    @property
    def cache(self) -> CacheService:
        return self._cache

    async def start_session(
        self,
        user_id: str | None = None,
        last_page: str = "chat",
    ) -> SessionStart:
        """Create a session (and a user id when none is given)."""
        session_id = generate_session_id()
        user_id = user_id or generate_user_id()
        state = await self._cache.create_session_state(session_id, last_page=last_page)
        await self._cache.touch_last_seen(user_id)
        logger.info("Session started", session_id=session_id, user_id=user_id)
        return SessionStart(session_id=session_id, user_id=user_id, state=state)

    async def record_exchange(
        self,
        session_id: str,
        user_id: str,
        user_text: str,
        assistant_text: str,
    ) -> ExchangeOutcome:
        """Persist a user message and Kyartu's reply, updating meters and mode."""
        analysis = self._analyzer(user_text)

        # Mood is evaluated on the display scale before and after the delta
        before = await self._cache.get_respect_meter(user_id)
        respect = await self._cache.apply_respect_delta(
            user_id, analysis.respect_delta, reason=analysis.sentiment
        )
        previous_mood = (await self._cache.get_mood_meter(user_id)).last_mood
        mood = mood_from_display(respect.display_score)
        mood_changed = mood != previous_mood
        if mood_changed:
            await self._cache.record_mood(
                user_id,
                mood,
                reason=f"respect {before.display_score} -> {respect.display_score}",
            )

        user_message = ChatMessage(id=generate_message_id(), role=Role.USER, content=user_text)
        reply = ChatMessage(
            id=generate_message_id(),
            role=Role.ASSISTANT,
            content=assistant_text,
            mood=mood.value,
        )
        await self._cache.append_chat_messages(session_id, user_message, reply)

        state = await self._cache.get_session_state(session_id)
        mode = determine_mode(analysis)
        mode_changed = mode != state.current_mode
        if mode_changed:
            state = await self._cache.set_session_mode(session_id, mode)

        joke_added = False
        if analysis.is_joke and user_text.strip():
            await self._cache.add_user_joke(user_id, user_text)
            joke_added = True

        await self._cache.touch_last_seen(user_id)

        logger.debug(
            "Exchange recorded",
            session_id=session_id,
            user_id=user_id,
            respect_change=analysis.respect_change,
            mood=mood.value,
            mode=state.current_mode.value,
        )
        return ExchangeOutcome(
            analysis=analysis,
            respect=respect,
            mood=mood,
            mode=state.current_mode,
            mood_changed=mood_changed,
            mode_changed=mode_changed,
            joke_added=joke_added,
            message_ids=[user_message.id, reply.id],
        )

    # ========== Phone calls ==========

    async def call_retry_after(self, user_id: str) -> int:
        """Seconds until the user may call again, 0 when allowed."""
        last_attempt = await self._cache.get_call_attempt(user_id)
        if last_attempt is None:
            return 0
        elapsed = (now_ms() - last_attempt) / 1000
        return max(0, math.ceil(CALL_COOLDOWN_SECONDS - elapsed))

    async def can_start_call(self, user_id: str) -> bool:
        return await self.call_retry_after(user_id) == 0

    async def register_call(self, user_id: str) -> int:
        """Record a call attempt and return its timestamp.

        Raises:
            RateLimitError: If the cooldown since the last call has not elapsed
        """
        retry_after = await self.call_retry_after(user_id)
        if retry_after:
            raise RateLimitError(
                retry_after=retry_after,
                message="Kyartu is not picking up right now",
            )
        timestamp = now_ms()
        await self._cache.store_call_attempt(user_id, timestamp)
        return timestamp

    # ========== Presence ==========

    async def is_inactive(self, user_id: str) -> bool:
        """True when the user has no activity within the inactivity window."""
        record = await self._cache.get_last_seen(user_id)
        if record is None:
            return True
        return now_ms() - record.last_activity > INACTIVITY_WINDOW_SECONDS * 1000


_conversation_service: ConversationStateService | None = None


def get_conversation_state_service() -> ConversationStateService:
    """Get or create the global conversation state service."""
    global _conversation_service

    if _conversation_service is None:
        _conversation_service = ConversationStateService()

    return _conversation_service
