"""Conversation state endpoints.

Thin wrappers over the cache accessors and the conversation state service.
Cache failures never surface here; reads return documented defaults.
"""

from typing import Any

from fastapi import APIRouter

from kyartu.api.deps import Cache, ConversationService, validate_identifier
from kyartu.api.schemas import (
    CallStatus,
    ExchangeRequest,
    JokeCreate,
    ModerationFlagUpdate,
    MoodResponse,
    ReactionCreate,
    ReactionResponse,
    RespectDelta,
    RespectResponse,
    SessionCreate,
    SessionModeUpdate,
    SessionResponse,
    SuccessResponse,
)
from kyartu.core.exceptions import NotFoundError, ValidationError
from kyartu.services.cache.models import ConversationMode, RespectMeter

router = APIRouter(tags=["Conversation State"])


def _respect(user_id: str, meter: RespectMeter) -> RespectResponse:
    return RespectResponse(
        user_id=user_id,
        score=meter.respect_score,
        display=meter.display_score,
        last_updated=meter.last_updated,
    )


# ============================================================
# Sessions & chat history
# ============================================================

@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=201,
    summary="Start a session",
)
async def start_session(body: SessionCreate, service: ConversationService) -> SessionResponse:
    """
    Start a chat session in the default mode.

    A user id is generated when none is supplied.
    """
    user_id = validate_identifier(body.user_id, "user_id") if body.user_id else None
    started = await service.start_session(user_id=user_id, last_page=body.last_page)
    return SessionResponse(
        session_id=started.session_id,
        user_id=started.user_id,
        state=started.state.to_document(),
    )


@router.get("/sessions/{session_id}", summary="Get session state")
async def get_session(session_id: str, cache: Cache) -> dict[str, Any]:
    state = await cache.get_session_state(validate_identifier(session_id, "session_id"))
    return state.to_document()


@router.put("/sessions/{session_id}/mode", summary="Switch conversation mode")
async def set_session_mode(
    session_id: str,
    body: SessionModeUpdate,
    cache: Cache,
) -> dict[str, Any]:
    session_id = validate_identifier(session_id, "session_id")
    if body.mode not in {mode.value for mode in ConversationMode}:
        raise ValidationError("Unknown conversation mode", {"mode": body.mode})
    state = await cache.set_session_mode(session_id, body.mode, last_page=body.last_page)
    return state.to_document()


@router.get("/sessions/{session_id}/history", summary="Get chat history")
async def get_chat_history(session_id: str, cache: Cache) -> dict[str, Any]:
    snapshot = await cache.get_chat_history(validate_identifier(session_id, "session_id"))
    return snapshot.to_document()


@router.delete(
    "/sessions/{session_id}/history",
    response_model=SuccessResponse,
    summary="Clear chat history",
)
async def clear_chat_history(session_id: str, cache: Cache) -> SuccessResponse:
    await cache.clear_chat_history(validate_identifier(session_id, "session_id"))
    return SuccessResponse(message="Chat history cleared")


@router.post("/sessions/{session_id}/exchanges", summary="Record a chat exchange")
async def record_exchange(
    session_id: str,
    body: ExchangeRequest,
    service: ConversationService,
) -> dict[str, Any]:
    """
    Record a user message and Kyartu's reply.

    Updates respect, mood, session mode, joke bank and last seen.
    """
    outcome = await service.record_exchange(
        validate_identifier(session_id, "session_id"),
        validate_identifier(body.user_id, "user_id"),
        body.user_message,
        body.assistant_message,
    )
    return outcome.to_dict()


# ============================================================
# Respect & mood
# ============================================================

@router.get("/users/{user_id}/respect", response_model=RespectResponse, summary="Get respect")
async def get_respect(user_id: str, cache: Cache) -> RespectResponse:
    user_id = validate_identifier(user_id, "user_id")
    return _respect(user_id, await cache.get_respect_meter(user_id))


@router.post(
    "/users/{user_id}/respect",
    response_model=RespectResponse,
    summary="Apply a respect delta",
)
async def apply_respect_delta(user_id: str, body: RespectDelta, cache: Cache) -> RespectResponse:
    """Add a delta on the [0,5] scale; the result is clamped."""
    user_id = validate_identifier(user_id, "user_id")
    meter = await cache.apply_respect_delta(user_id, body.delta, reason=body.reason)
    return _respect(user_id, meter)


@router.get("/users/{user_id}/mood", response_model=MoodResponse, summary="Get mood")
async def get_mood(user_id: str, cache: Cache) -> MoodResponse:
    user_id = validate_identifier(user_id, "user_id")
    meter = await cache.get_mood_meter(user_id)
    return MoodResponse(user_id=user_id, mood=meter.last_mood.value, history=meter.mood_history)


# ============================================================
# Jokes & reactions
# ============================================================

@router.get("/users/{user_id}/jokes", summary="List remembered jokes")
async def list_jokes(user_id: str, cache: Cache) -> list[dict[str, Any]]:
    jokes = await cache.get_user_jokes(validate_identifier(user_id, "user_id"))
    return [joke.to_document() for joke in jokes]


@router.post("/users/{user_id}/jokes", status_code=201, summary="Remember a joke")
async def add_joke(user_id: str, body: JokeCreate, cache: Cache) -> list[dict[str, Any]]:
    jokes = await cache.add_user_joke(validate_identifier(user_id, "user_id"), body.joke)
    return [joke.to_document() for joke in jokes]


@router.get(
    "/messages/{message_id}/reactions",
    response_model=ReactionResponse,
    summary="Get reactions",
)
async def get_reactions(message_id: str, cache: Cache) -> ReactionResponse:
    message_id = validate_identifier(message_id, "message_id")
    tally = await cache.get_reactions(message_id)
    return ReactionResponse(message_id=message_id, counts=tally.counts)


@router.post(
    "/messages/{message_id}/reactions",
    response_model=ReactionResponse,
    summary="React to a message",
)
async def add_reaction(message_id: str, body: ReactionCreate, cache: Cache) -> ReactionResponse:
    """Count a reaction; repeating the same emoji is a no-op."""
    message_id = validate_identifier(message_id, "message_id")
    tally = await cache.add_reaction(
        message_id, body.emoji, validate_identifier(body.user_id, "user_id")
    )
    return ReactionResponse(message_id=message_id, counts=tally.counts)


# ============================================================
# Preferences & moderation
# ============================================================

@router.get("/users/{user_id}/preferences", summary="Get preferences")
async def get_preferences(user_id: str, cache: Cache) -> dict[str, Any]:
    prefs = await cache.get_user_preferences(validate_identifier(user_id, "user_id"))
    return prefs.to_document()


@router.patch("/users/{user_id}/preferences", summary="Update preferences")
async def update_preferences(
    user_id: str,
    updates: dict[str, Any],
    cache: Cache,
) -> dict[str, Any]:
    """Shallow-merge the given fields over the stored preferences."""
    user_id = validate_identifier(user_id, "user_id")
    if not await cache.store_user_preferences(user_id, updates):
        raise ValidationError("Invalid preferences", {"fields": sorted(updates)})
    prefs = await cache.get_user_preferences(user_id)
    return prefs.to_document()


@router.get("/users/{user_id}/moderation", summary="Get moderation flags")
async def get_moderation_flags(user_id: str, cache: Cache) -> dict[str, Any]:
    flags = await cache.get_moderation_flags(validate_identifier(user_id, "user_id"))
    return {name: flag.to_document() for name, flag in flags.items()}


@router.put("/users/{user_id}/moderation/{flag}", summary="Set a moderation flag")
async def set_moderation_flag(
    user_id: str,
    flag: str,
    body: ModerationFlagUpdate,
    cache: Cache,
) -> dict[str, Any]:
    user_id = validate_identifier(user_id, "user_id")
    await cache.set_moderation_flag(user_id, flag, active=body.active, reason=body.reason)
    flags = await cache.get_moderation_flags(user_id)
    return {name: value.to_document() for name, value in flags.items()}


# ============================================================
# Presence & phone calls
# ============================================================

@router.post("/users/{user_id}/last-seen", summary="Record activity")
async def touch_last_seen(user_id: str, cache: Cache) -> dict[str, Any]:
    record = await cache.touch_last_seen(validate_identifier(user_id, "user_id"))
    return record.to_document()


@router.get(
    "/users/{user_id}/last-seen",
    summary="Get last activity",
    responses={404: {"description": "User never seen or record expired"}},
)
async def get_last_seen(
    user_id: str,
    cache: Cache,
    service: ConversationService,
) -> dict[str, Any]:
    user_id = validate_identifier(user_id, "user_id")
    record = await cache.get_last_seen(user_id)
    if record is None:
        raise NotFoundError("Last seen record")
    return {**record.to_document(), "inactive": await service.is_inactive(user_id)}


@router.get("/users/{user_id}/call", response_model=CallStatus, summary="Check call cooldown")
async def get_call_status(
    user_id: str,
    cache: Cache,
    service: ConversationService,
) -> CallStatus:
    user_id = validate_identifier(user_id, "user_id")
    retry_after = await service.call_retry_after(user_id)
    return CallStatus(
        user_id=user_id,
        allowed=retry_after == 0,
        retry_after=retry_after,
        last_attempt=await cache.get_call_attempt(user_id),
    )


@router.post(
    "/users/{user_id}/call",
    response_model=CallStatus,
    summary="Start a phone call",
    responses={429: {"description": "Cooldown still running"}},
)
async def register_call(user_id: str, service: ConversationService) -> CallStatus:
    """Register a call attempt; at most one per cooldown window."""
    user_id = validate_identifier(user_id, "user_id")
    timestamp = await service.register_call(user_id)
    return CallStatus(user_id=user_id, allowed=True, retry_after=0, last_attempt=timestamp)
