"""Cached conversational-state documents.

Documents are stored with camelCase keys (``lastUpdated``, ``respectScore``)
so the browser client can read the same JSON it writes.
"""

import math
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from kyartu.services.cache.constants import (
    MAX_JOKES,
    MAX_MOOD_HISTORY,
    MAX_RESPECT_HISTORY,
    RESPECT_DEFAULT,
    RESPECT_DISPLAY_FACTOR,
    RESPECT_MAX,
    RESPECT_MIN,
)


def now_ms() -> int:
    """Current epoch time in milliseconds."""
    return int(time.time() * 1000)


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def iso_to_ms(value: str) -> int | None:
    """Parse an ISO timestamp (``Z`` suffix allowed) into epoch ms."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def clamp_respect(score: Any, fallback: float = RESPECT_DEFAULT) -> float:
    """Clamp a respect score into [0,5]; non-numeric input becomes ``fallback``."""
    if isinstance(score, bool):
        score = fallback
    try:
        value = float(score)
    except OverflowError:
        value = RESPECT_MAX if score > 0 else RESPECT_MIN
    except (TypeError, ValueError):
        value = fallback
    if math.isnan(value):
        value = fallback
    return round(min(RESPECT_MAX, max(RESPECT_MIN, value)), 4)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Mood(str, Enum):
    HAPPY = "happy"
    NEUTRAL = "neutral"
    ANNOYED = "annoyed"
    ANGRY = "angry"


class ConversationMode(str, Enum):
    DEFAULT = "default"
    FRIENDLY = "friendly"
    SAVAGE = "savage"
    SUPPORTIVE = "supportive"
    EDUCATIONAL = "educational"


class CacheDocument(BaseModel):
    """Base for documents stored under camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        """JSON-ready dict using the stored key names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================
# Chat history
# ============================================================

class Reaction(CacheDocument):
    emoji: str
    user_id: str | None = None


class ChatMessage(CacheDocument):
    """A single chat message."""

    id: str
    role: Role
    content: str
    timestamp: str = Field(default_factory=now_iso)
    mood: str | None = None
    reactions: list[Reaction] | None = None


class ChatHistorySnapshot(CacheDocument):
    """Whole chat history of a session.

    ``timestamps[i]`` is the epoch-ms time of ``messages[i]``.
    """

    messages: list[ChatMessage] = Field(default_factory=list)
    timestamps: list[int] = Field(default_factory=list)
    last_updated: int = 0

    @model_validator(mode="after")
    def _align_timestamps(self) -> "ChatHistorySnapshot":
        if len(self.timestamps) != len(self.messages):
            fallback = self.last_updated or now_ms()
            self.timestamps = [
                iso_to_ms(message.timestamp) or fallback for message in self.messages
            ]
        return self


# ============================================================
# Session state
# ============================================================

class SessionState(CacheDocument):
    """Per-session mode and navigation state; extra keys are kept."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    current_mode: ConversationMode = ConversationMode.DEFAULT
    last_page: str = "chat"
    joined_at: int = Field(default_factory=now_ms)


# ============================================================
# Respect & mood meters
# ============================================================

class RespectMeter(CacheDocument):
    respect_score: float = RESPECT_DEFAULT
    last_updated: int = Field(default_factory=now_ms)
    history: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("respect_score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_respect(value)

    @field_validator("history")
    @classmethod
    def _bound_history(cls, value: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return value[-MAX_RESPECT_HISTORY:]

    @property
    def display_score(self) -> int:
        """Score on the 0-100 scale shown in the UI."""
        return round(self.respect_score * RESPECT_DISPLAY_FACTOR)


class MoodMeter(CacheDocument):
    last_mood: Mood = Mood.NEUTRAL
    mood_history: list[dict[str, Any]] = Field(default_factory=list)
    last_updated: int = Field(default_factory=now_ms)

    @field_validator("mood_history")
    @classmethod
    def _bound_history(cls, value: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return value[-MAX_MOOD_HISTORY:]


# ============================================================
# Search cache
# ============================================================

class SearchCacheEntry(CacheDocument):
    query: str
    results: Any
    source: str = "tavily"
    cached_at: int = Field(default_factory=now_ms)


# ============================================================
# Jokes
# ============================================================

class JokeEntry(CacheDocument):
    joke: str
    added_at: int = Field(default_factory=now_ms)
    used_count: int = 0


class JokeBank(BaseModel):
    """Most-recent-first list of a user's jokes, never longer than MAX_JOKES."""

    jokes: list[JokeEntry] = Field(default_factory=list)

    @field_validator("jokes")
    @classmethod
    def _truncate(cls, value: list[JokeEntry]) -> list[JokeEntry]:
        return value[:MAX_JOKES]

    def to_document(self) -> list[dict[str, Any]]:
        return [joke.to_document() for joke in self.jokes]


# ============================================================
# Reactions
# ============================================================

REACTION_USERS_KEY = "_users"


class ReactionTally(BaseModel):
    """Emoji counts for one message with the users behind each count.

    Stored flat: ``{"🔥": 2, "_users": {"🔥": ["u1", "u2"]}}``.
    """

    counts: dict[str, int] = Field(default_factory=dict)
    users: dict[str, list[str]] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "ReactionTally":
        users = document.get(REACTION_USERS_KEY) or {}
        counts = {
            emoji: int(count)
            for emoji, count in document.items()
            if emoji != REACTION_USERS_KEY
        }
        return cls(counts=counts, users=users)

    def to_document(self) -> dict[str, Any]:
        return {**self.counts, REACTION_USERS_KEY: self.users}

    def add(self, emoji: str, user_id: str) -> bool:
        """Count ``user_id`` once for ``emoji``; returns False if already counted.

        The voter-map key is not a valid emoji.
        """
        if emoji == REACTION_USERS_KEY:
            return False
        voters = self.users.setdefault(emoji, [])
        if user_id in voters:
            return False
        voters.append(user_id)
        self.counts[emoji] = self.counts.get(emoji, 0) + 1
        return True


# ============================================================
# Preferences
# ============================================================

class UserPreferences(CacheDocument):
    """User settings; unknown keys are preserved as overrides."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    flirt_mode: bool = False
    censor_mode: bool = True
    roast_level: str = "medium"
    theme: str = "auto"
    notifications: bool = True
    last_updated: int | None = None


# ============================================================
# Moderation, presence, calls
# ============================================================

class ModerationFlag(CacheDocument):
    active: bool = True
    reason: str = ""
    set_at: int = Field(default_factory=now_ms)


class LastSeenRecord(CacheDocument):
    last_seen: str = Field(default_factory=now_iso)
    last_activity: int = Field(default_factory=now_ms)
