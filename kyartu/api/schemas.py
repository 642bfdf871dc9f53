"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from kyartu.services.cache.models import REACTION_USERS_KEY


# ============================================================
# Key-Value Route Schemas
# ============================================================

class KeyValueWrite(BaseModel):
    """Body of POST/PUT on the key-value route."""

    key: str | None = None
    value: Any = None
    ttl: int | None = Field(default=None, ge=1)


class KeyValueDelete(BaseModel):
    """Body of DELETE on the key-value route."""

    key: str | None = None


# ============================================================
# Session & Chat Schemas
# ============================================================

class SessionCreate(BaseModel):
    """Schema for starting a session."""

    user_id: str | None = Field(default=None, max_length=128)
    last_page: str = Field(default="chat", max_length=64)


class SessionResponse(BaseModel):
    session_id: str
    user_id: str
    state: dict[str, Any]


class ExchangeRequest(BaseModel):
    """Schema for recording one user message and Kyartu's reply."""

    user_id: str = Field(..., min_length=1, max_length=128)
    user_message: str = Field(..., min_length=1, max_length=10000)
    assistant_message: str = Field(..., max_length=20000)


class SessionModeUpdate(BaseModel):
    mode: str
    last_page: str | None = None


# ============================================================
# User State Schemas
# ============================================================

class RespectResponse(BaseModel):
    """Respect meter on both the cached and the display scale."""

    user_id: str
    score: float
    display: int
    last_updated: int


class RespectDelta(BaseModel):
    delta: float
    reason: str = Field(default="", max_length=255)


class MoodResponse(BaseModel):
    user_id: str
    mood: str
    history: list[dict[str, Any]]


class JokeCreate(BaseModel):
    joke: str = Field(..., min_length=1, max_length=2000)


class ReactionCreate(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=32)
    user_id: str = Field(..., min_length=1, max_length=128)

    @field_validator("emoji")
    @classmethod
    def _not_reserved(cls, value: str) -> str:
        if value == REACTION_USERS_KEY:
            raise ValueError("reserved key cannot be used as an emoji")
        return value


class ReactionResponse(BaseModel):
    message_id: str
    counts: dict[str, int]


class ModerationFlagUpdate(BaseModel):
    active: bool = True
    reason: str = Field(default="", max_length=255)


class CallStatus(BaseModel):
    """Phone call cooldown status."""

    user_id: str
    allowed: bool
    retry_after: int
    last_attempt: int | None = None


# ============================================================
# Common Response Schemas
# ============================================================

class SuccessResponse(BaseModel):
    """Schema for generic success response."""

    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    error: dict[str, Any] = Field(
        ...,
        json_schema_extra={"example": {"message": "Error description", "details": {}}},
    )


# ============================================================
# Health Check Schemas
# ============================================================

class ServiceHealth(BaseModel):
    """Schema for individual service health."""

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded)$")
    latency_ms: float | None = None
    details: dict[str, Any] | None = None


class HealthResponse(BaseModel):
    """Schema for health check response."""

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded)$")
    timestamp: datetime
    version: str
    services: dict[str, ServiceHealth]
    connection: dict[str, Any] | None = None
