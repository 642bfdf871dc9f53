"""User-scoped cache operations: meters, jokes, preferences, moderation, presence."""

import math
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from kyartu.core.logging import get_logger
from kyartu.services.cache.base import BaseCacheOperations
from kyartu.services.cache.constants import Namespace
from kyartu.services.cache.models import (
    JokeBank,
    JokeEntry,
    LastSeenRecord,
    ModerationFlag,
    Mood,
    MoodMeter,
    RespectMeter,
    UserPreferences,
    clamp_respect,
    now_ms,
)

logger = get_logger(__name__)


class UserCacheMixin(BaseCacheOperations):
    """Respect and mood meters, joke bank and user preferences."""

    # ========== Respect meter ==========

    async def store_respect_meter(
        self,
        user_id: str,
        meter: RespectMeter | float,
    ) -> bool:
        """Persist a respect meter; the score is clamped into [0,5]."""
        if not isinstance(meter, RespectMeter):
            meter = RespectMeter(respect_score=meter)
        meter.respect_score = clamp_respect(meter.respect_score)
        meter.last_updated = now_ms()
        return await self._save(Namespace.RESPECT_METER, user_id, meter.to_document())

    async def get_respect_meter(self, user_id: str) -> RespectMeter:
        """Get the respect meter; a first-seen user starts at the neutral score."""
        meter = await self._load_model(Namespace.RESPECT_METER, user_id, RespectMeter)
        return meter or RespectMeter(last_updated=0)

    async def apply_respect_delta(
        self,
        user_id: str,
        delta: float,
        reason: str = "",
    ) -> RespectMeter:
        """Add ``delta`` to the stored score, clamp, and persist.

        A non-numeric delta is logged and treated as zero.
        """
        if isinstance(delta, bool) or not isinstance(delta, (int, float)):
            logger.warning("Ignoring non-numeric respect delta", user_id=user_id, delta=repr(delta))
            delta = 0.0

        try:
            delta = float(delta)
        except OverflowError:
            delta = math.inf if delta > 0 else -math.inf

        meter = await self.get_respect_meter(user_id)
        meter.respect_score = clamp_respect(meter.respect_score + delta, meter.respect_score)
        meter.history = [
            *meter.history,
            {"delta": delta, "score": meter.respect_score, "reason": reason, "at": now_ms()},
        ]
        meter = RespectMeter.model_validate(meter.model_dump())
        await self.store_respect_meter(user_id, meter)
        return meter

    # ========== Mood meter ==========

    async def store_mood_meter(self, user_id: str, meter: MoodMeter | Mood | str) -> bool:
        if not isinstance(meter, MoodMeter):
            try:
                meter = MoodMeter(last_mood=Mood(meter))
            except ValueError:
                logger.warning("Rejected unknown mood", user_id=user_id, mood=meter)
                return False
        meter.last_updated = now_ms()
        return await self._save(Namespace.MOOD_METER, user_id, meter.to_document())

    async def get_mood_meter(self, user_id: str) -> MoodMeter:
        """Get the mood meter, neutral when nothing is cached."""
        meter = await self._load_model(Namespace.MOOD_METER, user_id, MoodMeter)
        return meter or MoodMeter(last_updated=0)

    async def record_mood(
        self,
        user_id: str,
        mood: Mood | str,
        reason: str | None = None,
    ) -> MoodMeter:
        """Set the current mood, appending to the history on a transition."""
        meter = await self.get_mood_meter(user_id)
        try:
            new_mood = Mood(mood)
        except ValueError:
            logger.warning("Ignoring unknown mood", user_id=user_id, mood=mood)
            return meter

        if new_mood != meter.last_mood:
            entry: dict[str, Any] = {"from": meter.last_mood.value, "to": new_mood.value, "at": now_ms()}
            if reason:
                entry["reason"] = reason
            meter.mood_history = [*meter.mood_history, entry]
            meter.last_mood = new_mood
            meter = MoodMeter.model_validate(meter.model_dump())

        await self.store_mood_meter(user_id, meter)
        return meter

    # ========== Joke bank ==========

    async def store_user_jokes(
        self,
        user_id: str,
        jokes: list[JokeEntry | dict[str, Any]],
    ) -> bool:
        """Replace the joke list (most recent first), truncated to MAX_JOKES."""
        try:
            bank = JokeBank(jokes=[
                joke if isinstance(joke, JokeEntry) else JokeEntry.model_validate(joke)
                for joke in jokes
            ])
        except ValidationError as e:
            logger.warning("Rejected malformed joke list", user_id=user_id, error=str(e))
            return False
        return await self._save(Namespace.JOKE_BANK, user_id, bank.to_document())

    async def get_user_jokes(self, user_id: str) -> list[JokeEntry]:
        """Get the user's jokes, most recent first."""
        document = await self._load(Namespace.JOKE_BANK, user_id)
        if not isinstance(document, list):
            return []
        try:
            return JokeBank.model_validate({"jokes": document}).jokes
        except ValidationError:
            logger.debug("Cached joke list failed validation", user_id=user_id)
            return []

    async def add_user_joke(self, user_id: str, joke: str) -> list[JokeEntry]:
        """Prepend a joke and drop the oldest beyond MAX_JOKES."""
        jokes = await self.get_user_jokes(user_id)
        if not joke.strip():
            return jokes
        jokes = JokeBank(jokes=[JokeEntry(joke=joke.strip()), *jokes]).jokes
        await self.store_user_jokes(user_id, jokes)
        return jokes

    async def mark_joke_used(self, user_id: str, joke: str) -> bool:
        """Increment ``usedCount`` of a stored joke; False if it is not stored."""
        jokes = await self.get_user_jokes(user_id)
        for entry in jokes:
            if entry.joke == joke:
                entry.used_count += 1
                return await self.store_user_jokes(user_id, jokes)
        return False

    # ========== Preferences ==========

    async def store_user_preferences(
        self,
        user_id: str,
        updates: UserPreferences | dict[str, Any],
    ) -> bool:
        """Shallow-merge ``updates`` over the stored (or default) preferences."""
        if isinstance(updates, UserPreferences):
            updates = updates.to_document()

        normalized = {
            to_camel(key) if key in UserPreferences.model_fields else key: value
            for key, value in updates.items()
        }
        current = await self.get_user_preferences(user_id)
        try:
            merged = UserPreferences.model_validate({
                **current.to_document(),
                **normalized,
                "lastUpdated": now_ms(),
            })
        except ValidationError as e:
            logger.warning("Rejected malformed preferences", user_id=user_id, error=str(e))
            return False
        return await self._save(Namespace.PREFERENCES, user_id, merged.to_document())

    async def get_user_preferences(self, user_id: str) -> UserPreferences:
        """Get preferences; unspecified fields fall back to defaults."""
        prefs = await self._load_model(Namespace.PREFERENCES, user_id, UserPreferences)
        return prefs or UserPreferences()


class ModerationCacheMixin(BaseCacheOperations):
    """Moderation flags, last-seen heartbeat and phone-call attempts."""

    # ========== Moderation flags ==========

    async def store_moderation_flags(
        self,
        user_id: str,
        flags: dict[str, ModerationFlag | dict[str, Any]],
    ) -> bool:
        """Merge ``flags`` into the user's existing flag map."""
        existing = await self.get_moderation_flags(user_id)
        try:
            for name, flag in flags.items():
                existing[name] = (
                    flag if isinstance(flag, ModerationFlag) else ModerationFlag.model_validate(flag)
                )
        except ValidationError as e:
            logger.warning("Rejected malformed moderation flag", user_id=user_id, error=str(e))
            return False

        document = {name: flag.to_document() for name, flag in existing.items()}
        return await self._save(Namespace.MODERATION, user_id, document)

    async def get_moderation_flags(self, user_id: str) -> dict[str, ModerationFlag]:
        """Get the flag map; malformed entries are skipped."""
        document = await self._load(Namespace.MODERATION, user_id)
        if not isinstance(document, dict):
            return {}

        flags: dict[str, ModerationFlag] = {}
        for name, raw in document.items():
            try:
                flags[name] = ModerationFlag.model_validate(raw)
            except ValidationError:
                logger.debug("Skipping malformed moderation flag", user_id=user_id, flag=name)
        return flags

    async def set_moderation_flag(
        self,
        user_id: str,
        name: str,
        *,
        active: bool = True,
        reason: str = "",
    ) -> bool:
        return await self.store_moderation_flags(
            user_id, {name: ModerationFlag(active=active, reason=reason)}
        )

    async def clear_moderation_flag(self, user_id: str, name: str) -> bool:
        """Deactivate a flag, keeping its record."""
        flags = await self.get_moderation_flags(user_id)
        if name not in flags:
            return False
        flag = flags[name]
        return await self.store_moderation_flags(
            user_id, {name: ModerationFlag(active=False, reason=flag.reason)}
        )

    async def is_flag_active(self, user_id: str, name: str) -> bool:
        flag = (await self.get_moderation_flags(user_id)).get(name)
        return bool(flag and flag.active)

    # ========== Last seen ==========

    async def store_last_seen(
        self,
        user_id: str,
        record: LastSeenRecord | None = None,
    ) -> bool:
        return await self._save(
            Namespace.LAST_SEEN, user_id, (record or LastSeenRecord()).to_document()
        )

    async def get_last_seen(self, user_id: str) -> LastSeenRecord | None:
        return await self._load_model(Namespace.LAST_SEEN, user_id, LastSeenRecord)

    async def touch_last_seen(self, user_id: str) -> LastSeenRecord:
        """Record activity now."""
        record = LastSeenRecord()
        await self.store_last_seen(user_id, record)
        return record

    # ========== Phone call attempts ==========

    async def store_call_attempt(self, user_id: str, timestamp: int | None = None) -> bool:
        """Record a call attempt as a bare epoch-ms timestamp."""
        return await self._save(
            Namespace.CALL_ATTEMPT, user_id, timestamp if timestamp is not None else now_ms()
        )

    async def get_call_attempt(self, user_id: str) -> int | None:
        value = await self._load(Namespace.CALL_ATTEMPT, user_id)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return int(value)
