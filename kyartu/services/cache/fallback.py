"""Local fallback store and the coordinator that routes around remote failures.

Every write goes to the remote store with its namespace TTL and is mirrored
into a local SQLite table with the same expiry. Reads hit the remote store
first; only a failed remote read (not a clean miss) consults the local copy.
The remote store stays authoritative whenever it answers.
"""

from typing import Any

import orjson
from sqlalchemy import delete, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kyartu.core.logging import get_logger
from kyartu.db.models import LocalCacheEntry
from kyartu.db.session import get_session_factory
from kyartu.services.cache.client import KeyValueStoreClient
from kyartu.services.cache.constants import Namespace, ttl_for
from kyartu.services.cache.models import now_ms
from kyartu.services.cache.result import StoreResult

logger = get_logger(__name__)


class LocalFallbackStore:
    """Key -> JSON document store on the local fallback database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory

    def _sessions(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    async def get(self, key: str) -> StoreResult[Any]:
        """Read an unexpired local copy of ``key``."""
        try:
            async with self._sessions()() as session:
                entry = await session.get(LocalCacheEntry, key)
                if entry is None:
                    return StoreResult.success(None)
                if entry.expires_at is not None and entry.expires_at <= now_ms():
                    return StoreResult.success(None)
                return StoreResult.success(orjson.loads(entry.value))
        except (SQLAlchemyError, orjson.JSONDecodeError) as e:
            logger.warning("Local fallback read failed", key=key, error=str(e))
            return StoreResult.failure(str(e))

    async def set(
        self,
        key: str,
        namespace: Namespace,
        value: Any,
        ttl: int | None = None,
    ) -> bool:
        """Upsert the local copy of ``key``."""
        try:
            payload = orjson.dumps(value).decode()
        except TypeError as e:
            logger.warning("Local fallback value not serializable", key=key, error=str(e))
            return False

        expires_at = now_ms() + ttl * 1000 if ttl else None
        try:
            async with self._sessions()() as session:
                await session.merge(
                    LocalCacheEntry(
                        key=key,
                        namespace=namespace.value,
                        value=payload,
                        expires_at=expires_at,
                    )
                )
                await session.commit()
            return True
        except SQLAlchemyError as e:
            logger.warning("Local fallback write failed", key=key, error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        try:
            async with self._sessions()() as session:
                await session.execute(delete(LocalCacheEntry).where(LocalCacheEntry.key == key))
                await session.commit()
            return True
        except SQLAlchemyError as e:
            logger.warning("Local fallback delete failed", key=key, error=str(e))
            return False

    async def purge_expired(self) -> int:
        """Drop expired local copies; returns how many were removed."""
        try:
            async with self._sessions()() as session:
                expired = await session.execute(
                    select(LocalCacheEntry.key).where(LocalCacheEntry.expires_at <= now_ms())
                )
                keys = list(expired.scalars())
                if keys:
                    await session.execute(
                        delete(LocalCacheEntry).where(LocalCacheEntry.key.in_(keys))
                    )
                    await session.commit()
            return len(keys)
        except SQLAlchemyError as e:
            logger.warning("Local fallback purge failed", error=str(e))
            return 0

    async def check_health(self) -> bool:
        try:
            async with self._sessions()() as session:
                await session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error("Local fallback health check failed", error=str(e))
            return False


class FallbackCoordinator:
    """Routes reads and writes between the remote store and the local mirror."""

    def __init__(
        self,
        client: KeyValueStoreClient,
        local_store: LocalFallbackStore | None = None,
    ) -> None:
        self.client = client
        self.local_store = local_store
        self.remote_healthy = True
        self.last_sync_time: int | None = None

    @property
    def fallback_mode(self) -> bool:
        """True when the most recent remote call failed."""
        return not self.remote_healthy

    def connection_info(self) -> dict[str, Any]:
        return {
            "remote_healthy": self.remote_healthy,
            "fallback_mode": self.fallback_mode,
            "local_store": self.local_store is not None,
            "last_sync_time": self.last_sync_time,
        }

    async def read(self, namespace: Namespace, key: str) -> Any:
        """Remote value, else local copy on remote failure, else None."""
        result = await self.client.get(key)
        self.remote_healthy = result.ok
        if result.ok:
            return result.value

        if self.local_store is None:
            return None

        logger.info(
            "Remote read failed, using local fallback",
            namespace=namespace.value,
            key=key,
        )
        local = await self.local_store.get(key)
        return local.value if local.ok else None

    async def write(self, namespace: Namespace, key: str, value: Any) -> bool:
        """Write with the namespace TTL and mirror locally.

        Returns False when the remote write failed; the value may still
        live in the local mirror.
        """
        ttl = ttl_for(namespace)
        result = await self.client.set(key, value, ttl)
        self.remote_healthy = result.ok
        if result.ok:
            self.last_sync_time = now_ms()
        else:
            logger.info(
                "Remote write failed, keeping local copy only",
                namespace=namespace.value,
                key=key,
                error=result.error,
            )

        if self.local_store is not None:
            await self.local_store.set(key, namespace, value, ttl)

        return result.ok

    async def delete(self, namespace: Namespace, key: str) -> bool:
        result = await self.client.delete(key)
        self.remote_healthy = result.ok
        if self.local_store is not None:
            await self.local_store.delete(key)
        return result.ok
