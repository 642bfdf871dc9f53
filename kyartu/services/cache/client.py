"""HTTP client for the key-value backend route.

Speaks the small contract of ``/api/redis``:

- ``GET ?key=`` returns ``{"value": str | null}``
- ``POST`` / ``PUT`` with ``{"key", "value", "ttl"?}`` returns ``{"success": bool}``
- ``DELETE`` with ``{"key"}`` returns ``{"deleted": bool}``

Values travel as JSON strings. Every failure is logged and returned as a
failed ``StoreResult``; nothing is raised to callers.

Uses a persistent httpx.AsyncClient for connection reuse.
"""

import asyncio
from typing import Any

import httpx
import orjson

from kyartu.core.config import get_settings
from kyartu.core.logging import get_logger
from kyartu.services.cache.result import StoreResult

logger = get_logger(__name__)

HEALTH_KEY = "__health__"


class KeyValueStoreClient:
    """Async client for the key-value HTTP route."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        connect_timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = base_url or settings.kv_store_url
        self._timeout = timeout or settings.kv_request_timeout
        self._connect_timeout = connect_timeout or settings.kv_connect_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create persistent HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=self._connect_timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON body.

        Raises httpx.HTTPError or ValueError; callers convert these.
        """
        client = await self._get_client()
        response = await client.request(
            method,
            self._base_url,
            params=params,
            content=orjson.dumps(body) if body is not None else None,
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("Unexpected response shape")
        return data

    # ========== Store operations ==========

    async def get(self, key: str) -> StoreResult[Any]:
        """Fetch and deserialize the value at ``key``."""
        try:
            data = await self._request("GET", params={"key": key})
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("Store get failed", key=key, error=str(e))
            return StoreResult.failure(str(e))

        raw = data.get("value")
        if raw is None:
            return StoreResult.success(None)
        if not isinstance(raw, str):
            # Backend already decoded the document
            return StoreResult.success(raw)

        try:
            return StoreResult.success(orjson.loads(raw))
        except orjson.JSONDecodeError:
            logger.warning("Store value is not valid JSON", key=key)
            return StoreResult(ok=True, value=None, error="malformed value")

    async def set(self, key: str, value: Any, ttl: int | None = None) -> StoreResult[bool]:
        """Serialize and store ``value`` with an optional TTL in seconds."""
        return await self._write("POST", key, value, ttl)

    async def update(self, key: str, value: Any, ttl: int | None = None) -> StoreResult[bool]:
        """Overwrite ``value`` at ``key`` (PUT)."""
        return await self._write("PUT", key, value, ttl)

    async def _write(
        self,
        method: str,
        key: str,
        value: Any,
        ttl: int | None,
    ) -> StoreResult[bool]:
        try:
            body: dict[str, Any] = {"key": key, "value": orjson.dumps(value).decode()}
        except TypeError as e:
            logger.warning("Store value not serializable", key=key, error=str(e))
            return StoreResult.failure(str(e))
        if ttl:
            body["ttl"] = ttl

        try:
            data = await self._request(method, body=body)
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("Store write failed", key=key, method=method, error=str(e))
            return StoreResult.failure(str(e))

        if not data.get("success"):
            logger.debug("Store rejected write", key=key, method=method)
            return StoreResult.failure(str(data.get("error") or "write rejected"))
        return StoreResult.success(True)

    async def delete(self, key: str) -> StoreResult[bool]:
        """Delete ``key``; the value reports whether it existed."""
        try:
            data = await self._request("DELETE", body={"key": key})
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("Store delete failed", key=key, error=str(e))
            return StoreResult.failure(str(e))
        return StoreResult.success(bool(data.get("deleted")))

    # ========== Sentinel helpers ==========

    async def get_value(self, key: str) -> Any:
        """Value at ``key`` or None on miss or failure."""
        return (await self.get(key)).value

    async def set_value(self, key: str, value: Any, ttl: int | None = None) -> bool:
        result = await self.set(key, value, ttl)
        return result.ok and bool(result.value)

    async def delete_value(self, key: str) -> bool:
        result = await self.delete(key)
        return result.ok and bool(result.value)

    # ========== Health check ==========

    async def check_health(self, timeout: float = 5.0) -> bool:
        """Check backend reachability with timeout."""
        try:
            result = await asyncio.wait_for(self.get(HEALTH_KEY), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error("Key-value store health check timed out", timeout=timeout)
            return False
        return result.ok
