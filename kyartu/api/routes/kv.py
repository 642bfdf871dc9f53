"""Key-value backend route over Upstash Redis.

The cache client talks to this route; it is the only code that holds
Redis credentials. Error bodies keep the flat ``{"error", "message"}``
shape the client contract expects.
"""

from functools import lru_cache
from typing import Annotated, Any

import orjson
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from upstash_redis.asyncio import Redis

from kyartu.api.schemas import KeyValueDelete, KeyValueWrite
from kyartu.core.config import get_settings
from kyartu.core.exceptions import KeyValueStoreError
from kyartu.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/redis", tags=["Key-Value Store"])


@lru_cache
def get_redis_client() -> Redis | None:
    """Get the shared Upstash client, or None when credentials are missing."""
    settings = get_settings()
    if not settings.redis_available:
        logger.warning("No Redis configuration found, key-value route disabled")
        return None
    return Redis(
        url=settings.upstash_redis_rest_url,
        token=settings.upstash_redis_rest_token,
    )


async def close_redis_client() -> None:
    client = get_redis_client()
    if client is not None:
        await client.close()
    get_redis_client.cache_clear()


RedisClient = Annotated[Redis | None, Depends(get_redis_client)]


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


async def _connected(redis: Redis | None) -> Redis:
    """Return a reachable client.

    Raises:
        KeyValueStoreError: 500 when unconfigured, 503 when the ping fails
    """
    if redis is None:
        raise KeyValueStoreError(
            "Redis not configured",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    try:
        await redis.ping()
    except Exception as e:  # noqa: BLE001
        logger.error("Redis connection failed", error=str(e))
        raise KeyValueStoreError(
            "Redis connection failed",
            status.HTTP_503_SERVICE_UNAVAILABLE,
        ) from e
    return redis


def _encode(value: Any) -> str:
    """Strings pass through; other values are stored as JSON."""
    if isinstance(value, str):
        return value
    return orjson.dumps(value).decode()


async def _run(redis: Redis | None, operation: str, key: str, action: Any) -> Any:
    try:
        client = await _connected(redis)
    except KeyValueStoreError as e:
        return _error(e.status_code, e.message, _MESSAGES.get(e.message, e.message))

    try:
        return await action(client)
    except Exception as e:  # noqa: BLE001
        logger.error("Redis operation failed", operation=operation, key=key, error=str(e))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Redis operation failed", str(e))


_MESSAGES = {
    "Redis not configured": (
        "Set UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN to enable the key-value store."
    ),
    "Redis connection failed": "Unable to connect to Redis server. Please check your configuration.",
}


@router.get("", summary="Read a key")
async def read_key(
    redis: RedisClient,
    key: Annotated[str | None, Query()] = None,
) -> Any:
    if not key:
        return _error(status.HTTP_400_BAD_REQUEST, "Key parameter is required", "Missing key")

    async def action(client: Redis) -> dict[str, Any]:
        value = await client.get(key)
        return {"success": True, "key": key, "value": value}

    return await _run(redis, "get", key, action)


async def _write(redis: Redis | None, body: KeyValueWrite, message: str) -> Any:
    if not body.key or body.value is None:
        return _error(
            status.HTTP_400_BAD_REQUEST, "Key and value are required", "Missing key or value"
        )
    key = body.key

    async def action(client: Redis) -> dict[str, Any]:
        if body.ttl:
            await client.set(key, _encode(body.value), ex=body.ttl)
        else:
            await client.set(key, _encode(body.value))
        return {"success": True, "key": key, "message": message}

    return await _run(redis, "set", key, action)


@router.post("", summary="Store a key")
async def store_key(body: KeyValueWrite, redis: RedisClient) -> Any:
    return await _write(redis, body, "Value stored successfully")


@router.put("", summary="Update a key")
async def update_key(body: KeyValueWrite, redis: RedisClient) -> Any:
    return await _write(redis, body, "Value updated successfully")


@router.delete("", summary="Delete a key")
async def delete_key(body: KeyValueDelete, redis: RedisClient) -> Any:
    if not body.key:
        return _error(status.HTTP_400_BAD_REQUEST, "Key is required", "Missing key")
    key = body.key

    async def action(client: Redis) -> dict[str, Any]:
        removed = await client.delete(key)
        return {
            "success": True,
            "key": key,
            "deleted": removed > 0,
            "message": "Key deleted successfully" if removed > 0 else "Key not found",
        }

    return await _run(redis, "delete", key, action)
