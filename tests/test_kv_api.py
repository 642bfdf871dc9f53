"""Key-value route tests (/api/redis) against a mocked Upstash client."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from kyartu.api.routes.kv import get_redis_client
from kyartu.main import app
from kyartu.services.cache import KeyValueStoreClient

pytestmark = pytest.mark.asyncio


@pytest.fixture
def redis() -> MagicMock:
    """Upstash client double backed by a dict."""
    data: dict[str, str] = {}
    mock = MagicMock()
    mock.data = data
    mock.ping = AsyncMock(return_value="PONG")

    async def _get(key: str) -> str | None:
        return data.get(key)

    async def _set(key: str, value: str, ex: int | None = None) -> bool:
        data[key] = value
        return True

    async def _delete(*keys: str) -> int:
        return sum(1 for key in keys if data.pop(key, None) is not None)

    mock.get = AsyncMock(side_effect=_get)
    mock.set = AsyncMock(side_effect=_set)
    mock.delete = AsyncMock(side_effect=_delete)
    return mock


@pytest_asyncio.fixture
async def kv_api(redis: MagicMock) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_redis_client] = lambda: redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# =============================================================================
# Operations
# =============================================================================


async def test_post_then_get(kv_api: AsyncClient, redis: MagicMock):
    resp = await kv_api.post("/api/redis", json={"key": "k", "value": '{"a":1}', "ttl": 60})
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    redis.set.assert_awaited_once_with("k", '{"a":1}', ex=60)

    resp = await kv_api.get("/api/redis", params={"key": "k"})
    assert resp.json() == {"success": True, "key": "k", "value": '{"a":1}'}


async def test_post_without_ttl(kv_api: AsyncClient, redis: MagicMock):
    await kv_api.post("/api/redis", json={"key": "k", "value": "v"})
    redis.set.assert_awaited_once_with("k", "v")


async def test_non_string_value_is_json_encoded(kv_api: AsyncClient, redis: MagicMock):
    await kv_api.put("/api/redis", json={"key": "k", "value": {"a": [1, 2]}})
    assert redis.data["k"] == '{"a":[1,2]}'


async def test_put_message(kv_api: AsyncClient):
    resp = await kv_api.put("/api/redis", json={"key": "k", "value": "v"})
    assert resp.json()["message"] == "Value updated successfully"


async def test_get_missing_key_is_null(kv_api: AsyncClient):
    resp = await kv_api.get("/api/redis", params={"key": "nope"})
    assert resp.status_code == 200
    assert resp.json()["value"] is None


async def test_delete(kv_api: AsyncClient):
    await kv_api.post("/api/redis", json={"key": "k", "value": "v"})

    resp = await kv_api.request("DELETE", "/api/redis", json={"key": "k"})
    assert resp.json()["deleted"] is True

    resp = await kv_api.request("DELETE", "/api/redis", json={"key": "k"})
    assert resp.json()["deleted"] is False
    assert resp.json()["message"] == "Key not found"


# =============================================================================
# Errors
# =============================================================================


@pytest.mark.parametrize("method,kwargs", [
    ("GET", {}),
    ("POST", {"json": {"value": "v"}}),
    ("POST", {"json": {"key": "k"}}),
    ("PUT", {"json": {}}),
    ("DELETE", {"json": {}}),
])
async def test_missing_fields_are_400(kv_api: AsyncClient, method: str, kwargs: dict):
    resp = await kv_api.request(method, "/api/redis", **kwargs)
    assert resp.status_code == 400
    assert "error" in resp.json()


async def test_unconfigured_is_500():
    app.dependency_overrides[get_redis_client] = lambda: None
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            resp = await ac.get("/api/redis", params={"key": "k"})
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json()["error"] == "Redis not configured"


async def test_ping_failure_is_503(kv_api: AsyncClient, redis: MagicMock):
    redis.ping.side_effect = ConnectionError("refused")
    resp = await kv_api.get("/api/redis", params={"key": "k"})
    assert resp.status_code == 503
    assert resp.json()["error"] == "Redis connection failed"


async def test_operation_failure_is_500(kv_api: AsyncClient, redis: MagicMock):
    redis.get.side_effect = RuntimeError("boom")
    resp = await kv_api.get("/api/redis", params={"key": "k"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Redis operation failed", "message": "boom"}


# =============================================================================
# Client contract
# =============================================================================


async def test_cache_client_speaks_the_route(kv_api: AsyncClient, redis: MagicMock):
    client = KeyValueStoreClient(
        "http://test/api/redis",
        transport=ASGITransport(app=app),
    )
    try:
        assert await client.set_value("respect:user:u1", {"respectScore": 3.4}, ttl=604800)
        assert await client.get_value("respect:user:u1") == {"respectScore": 3.4}
        assert await client.delete_value("respect:user:u1") is True
    finally:
        await client.close()

    redis.set.assert_awaited_once_with("respect:user:u1", '{"respectScore":3.4}', ex=604800)
