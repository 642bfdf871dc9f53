"""Test configuration and fixtures.

Provides isolated test fixtures for:
- A dict-backed fake of the key-value HTTP route (records TTLs)
- An in-memory SQLite local fallback store
- A CacheService and ConversationStateService wired to both
- HTTP client with dependency overrides
"""

from collections.abc import AsyncGenerator
from typing import Any

import httpx
import orjson
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from kyartu.core.config import Settings
from kyartu.db.models import Base
from kyartu.services.cache import (
    CacheService,
    FallbackCoordinator,
    KeyValueStoreClient,
    LocalFallbackStore,
    get_cache_service,
)
from kyartu.services.conversation import (
    ConversationStateService,
    get_conversation_state_service,
)

TEST_KV_URL = "http://kv.test/api/redis"
TEST_DATABASE_URL = "sqlite+aiosqlite://"


# =============================================================================
# Fake key-value route
# =============================================================================

class FakeKeyValueStore:
    """In-memory stand-in for ``/api/redis``.

    Stores raw string values and the TTL of the last write per key. Set
    ``down`` to make every request fail with a connection error.
    """

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.requests: list[tuple[str, str | None]] = []
        self.down = False

    def document(self, key: str) -> Any:
        """Decoded JSON document stored at ``key``."""
        return orjson.loads(self.values[key])

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.down:
            raise httpx.ConnectError("kv store unreachable", request=request)

        if request.method == "GET":
            key = request.url.params.get("key")
            self.requests.append(("GET", key))
            if not key:
                return httpx.Response(400, json={"error": "Key parameter is required"})
            return httpx.Response(
                200, json={"success": True, "key": key, "value": self.values.get(key)}
            )

        body = orjson.loads(request.content) if request.content else {}
        key = body.get("key")
        self.requests.append((request.method, key))
        if not key:
            return httpx.Response(400, json={"error": "Key is required"})

        if request.method in ("POST", "PUT"):
            self.values[key] = body["value"]
            self.ttls[key] = body.get("ttl")
            return httpx.Response(200, json={"success": True, "key": key})

        if request.method == "DELETE":
            existed = self.values.pop(key, None) is not None
            self.ttls.pop(key, None)
            return httpx.Response(200, json={"success": True, "key": key, "deleted": existed})

        return httpx.Response(405, json={"error": "Method not allowed"})


# =============================================================================
# Settings & store fixtures
# =============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        kv_store_url=TEST_KV_URL,
        fallback_database_url=TEST_DATABASE_URL,
        upstash_redis_rest_url="",
        upstash_redis_rest_token="",
        debug=True,
    )


@pytest.fixture
def kv_store() -> FakeKeyValueStore:
    return FakeKeyValueStore()


@pytest_asyncio.fixture
async def kv_client(kv_store: FakeKeyValueStore) -> AsyncGenerator[KeyValueStoreClient, None]:
    client = KeyValueStoreClient(
        TEST_KV_URL,
        timeout=1.0,
        connect_timeout=1.0,
        transport=httpx.MockTransport(kv_store.handler),
    )
    yield client
    await client.close()


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """In-memory SQLite shared across sessions through a single connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def local_store(session_factory: async_sessionmaker[AsyncSession]) -> LocalFallbackStore:
    return LocalFallbackStore(session_factory)


@pytest.fixture
def coordinator(
    kv_client: KeyValueStoreClient,
    local_store: LocalFallbackStore,
) -> FallbackCoordinator:
    return FallbackCoordinator(kv_client, local_store)


@pytest.fixture
def cache(coordinator: FallbackCoordinator) -> CacheService:
    return CacheService(coordinator=coordinator)


@pytest.fixture
def conversation_service(cache: CacheService) -> ConversationStateService:
    return ConversationStateService(cache=cache)


# =============================================================================
# HTTP Client Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def client(
    cache: CacheService,
    conversation_service: ConversationStateService,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client wired to the fake stores."""
    from kyartu.main import app

    app.dependency_overrides[get_cache_service] = lambda: cache
    app.dependency_overrides[get_conversation_state_service] = lambda: conversation_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
