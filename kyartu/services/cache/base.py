"""Base cache operations shared by the domain accessors."""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from kyartu.core.config import get_settings
from kyartu.core.logging import get_logger
from kyartu.services.cache.client import KeyValueStoreClient
from kyartu.services.cache.constants import Namespace, make_key
from kyartu.services.cache.fallback import FallbackCoordinator, LocalFallbackStore

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class BaseCacheOperations:
    """Namespaced JSON reads and writes with graceful degradation."""

    def __init__(
        self,
        client: KeyValueStoreClient | None = None,
        local_store: LocalFallbackStore | None = None,
        coordinator: FallbackCoordinator | None = None,
    ) -> None:
        """Initialize the cache service.

        Pass ``coordinator`` (or ``client``/``local_store``) to substitute
        fakes; by default the client and local store come from settings.
        """
        if coordinator is None:
            settings = get_settings()
            if local_store is None and settings.fallback_enabled:
                local_store = LocalFallbackStore()
            coordinator = FallbackCoordinator(client or KeyValueStoreClient(), local_store)
        self._coordinator = coordinator
        logger.info(
            "Cache service initialized",
            kv_store_url=coordinator.client.base_url,
            local_fallback=coordinator.local_store is not None,
        )

    @property
    def coordinator(self) -> FallbackCoordinator:
        return self._coordinator

    @property
    def is_available(self) -> bool:
        """False after a failed remote call, until the next successful one."""
        return self._coordinator.remote_healthy

    def _make_key(self, namespace: Namespace, identifier: str) -> str:
        """Create a cache key for an entity."""
        return make_key(namespace, identifier)

    # ========== Raw document operations ==========

    async def _load(self, namespace: Namespace, identifier: str) -> Any:
        """Load the stored document, or None."""
        return await self._coordinator.read(namespace, self._make_key(namespace, identifier))

    async def _save(self, namespace: Namespace, identifier: str, document: Any) -> bool:
        """Persist a document with the namespace TTL."""
        return await self._coordinator.write(
            namespace, self._make_key(namespace, identifier), document
        )

    async def _remove(self, namespace: Namespace, identifier: str) -> bool:
        return await self._coordinator.delete(namespace, self._make_key(namespace, identifier))

    # ========== Model operations ==========

    async def _load_model(
        self,
        namespace: Namespace,
        identifier: str,
        model: type[M],
    ) -> M | None:
        """Load and validate a document; malformed documents read as missing."""
        document = await self._load(namespace, identifier)
        if not isinstance(document, dict):
            return None
        try:
            return model.model_validate(document)
        except ValidationError as e:
            logger.debug(
                "Cached document failed validation",
                namespace=namespace.value,
                identifier=identifier,
                error=str(e),
            )
            return None

    # ========== Health check ==========

    async def check_health(self, timeout: float = 5.0) -> bool:
        """Check remote store connectivity with timeout."""
        healthy = await self._coordinator.client.check_health(timeout)
        self._coordinator.remote_healthy = healthy
        return healthy

    async def close(self) -> None:
        await self._coordinator.client.close()
