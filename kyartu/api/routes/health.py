"""Health check and monitoring endpoints."""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from kyartu.api.deps import Cache
from kyartu.api.schemas import HealthResponse, ServiceHealth
from kyartu.core.config import get_settings

router = APIRouter(tags=["Health"])


@router.get(
    "/",
    summary="Root endpoint",
    response_description="API information and basic health status",
)
async def root() -> dict[str, Any]:
    """
    Root endpoint with API information.

    Returns application name, version, environment and server timestamp.
    """
    settings = get_settings()

    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "healthy",
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "documentation": "/docs",
    }


async def _timed_health_check(
    name: str,
    check_fn: Any,
    timeout: float = 5.0,
) -> tuple[str, bool, float, str | None]:
    """Execute a health check and measure its latency with timeout.

    Returns:
        Tuple of (name, healthy, latency_ms, error_message)
    """
    start = time.perf_counter()
    try:
        result = await asyncio.wait_for(check_fn(), timeout=timeout)
        latency = (time.perf_counter() - start) * 1000
        return (name, result, latency, None)
    except asyncio.TimeoutError:
        latency = (time.perf_counter() - start) * 1000
        return (name, False, latency, f"Health check timed out after {timeout}s")
    except Exception as e:  # noqa: BLE001
        latency = (time.perf_counter() - start) * 1000
        return (name, False, latency, str(e))


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Comprehensive health check",
    response_description="Status of the key-value store and the local fallback store",
)
async def health_check(cache: Cache) -> HealthResponse:
    """
    Health of both state stores.

    - **kv_store**: the key-value HTTP route
    - **local_store**: the SQLite fallback mirror

    Either store failing reports ``degraded``: the cache keeps serving
    defaults or local copies, so the service never reports ``unhealthy``.
    """
    settings = get_settings()
    services: dict[str, ServiceHealth] = {}
    overall_status = "healthy"

    local_store = cache.coordinator.local_store
    tasks = [_timed_health_check("kv_store", cache.check_health)]
    if local_store is not None:
        tasks.append(_timed_health_check("local_store", local_store.check_health))

    for name, healthy, latency, error in await asyncio.gather(*tasks):
        details: dict[str, Any] = (
            {"url": cache.coordinator.client.base_url}
            if name == "kv_store"
            else {"type": "sqlite"}
        )
        if error:
            details["error"] = error
        services[name] = ServiceHealth(
            status="healthy" if healthy else "degraded",
            latency_ms=round(latency, 2),
            details=details,
        )
        if not healthy:
            overall_status = "degraded"

    if "local_store" not in services:
        services["local_store"] = ServiceHealth(
            status="degraded",
            details={"type": "sqlite", "provider": "disabled"},
        )
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        services=services,
        connection=cache.coordinator.connection_info(),
    )


@router.get(
    "/health/live",
    summary="Liveness probe",
    response_description="Simple liveness check for orchestrators",
)
async def liveness() -> dict[str, str]:
    """
    Liveness probe endpoint.

    Returns 200 if the service process is running without touching any store.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get(
    "/health/ready",
    summary="Readiness probe",
    response_description="Readiness check for load balancers",
)
async def readiness(cache: Cache) -> JSONResponse:
    """
    Readiness probe endpoint.

    Ready when at least one store answers; returns 503 otherwise.
    """
    _, kv_healthy, _, _ = await _timed_health_check("kv_store", cache.check_health)
    local_healthy = False
    local_store = cache.coordinator.local_store
    if local_store is not None:
        _, local_healthy, _, _ = await _timed_health_check("local_store", local_store.check_health)

    if not (kv_healthy or local_healthy):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "stores_unavailable",
                "message": "Neither the key-value store nor the local store is reachable",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "ready",
            "fallback_mode": not kv_healthy,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
