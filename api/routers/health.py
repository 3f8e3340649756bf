"""
Health check endpoints.

Provides basic and detailed health check functionality.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from api.dependencies import get_generator
from api.schemas.common import (
    HealthStatus,
    HealthCheckResponse,
    DetailedHealthCheckResponse,
    ComponentHealth,
)
from core.config import get_settings, Settings
from core.redis import RedisHealthCheck
from services.generator import ImageGenerator

router = APIRouter(prefix="/health", tags=["health"])

# Track application start time for uptime calculation
_start_time = time.time()


@router.get(
    "",
    response_model=HealthCheckResponse,
    summary="Basic health check",
    description="Quick health check endpoint for load balancers and container orchestration.",
)
async def health_check() -> HealthCheckResponse:
    """
    Basic health check.

    Returns a simple healthy status if the API is running.
    """
    return HealthCheckResponse(
        status=HealthStatus.HEALTHY,
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/detailed",
    response_model=DetailedHealthCheckResponse,
    summary="Detailed health check",
    description="Comprehensive health check with status of all components.",
)
async def detailed_health_check(
    settings: Settings = Depends(get_settings),
    generator: ImageGenerator = Depends(get_generator),
) -> DetailedHealthCheckResponse:
    """
    Detailed health check with component status.

    Checks the health of:
    - Redis connection (only when the quota lives in Redis)
    - The image provider and its credential
    """
    components = {}
    overall_status = HealthStatus.HEALTHY

    # Check Redis
    if settings.is_redis_quota:
        redis_health = await RedisHealthCheck.check()
        components["redis"] = ComponentHealth(
            status=HealthStatus.HEALTHY if redis_health["status"] == "healthy" else HealthStatus.UNHEALTHY,
            latency_ms=redis_health.get("latency_ms"),
            error=redis_health.get("error"),
            details={"backend": "redis"},
        )
        if redis_health["status"] != "healthy":
            overall_status = HealthStatus.UNHEALTHY
    else:
        components["quota_store"] = ComponentHealth(
            status=HealthStatus.HEALTHY,
            details={"backend": "memory"},
        )

    # Check image provider
    provider = generator.provider
    provider_health = await provider.health_check()
    provider_status = HealthStatus(provider_health.get("status", HealthStatus.UNHEALTHY))
    components["image_provider"] = ComponentHealth(
        status=provider_status,
        error=None if provider_status == HealthStatus.HEALTHY else f"{provider.display_name} is {provider_status.value}",
        details={
            "provider": provider.name,
            "placeholder_fallback": settings.placeholder_fallback,
        },
    )
    if provider_status != HealthStatus.HEALTHY and overall_status == HealthStatus.HEALTHY:
        overall_status = HealthStatus.DEGRADED

    # Calculate uptime
    uptime_seconds = time.time() - _start_time

    return DetailedHealthCheckResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        environment=settings.environment,
        uptime_seconds=round(uptime_seconds, 2),
        components=components,
    )


@router.get(
    "/ready",
    response_model=HealthCheckResponse,
    summary="Readiness check",
    description="Check if the application is ready to accept traffic.",
)
async def readiness_check(settings: Settings = Depends(get_settings)) -> HealthCheckResponse:
    """
    Readiness check for Kubernetes.

    Verifies that Redis is connected when the quota is stored there.
    """
    if not settings.is_redis_quota:
        return HealthCheckResponse(
            status=HealthStatus.HEALTHY,
            timestamp=datetime.now(timezone.utc),
        )

    redis_health = await RedisHealthCheck.check()

    if redis_health["status"] == "healthy":
        return HealthCheckResponse(
            status=HealthStatus.HEALTHY,
            timestamp=datetime.now(timezone.utc),
        )
    else:
        return HealthCheckResponse(
            status=HealthStatus.UNHEALTHY,
            timestamp=datetime.now(timezone.utc),
        )


@router.get(
    "/live",
    response_model=HealthCheckResponse,
    summary="Liveness check",
    description="Check if the application is alive.",
)
async def liveness_check() -> HealthCheckResponse:
    """
    Liveness check for Kubernetes.

    Simple check that the application process is running.
    """
    return HealthCheckResponse(
        status=HealthStatus.HEALTHY,
        timestamp=datetime.now(timezone.utc),
    )
