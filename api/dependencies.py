"""
FastAPI dependency injection for services and providers.
"""

import logging

from fastapi import Depends

from core.config import Settings, get_settings
from core.redis import get_redis
from services.generator import ImageGenerator, get_image_generator, get_upstream_provider
from services.ornament_service import OrnamentService
from services.providers.base import BaseImageProvider
from services.quota_service import QuotaService, get_quota_service

logger = logging.getLogger(__name__)


async def get_quota(settings: Settings = Depends(get_settings)) -> QuotaService:
    """
    Get QuotaService dependency.

    Backed by Redis when QUOTA_BACKEND=redis, otherwise process memory.
    """
    if settings.is_redis_quota:
        return get_quota_service(await get_redis())
    return get_quota_service()


def get_generator() -> ImageGenerator:
    """Get ImageGenerator dependency."""
    return get_image_generator()


def get_upstream() -> BaseImageProvider:
    """Get the upstream model client used by the proxy route."""
    return get_upstream_provider()


async def get_ornament_service(
    generator: ImageGenerator = Depends(get_generator),
    quota: QuotaService = Depends(get_quota),
) -> OrnamentService:
    """Get OrnamentService dependency."""
    return OrnamentService(generator=generator, quota=quota)
