"""
Services module for Noel Atelier.
"""
from .generator import ImageGenerator, create_image_generator
from .ornament_service import OrnamentBatch, OrnamentImage, OrnamentService
from .placeholder import PlaceholderProvider, render_placeholder
from .quota_service import InMemoryQuotaStore, QuotaService, RedisQuotaStore

__all__ = [
    "ImageGenerator",
    "create_image_generator",
    "OrnamentService",
    "OrnamentBatch",
    "OrnamentImage",
    "PlaceholderProvider",
    "render_placeholder",
    "QuotaService",
    "InMemoryQuotaStore",
    "RedisQuotaStore",
]
