"""
Application configuration using Pydantic Settings.

Supports loading from environment variables and .env files.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ============ Application ============
    app_name: str = "Noel Atelier"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"  # development, staging, production

    # ============ Server ============
    host: str = "0.0.0.0"
    port: int = 8000

    # ============ CORS ============
    cors_origins: List[str] = ["*"]
    cors_allow_credentials: bool = False
    cors_allow_methods: List[str] = ["*"]
    cors_allow_headers: List[str] = ["*"]

    # ============ Logging ============
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ============ Image Generation ============
    api_type: str = "huggingface"  # huggingface, replicate, stable-diffusion, dalle, placeholder
    placeholder_fallback: bool = True
    proxy_url: Optional[str] = None

    # The legacy VITE_ prefixed name is still honoured for older deployments
    huggingface_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("HUGGINGFACE_API_KEY", "VITE_HUGGINGFACE_API_KEY"),
    )
    huggingface_base_url: str = "https://api-inference.huggingface.co/models"
    upstream_timeout: float = 120.0

    # ============ Other Backends ============
    replicate_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("REPLICATE_API_KEY", "VITE_REPLICATE_API_KEY"),
    )
    replicate_api_url: str = "https://api.replicate.com/v1/predictions"
    replicate_model_version: str = (
        "39ed52f2a78e934b3ba6e2a89f5b1c712de7dfea535525255b1aa35c5565e08b"
    )
    replicate_poll_interval: float = 1.0
    replicate_max_polls: int = 120

    stability_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("STABILITY_API_KEY", "VITE_STABILITY_API_KEY"),
    )
    stability_api_url: str = (
        "https://api.stability.ai/v1/generation/stable-diffusion-xl-1024-v1-0/text-to-image"
    )

    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "VITE_OPENAI_API_KEY"),
    )
    openai_images_url: str = "https://api.openai.com/v1/images/generations"
    openai_image_model: str = "dall-e-3"

    # ============ Retry Policy ============
    retry_max_retries: int = 3
    model_loading_delay: float = 10.0  # seconds, multiplied by attempt number
    rate_limit_delay: float = 5.0  # seconds, multiplied by attempt number

    # ============ Daily Quota ============
    max_generations_per_day: int = 5
    quota_backend: str = "memory"  # memory, redis
    quota_namespace: str = "noel_atelier_daily"

    # ============ Redis ============
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 10

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_redis_quota(self) -> bool:
        """Check if the daily quota is persisted in Redis."""
        return self.quota_backend.lower() == "redis"

    @property
    def is_huggingface_configured(self) -> bool:
        """Check if a model-provider credential is present."""
        return bool(self.huggingface_api_key)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
