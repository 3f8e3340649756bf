"""
Image generator service.

Routes a prompt to the configured provider and falls back to the local
placeholder renderer when the remote models cannot produce an image.
"""

import logging
import time

from core.config import Settings, get_settings
from core.exceptions import InvalidResponseError, UpstreamUnavailableError

from .placeholder import PlaceholderProvider
from .providers.base import BaseImageProvider, GenerationRequest, ImagePayload
from .providers.fallback import FallbackPolicy, build_fallback_policy
from .providers.huggingface import HuggingFaceProvider
from .providers.openai import OpenAIImageProvider
from .providers.proxy import ProxyProvider
from .providers.replicate import ReplicateProvider
from .providers.stability import StabilityProvider

logger = logging.getLogger(__name__)

API_TYPE_HUGGINGFACE = "huggingface"
API_TYPE_REPLICATE = "replicate"
API_TYPE_STABLE_DIFFUSION = "stable-diffusion"
API_TYPE_DALLE = "dalle"
API_TYPE_PLACEHOLDER = "placeholder"

# API types that need their own key; the value names the service in warnings
KEYED_API_TYPES = {
    API_TYPE_REPLICATE: "Replicate",
    API_TYPE_STABLE_DIFFUSION: "Stability AI",
    API_TYPE_DALLE: "OpenAI",
}

SUPPORTED_API_TYPES = (API_TYPE_HUGGINGFACE, *KEYED_API_TYPES, API_TYPE_PLACEHOLDER)


class ImageGenerator:
    """Async image generator with placeholder fallback."""

    def __init__(
        self,
        provider: BaseImageProvider,
        placeholder: BaseImageProvider | None = None,
        fallback_to_placeholder: bool = True,
    ):
        self._provider = provider
        self._placeholder = placeholder or PlaceholderProvider()
        self._fallback_to_placeholder = fallback_to_placeholder
        self.stats: list[dict] = []

    @property
    def provider(self) -> BaseImageProvider:
        return self._provider

    async def generate(self, prompt: str, width: int, height: int) -> ImagePayload:
        """
        Generate one image.

        Args:
            prompt: Full model prompt (motif plus style)
            width: Requested width in pixels
            height: Requested height in pixels

        Returns:
            ImagePayload from the provider, or a placeholder if the provider
            failed and fallback is enabled

        Raises:
            UpstreamUnavailableError: If the provider failed and fallback is off
            InvalidResponseError: If the provider returned malformed data and
                fallback is off
        """
        start_time = time.time()
        request = GenerationRequest(prompt=prompt, width=width, height=height)
        try:
            payload = await self._provider.generate(request)
        except (UpstreamUnavailableError, InvalidResponseError) as e:
            if not self._fallback_to_placeholder or self._provider is self._placeholder:
                raise
            logger.warning(
                f"{self._provider.display_name} failed ({e.error_code}), "
                f"rendering placeholder instead"
            )
            payload = await self._placeholder.generate(request)

        self._record_stats(time.time() - start_time)
        return payload

    def _record_stats(self, duration: float):
        """Record generation statistics."""
        self.stats.append({"duration": duration, "timestamp": time.time()})

    def get_stats_summary(self) -> str:
        """Get summary of generation statistics."""
        if not self.stats:
            return "No generations recorded."
        total = sum(s["duration"] for s in self.stats)
        avg = total / len(self.stats)
        return f"Generations: {len(self.stats)} | Total: {total:.2f}s | Avg: {avg:.2f}s"

    async def close(self) -> None:
        await self._provider.close()


def _policy_from_settings(settings: Settings) -> FallbackPolicy:
    return build_fallback_policy(
        max_retries=settings.retry_max_retries,
        model_loading_delay=settings.model_loading_delay,
        rate_limit_delay=settings.rate_limit_delay,
    )


def create_huggingface_provider(settings: Settings) -> HuggingFaceProvider:
    """Build the direct upstream client holding the server-side credential."""
    return HuggingFaceProvider(
        api_key=settings.huggingface_api_key,
        base_url=settings.huggingface_base_url,
        timeout=settings.upstream_timeout,
        policy=_policy_from_settings(settings),
    )


def _create_keyed_provider(api_type: str, settings: Settings) -> BaseImageProvider | None:
    """Build a Replicate, Stability or OpenAI provider, or None without its key."""
    policy = _policy_from_settings(settings)
    if api_type == API_TYPE_REPLICATE:
        if not settings.replicate_api_key:
            return None
        return ReplicateProvider(
            api_key=settings.replicate_api_key,
            predictions_url=settings.replicate_api_url,
            model_version=settings.replicate_model_version,
            poll_interval=settings.replicate_poll_interval,
            max_polls=settings.replicate_max_polls,
            timeout=settings.upstream_timeout,
            policy=policy,
        )
    if api_type == API_TYPE_STABLE_DIFFUSION:
        if not settings.stability_api_key:
            return None
        return StabilityProvider(
            api_key=settings.stability_api_key,
            api_url=settings.stability_api_url,
            timeout=settings.upstream_timeout,
            policy=policy,
        )
    if not settings.openai_api_key:
        return None
    return OpenAIImageProvider(
        api_key=settings.openai_api_key,
        images_url=settings.openai_images_url,
        model=settings.openai_image_model,
        timeout=settings.upstream_timeout,
        policy=policy,
    )


def create_provider(settings: Settings) -> BaseImageProvider:
    """Build the provider for the configured API type."""
    api_type = settings.api_type.lower()
    if api_type == API_TYPE_PLACEHOLDER:
        return PlaceholderProvider()

    if api_type not in SUPPORTED_API_TYPES:
        logger.warning(f"Unsupported API type '{settings.api_type}', using placeholder")
        return PlaceholderProvider()

    if api_type in KEYED_API_TYPES:
        provider = _create_keyed_provider(api_type, settings)
        if provider is None:
            logger.warning(
                f"{KEYED_API_TYPES[api_type]} API key not set, falling back to placeholder"
            )
            return PlaceholderProvider()
        return provider

    if settings.proxy_url:
        return ProxyProvider(
            proxy_url=settings.proxy_url,
            api_type=api_type,
            timeout=settings.upstream_timeout,
            policy=_policy_from_settings(settings),
        )
    return create_huggingface_provider(settings)


def create_image_generator(settings: Settings | None = None) -> ImageGenerator:
    """Build an ImageGenerator from settings."""
    settings = settings or get_settings()
    provider = create_provider(settings)
    logger.info(f"Image generator using provider: {provider.display_name}")
    return ImageGenerator(
        provider=provider,
        fallback_to_placeholder=settings.placeholder_fallback,
    )


# Singleton instances
_image_generator: ImageGenerator | None = None
_upstream_provider: HuggingFaceProvider | None = None


def get_image_generator() -> ImageGenerator:
    """Get or create the image generator instance."""
    global _image_generator
    if _image_generator is None:
        _image_generator = create_image_generator()
    return _image_generator


def get_upstream_provider() -> HuggingFaceProvider:
    """Get or create the upstream client used by the proxy route."""
    global _upstream_provider
    if _upstream_provider is None:
        _upstream_provider = create_huggingface_provider(get_settings())
    return _upstream_provider


async def close_image_generator() -> None:
    """Close the shared HTTP clients."""
    global _image_generator, _upstream_provider
    if _image_generator is not None:
        await _image_generator.close()
        _image_generator = None
    if _upstream_provider is not None:
        await _upstream_provider.close()
        _upstream_provider = None
