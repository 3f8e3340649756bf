"""
Proxy route client.

Calls the credential-holding ``/generate-image`` route the same way the
browser does, so a deployment can keep the model credential on a separate
host. The route is a single endpoint; retries follow the shared policy.
"""

import asyncio
import logging

import httpx

from core.exceptions import InvalidResponseError

from .base import (
    ERROR_TYPE_INVALID_RESPONSE,
    AttemptFailure,
    BaseImageProvider,
    GenerationRequest,
    HTTPProviderMixin,
    ImagePayload,
    ModelEndpoint,
)
from .fallback import DEFAULT_FALLBACK_POLICY, FallbackPolicy, SleepFunc, try_in_order

logger = logging.getLogger(__name__)

# The proxy route clamps further; requests from this side never exceed 512
MAX_DIMENSION = 512


class ProxyProvider(HTTPProviderMixin, BaseImageProvider):
    """Image provider backed by a remote ``/generate-image`` proxy route."""

    def __init__(
        self,
        proxy_url: str,
        api_type: str = "huggingface",
        timeout: float = 120.0,
        policy: FallbackPolicy = DEFAULT_FALLBACK_POLICY,
        sleep: SleepFunc = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._endpoint = ModelEndpoint(
            url=proxy_url,
            max_width=MAX_DIMENSION,
            max_height=MAX_DIMENSION,
            name="proxy",
        )
        self._api_type = api_type
        self._timeout = timeout
        self._policy = policy
        self._sleep = sleep
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "proxy"

    @property
    def display_name(self) -> str:
        return "Image Proxy"

    @property
    def is_available(self) -> bool:
        return bool(self._endpoint.url)

    async def _attempt(
        self, endpoint: ModelEndpoint, request: GenerationRequest
    ) -> ImagePayload | AttemptFailure:
        width, height = endpoint.clamp(request.width, request.height)
        payload = {
            "prompt": request.prompt,
            "width": width,
            "height": height,
            "apiType": self._api_type,
        }

        response = await self._post(endpoint, payload)
        if isinstance(response, AttemptFailure):
            return response

        if response.status_code != 200:
            try:
                error = response.json().get("error", "Unknown error")
            except (ValueError, AttributeError):
                error = response.text or "Unknown error"
            return AttemptFailure(
                status=response.status_code,
                message=f"API error: {response.status_code} - {error}",
                endpoint=endpoint.label,
            )

        try:
            return ImagePayload.from_data_url(response.json().get("image"))
        except (ValueError, AttributeError, InvalidResponseError) as e:
            logger.error(f"[Proxy] Invalid image payload: {e}")
            return AttemptFailure(
                status=response.status_code,
                message="Invalid image data received from API",
                endpoint=endpoint.label,
                error_type=ERROR_TYPE_INVALID_RESPONSE,
            )

    async def generate(self, request: GenerationRequest) -> ImagePayload:
        """Generate an image through the proxy route."""
        logger.info(f"[Proxy] Generating image: {request.prompt[:80]}")
        return await try_in_order(
            [self._endpoint],
            lambda endpoint: self._attempt(endpoint, request),
            policy=self._policy,
            sleep=self._sleep,
            provider_name="Proxy",
        )
