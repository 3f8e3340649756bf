"""
Hugging Face Inference API provider.

Calls the hosted text-to-image models directly with the server-side
credential. Models are tried in priority order through ``try_in_order`` and
the first one that returns image bytes wins.
"""

import asyncio
import logging

import httpx

from .base import (
    ERROR_TYPE_INVALID_RESPONSE,
    AttemptFailure,
    BaseImageProvider,
    GenerationRequest,
    HTTPProviderMixin,
    ImagePayload,
    ModelEndpoint,
    image_mime_type,
)
from .fallback import DEFAULT_FALLBACK_POLICY, FallbackPolicy, SleepFunc, try_in_order

logger = logging.getLogger(__name__)


# ============ Model Definitions ============

HUGGINGFACE_BASE_URL = "https://api-inference.huggingface.co/models"

# Priority order; the first model is the fastest
HUGGINGFACE_MODELS = [
    "stabilityai/sdxl-turbo",
    "stabilityai/stable-diffusion-xl-base-1.0",
    "runwayml/stable-diffusion-v1-5",
    "stabilityai/stable-diffusion-2-1-base",
    "CompVis/stable-diffusion-v1-4",
]

MAX_DIMENSION = 768

PROMPT_SUFFIX = ", high quality, detailed, professional photography, 8k resolution"


def build_endpoints(base_url: str = HUGGINGFACE_BASE_URL) -> list[ModelEndpoint]:
    """Build the ordered endpoint list for a given inference base URL."""
    base_url = base_url.rstrip("/")
    return [
        ModelEndpoint(
            url=f"{base_url}/{model}",
            max_width=MAX_DIMENSION,
            max_height=MAX_DIMENSION,
            name=model,
        )
        for model in HUGGINGFACE_MODELS
    ]


class HuggingFaceProvider(HTTPProviderMixin, BaseImageProvider):
    """
    Hugging Face Inference API provider.

    Supports:
    - Text-to-image generation across five Stable Diffusion models
    - Retry on model loading (503) and rate limiting (429)
    - Skipping models that were removed (404/410)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = HUGGINGFACE_BASE_URL,
        timeout: float = 120.0,
        policy: FallbackPolicy = DEFAULT_FALLBACK_POLICY,
        sleep: SleepFunc = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Hugging Face provider.

        Args:
            api_key: Inference API token; requests are anonymous without it
            base_url: Base URL the model ids are appended to
            timeout: HTTP timeout per request in seconds
            policy: Status-code fallback policy
            sleep: Async delay function used between retries
            transport: Optional httpx transport (used by tests)
        """
        self._api_key = api_key
        self._endpoints = build_endpoints(base_url)
        self._timeout = timeout
        self._policy = policy
        self._sleep = sleep
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        if api_key:
            logger.info(f"[HuggingFace] API key configured (length {len(api_key)})")
        else:
            logger.warning("[HuggingFace] No API key configured, requests will be anonymous")

    @property
    def name(self) -> str:
        return "huggingface"

    @property
    def display_name(self) -> str:
        return "Hugging Face Inference API"

    @property
    def is_available(self) -> bool:
        return bool(self._api_key)

    @property
    def endpoints(self) -> list[ModelEndpoint]:
        return self._endpoints

    def _get_default_headers(self) -> dict:
        """Get headers with Bearer authentication when a key is set."""
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _attempt(
        self, endpoint: ModelEndpoint, request: GenerationRequest
    ) -> ImagePayload | AttemptFailure:
        """Make one request to one model."""
        width, height = endpoint.clamp(request.width, request.height)
        payload = {
            "inputs": f"{request.prompt}{PROMPT_SUFFIX}",
            "parameters": {"width": width, "height": height},
        }

        response = await self._post(endpoint, payload)
        if isinstance(response, AttemptFailure):
            return response

        logger.info(f"[HuggingFace] Response from {endpoint.label}: {response.status_code}")

        if response.is_success:
            if not response.content:
                return AttemptFailure(
                    status=response.status_code,
                    message="Empty image body",
                    endpoint=endpoint.label,
                    error_type=ERROR_TYPE_INVALID_RESPONSE,
                )
            mime_type = image_mime_type(response.headers.get("content-type"))
            logger.info(
                f"[HuggingFace] Got image from {endpoint.label}: "
                f"{len(response.content)} bytes ({mime_type})"
            )
            return ImagePayload(data=response.content, mime_type=mime_type)

        return AttemptFailure(
            status=response.status_code,
            message=self._extract_error_from_response(response),
            endpoint=endpoint.label,
        )

    async def generate(self, request: GenerationRequest) -> ImagePayload:
        """Generate an image, trying each model in order."""
        return await try_in_order(
            self._endpoints,
            lambda endpoint: self._attempt(endpoint, request),
            policy=self._policy,
            sleep=self._sleep,
            provider_name="HuggingFace",
        )

    async def health_check(self) -> dict:
        return {
            "status": "healthy" if self.is_available else "degraded",
            "api_key_configured": self.is_available,
            "models": len(self._endpoints),
        }
