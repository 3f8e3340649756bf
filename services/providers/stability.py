"""
Stability AI provider.

Calls the SDXL text-to-image endpoint, which only accepts a fixed set of
output sizes, and decodes the base64 artifact it returns.
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
    decode_base64_image,
)
from .fallback import DEFAULT_FALLBACK_POLICY, FallbackPolicy, SleepFunc, try_in_order

logger = logging.getLogger(__name__)

STABILITY_TEXT_TO_IMAGE_URL = (
    "https://api.stability.ai/v1/generation/stable-diffusion-xl-1024-v1-0/text-to-image"
)
STABILITY_MODEL = "stable-diffusion-xl-1024-v1-0"

# Sizes the SDXL 1024 engine accepts
SDXL_DIMENSIONS: list[tuple[int, int]] = [
    (1024, 1024),
    (1152, 896),
    (896, 1152),
    (1216, 832),
    (832, 1216),
    (1344, 768),
    (768, 1344),
    (1536, 640),
    (640, 1536),
]

CFG_SCALE = 7
STEPS = 30


def nearest_sdxl_dimensions(width: int, height: int) -> tuple[int, int]:
    """Pick the accepted SDXL size whose aspect ratio is closest to width:height."""
    if width <= 0 or height <= 0:
        return SDXL_DIMENSIONS[0]
    ratio = width / height
    return min(SDXL_DIMENSIONS, key=lambda size: abs(size[0] / size[1] - ratio))


class StabilityProvider(HTTPProviderMixin, BaseImageProvider):
    """Stability AI SDXL text-to-image provider."""

    def __init__(
        self,
        api_key: str,
        api_url: str = STABILITY_TEXT_TO_IMAGE_URL,
        timeout: float = 120.0,
        policy: FallbackPolicy = DEFAULT_FALLBACK_POLICY,
        sleep: SleepFunc = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._endpoint = ModelEndpoint(
            url=api_url, max_width=1536, max_height=1536, name=STABILITY_MODEL
        )
        self._timeout = timeout
        self._policy = policy
        self._sleep = sleep
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "stable-diffusion"

    @property
    def display_name(self) -> str:
        return "Stability AI (SDXL)"

    @property
    def is_available(self) -> bool:
        return bool(self._api_key)

    def _get_default_headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    async def _attempt(
        self, endpoint: ModelEndpoint, request: GenerationRequest
    ) -> ImagePayload | AttemptFailure:
        width, height = nearest_sdxl_dimensions(request.width, request.height)
        payload = {
            "text_prompts": [{"text": request.prompt}],
            "cfg_scale": CFG_SCALE,
            "height": height,
            "width": width,
            "steps": STEPS,
            "samples": 1,
        }

        response = await self._post(endpoint, payload)
        if isinstance(response, AttemptFailure):
            return response

        logger.info(f"[Stability] Response from {endpoint.label}: {response.status_code}")

        if not response.is_success:
            return AttemptFailure(
                status=response.status_code,
                message=(
                    f"Stability AI API error: {response.status_code} - "
                    f"{self._extract_error_from_response(response)}"
                ),
                endpoint=endpoint.label,
            )

        try:
            artifacts = response.json().get("artifacts") or []
            artifact = artifacts[0]
            return decode_base64_image(artifact.get("base64") or artifact.get("image"))
        except (ValueError, AttributeError, IndexError, InvalidResponseError) as e:
            return AttemptFailure(
                status=response.status_code,
                message=f"Stability AI API error: no image artifact in response ({e})",
                endpoint=endpoint.label,
                error_type=ERROR_TYPE_INVALID_RESPONSE,
            )

    async def generate(self, request: GenerationRequest) -> ImagePayload:
        """Generate an image with Stability AI SDXL."""
        logger.info(f"[Stability] Generating image: {request.prompt[:80]}")
        return await try_in_order(
            [self._endpoint],
            lambda endpoint: self._attempt(endpoint, request),
            policy=self._policy,
            sleep=self._sleep,
            provider_name="Stability AI",
        )
