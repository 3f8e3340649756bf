"""
OpenAI provider (DALL-E).

Requests base64 output from the images API; when the response only carries a
hosted URL the image is downloaded from it instead.
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

OPENAI_IMAGES_URL = "https://api.openai.com/v1/images/generations"
DEFAULT_IMAGE_MODEL = "dall-e-3"


def dalle_size(width: int, height: int) -> str:
    """Map requested dimensions onto a DALL-E 3 size by orientation."""
    if width > height:
        return "1792x1024"
    if height > width:
        return "1024x1792"
    return "1024x1024"


class OpenAIImageProvider(HTTPProviderMixin, BaseImageProvider):
    """
    OpenAI images API provider.

    Supports:
    - DALL-E 3 (default) or any model name the images endpoint accepts
    - b64_json responses, with a URL download when no inline data is returned
    """

    def __init__(
        self,
        api_key: str,
        images_url: str = OPENAI_IMAGES_URL,
        model: str = DEFAULT_IMAGE_MODEL,
        timeout: float = 120.0,
        policy: FallbackPolicy = DEFAULT_FALLBACK_POLICY,
        sleep: SleepFunc = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._model = model
        self._endpoint = ModelEndpoint(url=images_url, max_width=1792, max_height=1792, name=model)
        self._timeout = timeout
        self._policy = policy
        self._sleep = sleep
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "dalle"

    @property
    def display_name(self) -> str:
        return "OpenAI DALL-E"

    @property
    def is_available(self) -> bool:
        return bool(self._api_key)

    async def _attempt(
        self, endpoint: ModelEndpoint, request: GenerationRequest
    ) -> ImagePayload | AttemptFailure:
        payload = {
            "model": self._model,
            "prompt": request.prompt,
            "n": 1,
            "size": dalle_size(request.width, request.height),
            "response_format": "b64_json",
        }

        # Bearer token per request; hosted result URLs are fetched without it
        response = await self._post(
            endpoint, payload, headers={"Authorization": f"Bearer {self._api_key}"}
        )
        if isinstance(response, AttemptFailure):
            return response

        logger.info(f"[OpenAI] Response from {endpoint.label}: {response.status_code}")

        if not response.is_success:
            return AttemptFailure(
                status=response.status_code,
                message=(
                    f"OpenAI API error: {response.status_code} - "
                    f"{self._extract_error_from_response(response)}"
                ),
                endpoint=endpoint.label,
            )

        try:
            image = response.json()["data"][0]
            image_b64 = image.get("b64_json")
            if image_b64:
                return decode_base64_image(image_b64)
            image_url = image.get("url")
        except (ValueError, KeyError, IndexError, TypeError, AttributeError,
                InvalidResponseError) as e:
            return AttemptFailure(
                status=response.status_code,
                message=f"OpenAI API error: unreadable image response ({e})",
                endpoint=endpoint.label,
                error_type=ERROR_TYPE_INVALID_RESPONSE,
            )

        if not image_url:
            return AttemptFailure(
                status=response.status_code,
                message="OpenAI API error: no image data in response",
                endpoint=endpoint.label,
                error_type=ERROR_TYPE_INVALID_RESPONSE,
            )
        return await self._fetch_image(image_url, endpoint.label)

    async def generate(self, request: GenerationRequest) -> ImagePayload:
        """Generate an image with the OpenAI images API."""
        logger.info(f"[OpenAI] Generating image with {self._model}: {request.prompt[:80]}")
        return await try_in_order(
            [self._endpoint],
            lambda endpoint: self._attempt(endpoint, request),
            policy=self._policy,
            sleep=self._sleep,
            provider_name="OpenAI",
        )
