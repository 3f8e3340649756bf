"""
Base protocols and data classes for image providers.

This module defines the core abstractions shared by every image source
(remote inference endpoints, the proxy route and the local placeholder
renderer), plus the error classification used to build user-facing guidance.
"""

import base64
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from core.exceptions import InvalidResponseError

logger = logging.getLogger(__name__)


# ============ Error Types ============

ERROR_TYPE_CORS = "cors"
ERROR_TYPE_FORBIDDEN = "forbidden"
ERROR_TYPE_RATE_LIMITED = "rate_limited"
ERROR_TYPE_MODEL_LOADING = "model_loading"
ERROR_TYPE_NOT_FOUND = "not_found"
ERROR_TYPE_INVALID_RESPONSE = "invalid_response"
ERROR_TYPE_CONNECTION = "connection"
ERROR_TYPE_API_FAILURE = "api_failure"
ERROR_TYPE_UNKNOWN = "unknown"

# Maximum length of an upstream error body kept for reporting
MAX_ERROR_MESSAGE_LENGTH = 1000

# Keyword table for classifying error text, checked in order
ERROR_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    (ERROR_TYPE_CORS, ("CORS", "cors")),
    (ERROR_TYPE_FORBIDDEN, ("403", "Forbidden")),
    (ERROR_TYPE_RATE_LIMITED, ("429", "Rate limit", "rate limit")),
    (ERROR_TYPE_MODEL_LOADING, ("503", "loading")),
    (ERROR_TYPE_API_FAILURE, ("API", "Failed to generate", "All models failed")),
]

FRIENDLY_MESSAGES = {
    ERROR_TYPE_CORS: (
        "A CORS error occurred. This is caused by browser security restrictions.\n\n"
        "How to fix:\n"
        "1. Send requests through the /generate-image proxy route\n"
        "2. Or use a different image generation service"
    ),
    ERROR_TYPE_FORBIDDEN: (
        "The API key is invalid or lacks permission.\n\n"
        "Check that:\n"
        "1. The Hugging Face API key is set correctly\n"
        "2. The key has the 'Read' permission\n"
        "3. HUGGINGFACE_API_KEY is set in the server environment"
    ),
    ERROR_TYPE_RATE_LIMITED: (
        "The rate limit was reached.\n\n"
        "Wait a little while and try again, "
        "or consider a paid Hugging Face plan."
    ),
    ERROR_TYPE_MODEL_LOADING: (
        "The model is loading.\n\n"
        "The first request can take 10 to 30 seconds while the model starts. "
        "Wait a moment and try again."
    ),
    ERROR_TYPE_API_FAILURE: (
        "An API key is required to generate real images.\n\n"
        "Free setup:\n"
        "1. Create a token at https://huggingface.co/settings/tokens\n"
        "2. Set the server environment variables:\n"
        "   - API_TYPE=huggingface\n"
        "   - HUGGINGFACE_API_KEY=<your token>"
    ),
}


# ============ Utility Functions ============


def classify_error(error_msg: str) -> str:
    """
    Classify error text into an error type by keyword matching.

    Returns:
        Error type constant string
    """
    for error_type, keywords in ERROR_KEYWORDS:
        if any(keyword in error_msg for keyword in keywords):
            return error_type
    return ERROR_TYPE_UNKNOWN


def error_type_for_status(status: int | None) -> str:
    """Map an HTTP status code from a model endpoint to an error type."""
    if status is None:
        return ERROR_TYPE_CONNECTION
    if status == 503:
        return ERROR_TYPE_MODEL_LOADING
    if status == 429:
        return ERROR_TYPE_RATE_LIMITED
    if status in (404, 410):
        return ERROR_TYPE_NOT_FOUND
    if status == 403:
        return ERROR_TYPE_FORBIDDEN
    return ERROR_TYPE_API_FAILURE


def get_error_guidance(error_msg: str) -> str | None:
    """Return tailored guidance for an error message, if any keyword matches."""
    return FRIENDLY_MESSAGES.get(classify_error(error_msg))


def get_friendly_error_message(error_msg: str) -> str:
    """
    Convert a technical error message into user-facing guidance.

    Args:
        error_msg: The technical error message

    Returns:
        Multi-line message with tailored guidance and the original error
    """
    guidance = get_error_guidance(error_msg)
    lines = ["Image generation failed.", ""]
    if guidance:
        lines.extend([guidance, ""])
    lines.append(f"Error details: {error_msg or 'Unknown error'}")
    return "\n".join(lines)


def truncate_message(message: str, limit: int = MAX_ERROR_MESSAGE_LENGTH) -> str:
    """Truncate an upstream error body for logging and reporting."""
    return message[:limit] if len(message) > limit else message


def image_mime_type(content_type: str | None) -> str:
    """MIME type from a Content-Type header, or image/png if it is not an image type."""
    mime_type = (content_type or "").split(";", 1)[0].strip()
    return mime_type if mime_type.startswith("image/") else "image/png"


def decode_base64_image(encoded: str, mime_type: str = "image/png") -> "ImagePayload":
    """
    Decode a bare base64 image field from a JSON response.

    Raises:
        InvalidResponseError: If the field is missing or not valid base64
    """
    if not isinstance(encoded, str) or not encoded:
        raise InvalidResponseError(message="No image data in response")
    try:
        return ImagePayload(data=base64.b64decode(encoded, validate=True), mime_type=mime_type)
    except ValueError as e:
        raise InvalidResponseError(message=f"Invalid base64 image data: {e}")


# ============ Data Classes ============


@dataclass(frozen=True)
class ModelEndpoint:
    """A candidate model endpoint and the largest image it accepts."""

    url: str
    max_width: int = 512
    max_height: int = 512
    name: str = ""

    DEFAULT_DIMENSION = 512

    def clamp(self, width: int | None, height: int | None) -> tuple[int, int]:
        """Clamp requested dimensions to what this endpoint accepts."""
        return (
            min(width or self.DEFAULT_DIMENSION, self.max_width),
            min(height or self.DEFAULT_DIMENSION, self.max_height),
        )

    @property
    def label(self) -> str:
        return self.name or self.url


@dataclass(frozen=True)
class ImagePayload:
    """Binary image content plus its MIME type."""

    data: bytes
    mime_type: str = "image/png"

    def to_data_url(self) -> str:
        """Serialize as an embedded ``data:`` URL."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    @classmethod
    def from_data_url(cls, data_url: str) -> "ImagePayload":
        """
        Parse an embedded ``data:image/...;base64,`` URL.

        Raises:
            InvalidResponseError: If the URL is not a base64 image payload
        """
        if not isinstance(data_url, str) or not data_url.startswith("data:image/"):
            raise InvalidResponseError()
        try:
            header, encoded = data_url.split(",", 1)
            mime_type = header[len("data:"):].split(";", 1)[0]
            if ";base64" not in header:
                raise ValueError("payload is not base64 encoded")
            return cls(data=base64.b64decode(encoded, validate=True), mime_type=mime_type)
        except ValueError as e:
            raise InvalidResponseError(message=f"Invalid data URL format: {e}")


@dataclass
class AttemptFailure:
    """Structured failure of a single request to one endpoint."""

    status: int | None
    message: str
    endpoint: str
    error_type: str = ERROR_TYPE_UNKNOWN

    def __post_init__(self):
        self.message = truncate_message(self.message or "")
        if self.error_type == ERROR_TYPE_UNKNOWN:
            self.error_type = error_type_for_status(self.status)

    def summary(self) -> str:
        return f"Model: {self.endpoint}\nStatus: {self.status}\nMessage: {self.message}"


@dataclass
class GenerationRequest:
    """A prompt and the target dimensions for one image."""

    prompt: str
    width: int = 512
    height: int = 512


# ============ Base Classes (Shared Implementations) ============


class BaseImageProvider(ABC):
    """
    Abstract base class for image sources.

    Every provider turns a GenerationRequest into an ImagePayload or raises
    one of the AppException subclasses from core.exceptions.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this provider."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable name for this provider."""
        ...

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider can be called."""
        ...

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> ImagePayload:
        """Generate one image for the request."""
        ...

    async def health_check(self) -> dict:
        """Report provider status without making a generation call."""
        return {"status": "healthy" if self.is_available else "unhealthy"}

    async def close(self) -> None:
        """Release any held resources."""
        return None


class HTTPProviderMixin:
    """
    Mixin for providers that use httpx for HTTP requests.

    Provides common implementations for:
    - HTTP client management
    - Sending one request and turning transport errors into failures
    - Error extraction from responses
    """

    _client: httpx.AsyncClient | None = None
    _timeout: float = 120.0
    _transport: httpx.AsyncBaseTransport | None = None

    def _get_default_headers(self) -> dict:
        """Get default headers for requests. Override in subclasses for auth."""
        return {"Content-Type": "application/json"}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self._get_default_headers(),
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, url: str, label: str, **kwargs: Any
    ) -> httpx.Response | AttemptFailure:
        """Send one request, turning transport errors into a failure."""
        client = await self._get_client()
        try:
            return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Error with model {label}: {e}")
            return AttemptFailure(
                status=None,
                message=str(e) or type(e).__name__,
                endpoint=label,
                error_type=ERROR_TYPE_CONNECTION,
            )

    async def _post(
        self,
        endpoint: ModelEndpoint,
        payload: dict[str, Any],
        headers: dict | None = None,
    ) -> httpx.Response | AttemptFailure:
        """POST a JSON payload, returning the response or a connection failure."""
        return await self._request(
            "POST", endpoint.url, endpoint.label, json=payload, headers=headers
        )

    async def _fetch_image(self, url: str, label: str) -> ImagePayload | AttemptFailure:
        """
        Download a generated image from a result URL.

        Sent without provider credentials; result URLs point at storage hosts.
        """
        response = await self._request("GET", url, label)
        if isinstance(response, AttemptFailure):
            return response
        if not response.is_success or not response.content:
            return AttemptFailure(
                status=response.status_code,
                message=f"Failed to download generated image ({response.status_code})",
                endpoint=label,
                error_type=ERROR_TYPE_INVALID_RESPONSE,
            )
        return ImagePayload(
            data=response.content,
            mime_type=image_mime_type(response.headers.get("content-type")),
        )

    def _extract_error_from_response(self, response: httpx.Response) -> str:
        """
        Extract an error message from a non-2xx response.

        JSON bodies are kept as serialized JSON, anything else as text.
        """
        content_type = response.headers.get("content-type", "")
        try:
            if "application/json" in content_type:
                return json.dumps(response.json(), ensure_ascii=False)
            return response.text or f"Status {response.status_code}"
        except ValueError as e:
            logger.error(f"Failed to read error body (status {response.status_code}): {e}")
            return response.reason_phrase or f"Status {response.status_code}"
