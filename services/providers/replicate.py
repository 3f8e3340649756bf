"""
Replicate provider.

Creates a prediction for the SDXL model, polls it until it settles and
downloads the first output image.
"""

import asyncio
import logging

import httpx

from .base import (
    ERROR_TYPE_API_FAILURE,
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

REPLICATE_PREDICTIONS_URL = "https://api.replicate.com/v1/predictions"
REPLICATE_MODEL = "stability-ai/sdxl"
REPLICATE_MODEL_VERSION = "39ed52f2a78e934b3ba6e2a89f5b1c712de7dfea535525255b1aa35c5565e08b"

MAX_DIMENSION = 1024

# Prediction states that are still running
PENDING_STATUSES = ("starting", "processing")


class ReplicateProvider(HTTPProviderMixin, BaseImageProvider):
    """
    Replicate predictions API provider.

    Supports:
    - Text-to-image through a pinned SDXL model version
    - Polling the prediction at a fixed interval, bounded by max_polls
    """

    def __init__(
        self,
        api_key: str,
        predictions_url: str = REPLICATE_PREDICTIONS_URL,
        model_version: str = REPLICATE_MODEL_VERSION,
        poll_interval: float = 1.0,
        max_polls: int = 120,
        timeout: float = 120.0,
        policy: FallbackPolicy = DEFAULT_FALLBACK_POLICY,
        sleep: SleepFunc = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Replicate provider.

        Args:
            api_key: Replicate API token
            predictions_url: Predictions collection URL
            model_version: Model version hash to run
            poll_interval: Seconds between status polls
            max_polls: Polls before the prediction counts as timed out
            timeout: HTTP timeout per request in seconds
            policy: Status-code fallback policy
            sleep: Async delay function used between polls and retries
            transport: Optional httpx transport (used by tests)
        """
        self._api_key = api_key
        self._endpoint = ModelEndpoint(
            url=predictions_url.rstrip("/"),
            max_width=MAX_DIMENSION,
            max_height=MAX_DIMENSION,
            name=REPLICATE_MODEL,
        )
        self._model_version = model_version
        self._poll_interval = poll_interval
        self._max_polls = max_polls
        self._timeout = timeout
        self._policy = policy
        self._sleep = sleep
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "replicate"

    @property
    def display_name(self) -> str:
        return "Replicate"

    @property
    def is_available(self) -> bool:
        return bool(self._api_key)

    def _auth_headers(self) -> dict:
        # Per request, so image downloads never carry the token
        return {"Authorization": f"Token {self._api_key}"}

    def _api_failure(self, message: str, status: int | None = None) -> AttemptFailure:
        return AttemptFailure(
            status=status,
            message=f"Replicate API error: {message}",
            endpoint=self._endpoint.label,
            error_type=ERROR_TYPE_API_FAILURE if status is None else "unknown",
        )

    def _read_prediction(self, response: httpx.Response) -> dict | AttemptFailure:
        if not response.is_success:
            return self._api_failure(
                self._extract_error_from_response(response), status=response.status_code
            )
        try:
            prediction = response.json()
        except ValueError:
            prediction = None
        if not isinstance(prediction, dict):
            return AttemptFailure(
                status=response.status_code,
                message="Replicate API error: prediction is not a JSON object",
                endpoint=self._endpoint.label,
                error_type=ERROR_TYPE_INVALID_RESPONSE,
            )
        return prediction

    async def _wait_for_prediction(self, prediction: dict) -> dict | AttemptFailure:
        """Poll until the prediction leaves the starting/processing states."""
        prediction_id = prediction.get("id")
        polls = 0
        while prediction.get("status") in PENDING_STATUSES:
            if polls >= self._max_polls:
                return self._api_failure(f"Prediction {prediction_id} timed out after {polls} polls")
            await self._sleep(self._poll_interval)
            polls += 1

            response = await self._request(
                "GET",
                f"{self._endpoint.url}/{prediction_id}",
                self._endpoint.label,
                headers=self._auth_headers(),
            )
            if isinstance(response, AttemptFailure):
                return response
            prediction = self._read_prediction(response)
            if isinstance(prediction, AttemptFailure):
                return prediction

        logger.info(
            f"[Replicate] Prediction {prediction_id} finished: {prediction.get('status')} "
            f"after {polls} polls"
        )
        return prediction

    async def _attempt(
        self, endpoint: ModelEndpoint, request: GenerationRequest
    ) -> ImagePayload | AttemptFailure:
        width, height = endpoint.clamp(request.width, request.height)
        payload = {
            "version": self._model_version,
            "input": {
                "prompt": request.prompt,
                "width": width,
                "height": height,
                "num_outputs": 1,
            },
        }

        response = await self._post(endpoint, payload, headers=self._auth_headers())
        if isinstance(response, AttemptFailure):
            return response
        prediction = self._read_prediction(response)
        if isinstance(prediction, AttemptFailure):
            return prediction

        prediction = await self._wait_for_prediction(prediction)
        if isinstance(prediction, AttemptFailure):
            return prediction

        status = prediction.get("status")
        if status != "succeeded":
            return self._api_failure(f"Prediction {status}: {prediction.get('error') or 'no output'}")

        output = prediction.get("output")
        image_url = output[0] if isinstance(output, list) and output else output
        if not isinstance(image_url, str) or not image_url:
            return AttemptFailure(
                status=response.status_code,
                message="Replicate API error: prediction has no output image",
                endpoint=endpoint.label,
                error_type=ERROR_TYPE_INVALID_RESPONSE,
            )
        return await self._fetch_image(image_url, endpoint.label)

    async def generate(self, request: GenerationRequest) -> ImagePayload:
        """Generate an image with a Replicate prediction."""
        logger.info(f"[Replicate] Generating image: {request.prompt[:80]}")
        return await try_in_order(
            [self._endpoint],
            lambda endpoint: self._attempt(endpoint, request),
            policy=self._policy,
            sleep=self._sleep,
            provider_name="Replicate",
        )
