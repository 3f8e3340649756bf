"""
Image proxy router.

Endpoints:
- POST /generate-image - Generate an image with the server-side credential
- OPTIONS /generate-image - CORS preflight

The browser calls this route instead of the model API so that the credential
never leaves the server and cross-origin restrictions do not apply. Every
response, including errors, carries permissive CORS headers.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.dependencies import get_upstream
from api.middleware.error_handler import app_exception_response, internal_error_response
from core.config import Settings, get_settings
from core.exceptions import AppException, MethodNotAllowedError, ValidationError
from services.providers.base import BaseImageProvider, GenerationRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["proxy"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _error(exc: AppException) -> JSONResponse:
    return app_exception_response(exc, headers=CORS_HEADERS)


def _dimension(value) -> int | None:
    """Coerce a requested dimension; missing or non-positive means default."""
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if number > 0 else None


def parse_proxy_body(raw: bytes) -> GenerationRequest:
    """
    Parse the JSON body of a proxy request.

    Raises:
        ValidationError: On malformed JSON or a missing/empty prompt
    """
    try:
        body = json.loads(raw or b"{}")
    except ValueError:
        raise ValidationError(message="Request body must be valid JSON", error="Invalid JSON")
    if not isinstance(body, dict):
        raise ValidationError(message="Request body must be a JSON object", error="Invalid JSON")

    prompt = body.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError(message="Prompt is required", error="Prompt is required")

    return GenerationRequest(
        prompt=prompt,
        width=_dimension(body.get("width")),
        height=_dimension(body.get("height")),
    )


@router.options("/generate-image", include_in_schema=False)
async def generate_image_preflight() -> Response:
    """CORS preflight."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post(
    "/generate-image",
    summary="Generate an image through the proxy",
    responses={400: {}, 429: {}, 502: {}, 503: {}},
)
async def generate_image(
    request: Request,
    upstream: BaseImageProvider = Depends(get_upstream),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """
    Generate an image with the upstream models.

    Body: ``{"prompt": str, "width": int, "height": int, "apiType": str}``.
    Returns ``{"image": "data:image/...;base64,..."}``.
    """
    try:
        generation_request = parse_proxy_body(await request.body())
    except ValidationError as e:
        logger.warning(f"Rejected proxy request: {e.message}")
        return _error(e)

    api_key = settings.huggingface_api_key
    logger.info(
        f"Proxy request: prompt={generation_request.prompt[:80]!r} "
        f"size={generation_request.width}x{generation_request.height} "
        f"api_key_present={bool(api_key)} api_key_length={len(api_key) if api_key else 0}"
    )

    try:
        payload = await upstream.generate(generation_request)
    except AppException as e:
        logger.error(f"Proxy generation failed: {e.error_code}")
        return _error(e)
    except Exception as e:
        logger.exception(f"Unexpected proxy error: {e}")
        return internal_error_response(e, headers=CORS_HEADERS)

    return JSONResponse(
        status_code=200,
        content={"image": payload.to_data_url()},
        headers=CORS_HEADERS,
    )


@router.api_route(
    "/generate-image",
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def generate_image_method_not_allowed() -> JSONResponse:
    return _error(MethodNotAllowedError())
