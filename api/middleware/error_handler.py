"""
Global exception handlers for the API.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from core.config import get_settings
from core.exceptions import (
    AppException,
    InvalidResponseError,
    ModelLoadingError,
    UpstreamUnavailableError,
)
from services.providers.base import get_error_guidance

logger = logging.getLogger(__name__)


def _validation_errors(raw_errors) -> list[dict]:
    errors = []
    for error in raw_errors:
        loc = " -> ".join(str(x) for x in error.get("loc", ()))
        errors.append({
            "field": loc,
            "message": error["msg"],
            "type": error["type"],
        })
    return errors


def app_exception_response(exc: AppException, headers: dict | None = None) -> JSONResponse:
    """Render an AppException as a JSON response."""
    headers = dict(headers or {})
    if isinstance(exc, ModelLoadingError):
        headers["Retry-After"] = str(exc.retry_after)

    content = exc.to_dict()
    # Upstream failures get guidance matched on the error text
    if isinstance(exc, (UpstreamUnavailableError, InvalidResponseError)):
        guidance = get_error_guidance(exc.message)
        if guidance:
            content["suggestion"] = guidance

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=headers or None,
    )


def internal_error_response(exc: Exception, headers: dict | None = None) -> JSONResponse:
    """Render an unexpected exception as a 500, hiding details in production."""
    settings = get_settings()

    if settings.is_production:
        content = {
            "error": "Internal server error",
            "code": "internal_error",
            "message": "An unexpected error occurred",
        }
    else:
        content = {
            "error": "Internal server error",
            "code": "internal_error",
            "message": str(exc) or type(exc).__name__,
            "details": {"type": type(exc).__name__},
        }
    return JSONResponse(status_code=500, content=content, headers=headers)


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Handle custom application exceptions."""
        logger.warning(
            f"AppException: {exc.error_code} - {exc.message}",
            extra={"path": request.url.path, "details": exc.details}
        )
        return app_exception_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors."""
        errors = _validation_errors(exc.errors())

        logger.warning(
            f"Validation error on {request.url.path}",
            extra={"errors": errors}
        )

        return JSONResponse(
            status_code=422,
            content={
                "error": "Invalid request",
                "code": "validation_error",
                "message": "Request validation failed",
                "details": {"errors": errors},
            },
        )

    @app.exception_handler(PydanticValidationError)
    async def pydantic_exception_handler(
        request: Request,
        exc: PydanticValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors."""
        return JSONResponse(
            status_code=422,
            content={
                "error": "Invalid request",
                "code": "validation_error",
                "message": "Data validation failed",
                "details": {"errors": _validation_errors(exc.errors())},
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle all unhandled exceptions."""
        logger.exception(
            f"Unhandled exception on {request.url.path}: {exc}",
        )
        return internal_error_response(exc)
