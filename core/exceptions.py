"""
Custom exception classes for the application.

All exceptions inherit from AppException and include:
- error: Short human-readable title (the ``error`` field of the response body)
- error_code: Machine-readable error code
- message: Human-readable error message
- suggestion: Optional hint on how to recover
- status_code: HTTP status code to return
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors."""

    error: str = "Internal server error"
    error_code: str = "internal_error"
    message: str = "An unexpected error occurred"
    suggestion: str | None = None
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        suggestion: str | None = None,
        error: str | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        self.suggestion = suggestion or self.suggestion
        self.error = error or self.error
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error,
            "code": self.error_code,
            "message": self.message,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(AppException):
    """Raised when input validation fails (e.g. missing prompt or motif)."""

    error = "Invalid request"
    error_code = "validation_error"
    message = "Invalid input"
    status_code = 400


class MethodNotAllowedError(AppException):
    """Raised when an endpoint is called with an unsupported HTTP method."""

    error = "Method not allowed"
    error_code = "method_not_allowed"
    message = "Method not allowed"
    status_code = 405


class QuotaExceededError(AppException):
    """Raised when the daily generation limit is reached."""

    error = "Daily limit reached"
    error_code = "quota_exceeded"
    message = "Daily generation limit reached"
    suggestion = "Please try again tomorrow."
    status_code = 429


class UpstreamUnavailableError(AppException):
    """Raised when every candidate model endpoint failed."""

    error = "All models failed"
    error_code = "upstream_unavailable"
    message = "No models available"
    suggestion = (
        "Please check your Hugging Face API key and try again later. "
        "If the problem persists, the models may be temporarily unavailable."
    )
    status_code = 502

    def __init__(
        self,
        message: str | None = None,
        endpoint: str | None = None,
        upstream_status: int | None = None,
        **kwargs: Any,
    ):
        self.endpoint = endpoint
        self.upstream_status = upstream_status
        details = kwargs.pop("details", None) or {}
        if endpoint is not None:
            details.setdefault("endpoint", endpoint)
        if upstream_status is not None:
            details.setdefault("status", upstream_status)
        super().__init__(message=message, details=details, **kwargs)


class RateLimitedError(UpstreamUnavailableError):
    """Raised when upstream rate limiting persisted past the retry budget."""

    error_code = "rate_limited"
    suggestion = "Rate limit reached. Wait a little while before trying again."
    status_code = 429


class ModelLoadingError(UpstreamUnavailableError):
    """Raised when the upstream model was still loading after all retries."""

    error_code = "model_loading"
    status_code = 503

    def __init__(self, message: str | None = None, retry_after: int = 30, **kwargs: Any):
        self.retry_after = retry_after
        kwargs.setdefault(
            "suggestion",
            f"The model is still loading. Please retry in about {retry_after} seconds.",
        )
        super().__init__(message=message, **kwargs)
        self.details.setdefault("retry_after", retry_after)


class InvalidResponseError(AppException):
    """Raised when upstream returned a malformed or missing image payload."""

    error = "Invalid response"
    error_code = "invalid_response"
    message = "Invalid image data received from API"
    status_code = 502


class InternalError(AppException):
    """Raised for unexpected failures, including placeholder rendering."""

    error = "Internal server error"
    error_code = "internal_error"
    message = "An unexpected error occurred"
    status_code = 500
