"""
Core modules for the Noel Atelier API.

This package contains fundamental utilities used across the application:
- config: Application settings and configuration
- redis: Redis connection management
- exceptions: Custom exception classes
"""

from .config import Settings, get_settings
from .exceptions import (
    AppException,
    InternalError,
    InvalidResponseError,
    MethodNotAllowedError,
    ModelLoadingError,
    QuotaExceededError,
    RateLimitedError,
    UpstreamUnavailableError,
    ValidationError,
)

__all__ = [
    # Config
    "get_settings",
    "Settings",
    # Exceptions
    "AppException",
    "ValidationError",
    "MethodNotAllowedError",
    "QuotaExceededError",
    "UpstreamUnavailableError",
    "RateLimitedError",
    "ModelLoadingError",
    "InvalidResponseError",
    "InternalError",
]
