"""
Image provider abstraction layer.

This module provides a unified interface for the remote text-to-image
services (Hugging Face directly or through the proxy route, Replicate,
Stability AI and OpenAI) and the ordered fallback policy they share.
"""

from .base import (
    # Error types
    ERROR_TYPE_API_FAILURE,
    ERROR_TYPE_CONNECTION,
    ERROR_TYPE_CORS,
    ERROR_TYPE_FORBIDDEN,
    ERROR_TYPE_INVALID_RESPONSE,
    ERROR_TYPE_MODEL_LOADING,
    ERROR_TYPE_NOT_FOUND,
    ERROR_TYPE_RATE_LIMITED,
    ERROR_TYPE_UNKNOWN,
    # Data classes
    AttemptFailure,
    # Base classes
    BaseImageProvider,
    GenerationRequest,
    HTTPProviderMixin,
    ImagePayload,
    ModelEndpoint,
    # Utilities
    classify_error,
    get_error_guidance,
    get_friendly_error_message,
)
from .fallback import (
    DEFAULT_FALLBACK_POLICY,
    FallbackPolicy,
    StatusAction,
    StatusRule,
    build_fallback_policy,
    try_in_order,
)
from .huggingface import HUGGINGFACE_MODELS, HuggingFaceProvider
from .openai import OpenAIImageProvider
from .proxy import ProxyProvider
from .replicate import ReplicateProvider
from .stability import StabilityProvider

__all__ = [
    # Error types
    "ERROR_TYPE_CORS",
    "ERROR_TYPE_FORBIDDEN",
    "ERROR_TYPE_RATE_LIMITED",
    "ERROR_TYPE_MODEL_LOADING",
    "ERROR_TYPE_NOT_FOUND",
    "ERROR_TYPE_INVALID_RESPONSE",
    "ERROR_TYPE_CONNECTION",
    "ERROR_TYPE_API_FAILURE",
    "ERROR_TYPE_UNKNOWN",
    # Data classes
    "AttemptFailure",
    "GenerationRequest",
    "ImagePayload",
    "ModelEndpoint",
    # Base classes
    "BaseImageProvider",
    "HTTPProviderMixin",
    # Fallback
    "FallbackPolicy",
    "StatusAction",
    "StatusRule",
    "DEFAULT_FALLBACK_POLICY",
    "build_fallback_policy",
    "try_in_order",
    # Providers
    "HuggingFaceProvider",
    "HUGGINGFACE_MODELS",
    "ProxyProvider",
    "ReplicateProvider",
    "StabilityProvider",
    "OpenAIImageProvider",
    # Utilities
    "classify_error",
    "get_error_guidance",
    "get_friendly_error_message",
]
