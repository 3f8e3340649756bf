"""
Pydantic schemas for API request/response models.
"""

from .common import (
    ErrorResponse,
    HealthStatus,
    HealthCheckResponse,
    DetailedHealthCheckResponse,
    ComponentHealth,
)

from .ornaments import (
    SizeValue,
    GenerateOrnamentsRequest,
    GenerateOrnamentsResponse,
    OrnamentImageResponse,
    OrnamentOptionsResponse,
    StyleInfo,
    SizeInfo,
)

from .proxy import (
    ProxyImageRequest,
    ProxyImageResponse,
)

from .quota import QuotaStatusResponse

__all__ = [
    # Common
    "ErrorResponse",
    "HealthStatus",
    "HealthCheckResponse",
    "DetailedHealthCheckResponse",
    "ComponentHealth",
    # Ornaments
    "SizeValue",
    "GenerateOrnamentsRequest",
    "GenerateOrnamentsResponse",
    "OrnamentImageResponse",
    "OrnamentOptionsResponse",
    "StyleInfo",
    "SizeInfo",
    # Proxy
    "ProxyImageRequest",
    "ProxyImageResponse",
    # Quota
    "QuotaStatusResponse",
]
