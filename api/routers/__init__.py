"""
API routers for different endpoints.
"""

from .health import router as health_router
from .ornaments import router as ornaments_router
from .proxy import router as proxy_router
from .quota import router as quota_router

__all__ = [
    "health_router",
    "ornaments_router",
    "proxy_router",
    "quota_router",
]
