"""
Routers package for API endpoints.

This package contains all API route handlers organized by functionality.
"""

from .media import router as media_router
from .delivery import router as delivery_router
from .chat import router as chat_router
from .billing import router as billing_router
from .health import router as health_router

__all__ = [
    "media_router",
    "delivery_router",
    "chat_router",
    "billing_router",
    "health_router",
]
