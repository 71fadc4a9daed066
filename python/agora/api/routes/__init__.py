"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
"""

from fastapi import APIRouter

from agora.api.routes.health import router as health_router
from agora.api.routes.saved_searches import router as saved_searches_router


def create_api_router() -> APIRouter:
    """Create and configure the API router.

    Returns:
        Configured APIRouter with all routes registered.
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(saved_searches_router, tags=["saved-searches"])
    return api_router


__all__ = ["create_api_router"]
