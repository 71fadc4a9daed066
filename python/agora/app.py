"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, auth middleware, request-id middleware, and routes.

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)
- This ensures all requests (including auth failures) get X-Request-ID

Actual execution order per request:
1. RequestIDMiddleware (sets request_id, starts timer)
2. AuthMiddleware (verifies bearer token, sets viewer)
3. Route handler
4. AuthMiddleware (returns response)
5. RequestIDMiddleware (logs, sets response header)
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from agora import __version__
from agora.api.routes import create_api_router
from agora.auth.middleware import AuthMiddleware
from agora.auth.verifier import HmacJwtVerifier, TokenVerifier
from agora.config import Environment, get_settings
from agora.errors import ApiError
from agora.logging import configure_logging, get_logger
from agora.middleware.request_id import RequestIDMiddleware
from agora.responses import (
    api_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)

# Configure structured logging at import time
configure_logging(json_format=get_settings().agora_env != Environment.LOCAL)

logger = get_logger(__name__)


def create_token_verifier() -> TokenVerifier:
    """Create the HS256 token verifier from settings."""
    settings = get_settings()
    return HmacJwtVerifier(
        secret=settings.effective_jwt_secret,
        audience=settings.auth_jwt_audience,
    )


def create_app(
    skip_auth_middleware: bool = False,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        skip_auth_middleware: If True, skip adding auth middleware (for testing).
        token_verifier: Optional custom token verifier (for testing).

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Agora API",
        description="Forum backend API - saved searches and system notifications",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Register exception handlers
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(create_api_router())

    if not skip_auth_middleware:
        app.add_middleware(AuthMiddleware, verifier=token_verifier or create_token_verifier())
        logger.info("auth_middleware_enabled", env=settings.agora_env.value)

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    This should be called AFTER all other middleware is added, so it runs FIRST.

    Args:
        app: The FastAPI application.
        log_requests: Whether to log access entries for each request.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
