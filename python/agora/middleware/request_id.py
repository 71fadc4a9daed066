"""X-Request-ID middleware for request correlation and tracing.

This middleware:
- Extracts or generates a unique request ID for each request
- Validates and normalizes incoming request IDs
- Attaches the ID to request state for downstream use
- Echoes the ID in response headers
- Logs access information after response is produced

Middleware Ordering (Critical):
- Must be added LAST to run FIRST (FastAPI middleware runs in reverse order)
- This wraps auth so every request, including a rejected one, has a request_id
- Auth failures still carry X-Request-ID in their response
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from agora.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

# Regex for valid non-UUID request IDs
# Allows alphanumeric, dots, hyphens, underscores
VALID_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

# Regex for UUID strings (any version)
UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

logger = get_logger(__name__)


def is_valid_uuid(value: str) -> bool:
    """Check if value is a valid UUID string."""
    return bool(UUID_PATTERN.match(value))


def is_valid_request_id(value: str) -> bool:
    """Check if value is a valid request ID.

    A request ID is valid if:
    - Its UTF-8 encoding is at most 128 bytes
    - It's a valid UUID string, OR
    - It only uses letters, digits, dots, hyphens and underscores

    Args:
        value: The incoming X-Request-ID header value.

    Returns:
        True if valid, False otherwise.
    """
    if len(value.encode("utf-8")) > MAX_REQUEST_ID_LENGTH:
        return False

    return is_valid_uuid(value) or bool(VALID_REQUEST_ID_PATTERN.match(value))


def normalize_request_id(value: str) -> str:
    """Normalize a valid request ID.

    UUIDs are lowercased to their canonical hyphenated form so log lines
    from different clients correlate. Other IDs are kept as sent.

    Args:
        value: A request ID that passed is_valid_request_id.

    Returns:
        Normalized request ID.
    """
    if is_valid_uuid(value):
        return value.lower()
    return value


def generate_request_id() -> str:
    """Generate a new UUID v4 request ID."""
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware for X-Request-ID handling and access logging.

    This middleware:
    1. Validates and normalizes incoming X-Request-ID headers
    2. Generates a new ID if missing or invalid
    3. Sets request_id on request.state for the auth middleware and error handlers
    4. Binds request_id, method and path into the logging context
    5. Echoes the ID in the response header
    6. Emits one access log entry per request (after response)

    Args:
        app: The ASGI application.
        log_requests: If True, log access entries for each request.
    """

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request with request ID handling."""
        start_time = time.monotonic()

        # Extract and validate request ID from header
        incoming_id = request.headers.get(REQUEST_ID_HEADER)
        if incoming_id and is_valid_request_id(incoming_id):
            request_id = normalize_request_id(incoming_id)
        else:
            request_id = generate_request_id()

        # Attach to request state for downstream middleware and error handlers
        request.state.request_id = request_id

        # Set logging context (available to all subsequent log calls)
        set_request_context(request_id, path=request.url.path, method=request.method)

        try:
            response = await call_next(request)

            # Always echo request ID in response
            response.headers[REQUEST_ID_HEADER] = request_id

            if self.log_requests:
                duration_ms = (time.monotonic() - start_time) * 1000
                logger.info(
                    "request_completed",
                    status_code=response.status_code,
                    duration_ms=round(duration_ms, 2),
                )

            return response

        except Exception:
            # unhandled_exception_handler renders the response
            logger.exception("request_failed")
            raise

        finally:
            # Clear context at end of request
            clear_request_context()
