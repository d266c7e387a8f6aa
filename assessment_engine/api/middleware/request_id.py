"""Request ID middleware for the assessment engine API.

This middleware generates and propagates unique request IDs so that every
log line and error response of one request can be correlated.
"""

import contextvars
from typing import Callable, Optional
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from assessment_engine.utils.logger import get_api_logger

logger = get_api_logger()

# Context variable for request ID
request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id",
    default=None
)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to generate and propagate request IDs."""

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = "X-Request-ID",
        generate_request_id: Optional[Callable[[], str]] = None
    ):
        """Initialize request ID middleware.

        Args:
            app: The ASGI application
            header_name: Header name for request ID
            generate_request_id: Custom function to generate request IDs
        """
        super().__init__(app)
        self.header_name = header_name
        self.generate_request_id = generate_request_id or (lambda: str(uuid4()))

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process the request and add request ID.

        Args:
            request: The incoming request
            call_next: The next middleware/endpoint

        Returns:
            Response: The response with request ID header
        """
        request_id = request.headers.get(self.header_name)

        if not is_valid_request_id(request_id):
            if request_id:
                logger.warning("Replacing invalid request ID", extra={"received_request_id": request_id[:128]})
            request_id = self.generate_request_id()

        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        try:
            response = await call_next(request)
            response.headers[self.header_name] = request_id
            return response
        finally:
            request_id_var.reset(token)


def is_valid_request_id(request_id: Optional[str]) -> bool:
    """Check a client supplied request ID.

    Args:
        request_id: Request ID to validate

    Returns:
        bool: True if the ID can be echoed back safely
    """
    if not request_id:
        return False

    # UUID is 36 chars with hyphens
    if len(request_id) < 32 or len(request_id) > 128:
        return False

    if any(char in request_id for char in ['<', '>', '"', "'", '\n', '\r', '\0']):
        return False

    return True


def get_request_id() -> Optional[str]:
    """Get the current request ID from context.

    Returns:
        Optional[str]: Current request ID or None
    """
    return request_id_var.get()
