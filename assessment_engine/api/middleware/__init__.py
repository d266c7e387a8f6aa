"""Middleware for the assessment engine API."""

from assessment_engine.api.middleware.request_id import (
    RequestIDMiddleware,
    get_request_id,
    request_id_var,
)

__all__ = [
    "RequestIDMiddleware",
    "get_request_id",
    "request_id_var",
]
