"""Pydantic schemas for the assessment engine API.

This module provides the request/response schemas used by the HTTP adapter.
"""

from assessment_engine.schemas.assessment_schemas import (
    AnalyticsReport,
    AssignmentResults,
    AssignmentResultsInput,
    AvailabilityRequest,
    BatchResultsRequest,
    BatchResultsResponse,
    ReduceRequest,
    ScopedError,
    ScoreRequest,
)
from assessment_engine.schemas.base import (
    BaseResponse,
    HealthCheckResponse,
    ResponseMetadata,
    SuccessResponse,
    create_success_response,
)

__all__ = [
    "AnalyticsReport",
    "AssignmentResults",
    "AssignmentResultsInput",
    "AvailabilityRequest",
    "BaseResponse",
    "BatchResultsRequest",
    "BatchResultsResponse",
    "HealthCheckResponse",
    "ReduceRequest",
    "ResponseMetadata",
    "ScopedError",
    "ScoreRequest",
    "SuccessResponse",
    "create_success_response",
]
