"""Request and response schemas for the assessment engine endpoints.

Engine records (assignments, answers, questions) are accepted as-is so
they are validated by the same models the services use. Activity logs are
accepted as raw objects: an unknown type or a missing payload field is an
engine error (``UnknownActivityType`` / ``MalformedLog``), not a schema error.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from assessment_engine.models.answer import Answer
from assessment_engine.models.assignment import TestAssignment
from assessment_engine.models.question import Domain, Question, Subdomain
from assessment_engine.models.results import (
    ActivityAnalytics,
    PerformanceInsights,
    ScoreBreakdown,
    TimingSummary,
)
from assessment_engine.schemas.base import BaseSchema


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class CatalogPayload(BaseSchema):
    """Question catalog subset of one test."""

    questions: List[Question] = Field(..., description="Questions of the test")
    domains: List[Domain] = Field(default_factory=list, description="Domain reference data")
    subdomains: List[Subdomain] = Field(default_factory=list, description="Subdomain reference data")


class ScoreRequest(CatalogPayload):
    """Score one assignment."""

    assignment: TestAssignment = Field(..., description="Assignment being scored")
    answers: List[Answer] = Field(default_factory=list, description="Stored answers of the assignment")

    model_config = {
        **CatalogPayload.model_config,
        "json_schema_extra": {
            "example": {
                "assignment": {
                    "assignment_id": 42,
                    "test_id": 7,
                    "candidate_id": "c-1001",
                    "scheduled_date": "2024-01-01T00:00:00Z",
                    "expiry_date": "2024-01-10T00:00:00Z",
                    "completion_status": "started",
                    "start_time": "2024-01-05T09:00:00Z"
                },
                "questions": [
                    {"question_id": 1, "domain_id": 1, "subdomain_id": 10, "likert_points": 5, "is_reversed": False}
                ],
                "domains": [{"domain_id": 1, "domain_name": "Openness"}],
                "subdomains": [{"subdomain_id": 10, "subdomain_name": "Curiosity", "domain_id": 1}],
                "answers": [{"question_id": 1, "assignment_id": 42, "raw_value": 4}]
            }
        }
    }


class ReduceRequest(BaseSchema):
    """Reduce one activity log."""

    activity_log: List[Dict[str, Any]] = Field(
        ..., description="Ordered entries of {activity_type, timestamp, data}"
    )


class AvailabilityRequest(BaseSchema):
    """Availability query for one assignment."""

    scheduled_date: str = Field(..., description="Window start, ISO-8601")
    expiry_date: str = Field(..., description="Window end, ISO-8601")
    completion_status: str = Field(..., description="not_started, started or completed")
    now: Optional[str] = Field(None, description="Reference time, ISO-8601; server time when omitted")


class AssignmentResultsInput(BaseSchema):
    """Stored data of one assignment in a results batch.

    Records are kept raw and validated per assignment, so one invalid record
    becomes a scoped error instead of failing the whole batch.
    """

    assignment: Dict[str, Any]
    answers: List[Dict[str, Any]] = Field(default_factory=list)
    activity_log: Optional[List[Dict[str, Any]]] = None


class BatchResultsRequest(CatalogPayload):
    """Detailed results for several assignments of the same test."""

    assignments: List[AssignmentResultsInput] = Field(..., description="Assignments to report on")


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class AnalyticsReport(BaseSchema):
    """Reduced analytics with pacing statistics."""

    analytics: ActivityAnalytics
    timing_summary: TimingSummary
    insights: Optional[PerformanceInsights] = None


class ScopedError(BaseSchema):
    """Error confined to one assignment of a batch."""

    message: str
    code: Optional[str] = None


class AssignmentResults(BaseSchema):
    """Detailed results of one assignment, or its scoped error."""

    assignment_id: Optional[int] = None
    success: bool
    score: Optional[ScoreBreakdown] = None
    analytics: Optional[AnalyticsReport] = None
    error: Optional[ScopedError] = None


class BatchResultsResponse(BaseSchema):
    """Results of a batch; failures do not affect other assignments."""

    results: List[AssignmentResults]
    generated_at: datetime
    failed_count: int = 0
