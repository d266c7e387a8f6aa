"""Scoring, analytics and availability endpoints.

Thin adapter over the engine services: request bodies are parsed into
engine records, the services do the work and engine errors are mapped to
HTTP responses by the application's exception handlers.
"""

import time
from typing import List, Optional, Tuple

from fastapi import APIRouter, Request, status
from pydantic import ValidationError as PydanticValidationError

from assessment_engine.models.answer import Answer
from assessment_engine.models.assignment import TestAssignment
from assessment_engine.models.results import ActivityAnalytics, AvailabilityResult, ScoreBreakdown
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
from assessment_engine.schemas.base import SuccessResponse, create_success_response
from assessment_engine.services.activity_service import ActivityService
from assessment_engine.services.assignment_service import AssignmentService
from assessment_engine.services.question_catalog import QuestionCatalog
from assessment_engine.services.scoring_service import ScoringService
from assessment_engine.utils.constants import SCOPED_RESULT_ERROR_MESSAGE
from assessment_engine.utils.datetime_utils import utc_now
from assessment_engine.utils.exceptions import AssessmentError, ValidationError
from assessment_engine.utils.logger import get_api_logger, log_api_request, log_api_response

# Initialize router
router = APIRouter(
    tags=["Assessments"],
    responses={
        400: {"description": "Invalid input"},
        409: {"description": "Invalid lifecycle transition"},
        422: {"description": "Malformed activity log or question scale"},
        500: {"description": "Internal server error"}
    }
)

# Initialize services
scoring_service = ScoringService()
activity_service = ActivityService()
assignment_service = AssignmentService(scoring_service=scoring_service, activity_service=activity_service)

# Logger
logger = get_api_logger()


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def build_analytics_report(analytics: ActivityAnalytics) -> AnalyticsReport:
    summary = activity_service.timing_summary(analytics)
    return AnalyticsReport(
        analytics=analytics,
        timing_summary=summary,
        insights=activity_service.insights(summary),
    )


@router.post(
    "/scoring/score",
    response_model=SuccessResponse[ScoreBreakdown],
    summary="Score assignment",
    description="Compute the domain, subdomain and overall score breakdown of one assignment"
)
async def score_assignment(body: ScoreRequest, request: Request) -> SuccessResponse[ScoreBreakdown]:
    """Score one assignment.

    Args:
        body: Assignment, its answers and the question catalog of its test
        request: FastAPI request object

    Returns:
        SuccessResponse[ScoreBreakdown]: Score breakdown
    """
    started = time.perf_counter()
    log_api_request("POST", "/scoring/score", logger=logger)

    catalog = QuestionCatalog(body.questions, body.domains, body.subdomains)
    breakdown = scoring_service.score(body.assignment, body.answers, catalog)

    log_api_response("POST", "/scoring/score", status.HTTP_200_OK, _elapsed_ms(started), logger=logger)
    return create_success_response(
        data=breakdown,
        message="Assignment scored successfully",
        request_id=getattr(request.state, "request_id", None),
    )


@router.post(
    "/analytics/reduce",
    response_model=SuccessResponse[AnalyticsReport],
    summary="Reduce activity log",
    description="Reconstruct behavioural analytics and pacing statistics from an activity log"
)
async def reduce_activity_log(body: ReduceRequest, request: Request) -> SuccessResponse[AnalyticsReport]:
    """Reduce one activity log.

    Args:
        body: Ordered activity log
        request: FastAPI request object

    Returns:
        SuccessResponse[AnalyticsReport]: Analytics, timing summary and insights
    """
    started = time.perf_counter()
    log_api_request("POST", "/analytics/reduce", logger=logger)

    report = build_analytics_report(activity_service.reduce(body.activity_log))

    log_api_response("POST", "/analytics/reduce", status.HTTP_200_OK, _elapsed_ms(started), logger=logger)
    return create_success_response(
        data=report,
        message="Activity log reduced successfully",
        request_id=getattr(request.state, "request_id", None),
    )


@router.post(
    "/assignments/availability",
    response_model=SuccessResponse[AvailabilityResult],
    summary="Check availability",
    description="Whether an assignment can be started now, and how much time remains"
)
async def check_availability(body: AvailabilityRequest, request: Request) -> SuccessResponse[AvailabilityResult]:
    """Answer an availability query.

    Args:
        body: Window, status and optional reference time
        request: FastAPI request object

    Returns:
        SuccessResponse[AvailabilityResult]: Availability descriptor
    """
    started = time.perf_counter()
    log_api_request("POST", "/assignments/availability", logger=logger)

    result = assignment_service.availability(
        scheduled_date=body.scheduled_date,
        expiry_date=body.expiry_date,
        completion_status=body.completion_status,
        now=body.now or utc_now(),
    )

    log_api_response("POST", "/assignments/availability", status.HTTP_200_OK, _elapsed_ms(started), logger=logger)
    return create_success_response(
        data=result,
        request_id=getattr(request.state, "request_id", None),
    )


def _parse_assignment_input(item: AssignmentResultsInput) -> Tuple[TestAssignment, List[Answer]]:
    try:
        assignment = TestAssignment.model_validate(item.assignment)
        answers = [Answer.model_validate(answer) for answer in item.answers]
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid assignment data in results batch",
            validation_errors=[f"{'.'.join(map(str, error['loc']))}: {error['msg']}" for error in e.errors()],
            cause=e,
        ) from e
    return assignment, answers


def _assignment_results(item: AssignmentResultsInput, catalog: QuestionCatalog) -> AssignmentResults:
    raw_id = item.assignment.get("assignment_id", item.assignment.get("id"))
    assignment_id = raw_id if isinstance(raw_id, int) else None
    try:
        assignment, answers = _parse_assignment_input(item)
        score = scoring_service.score(assignment, answers, catalog)
        report: Optional[AnalyticsReport] = None
        if item.activity_log is not None:
            report = build_analytics_report(activity_service.reduce(item.activity_log))
    except AssessmentError as e:
        logger.warning(
            "Detailed results unavailable for assignment",
            extra={"assignment_id": assignment_id, "error_code": e.error_code, "reason": e.message},
        )
        return AssignmentResults(
            assignment_id=assignment_id,
            success=False,
            error=ScopedError(message=SCOPED_RESULT_ERROR_MESSAGE, code=e.error_code),
        )

    return AssignmentResults(assignment_id=assignment.id, success=True, score=score, analytics=report)


@router.post(
    "/results/batch",
    response_model=SuccessResponse[BatchResultsResponse],
    summary="Batch detailed results",
    description="Detailed results for several assignments; a failing assignment gets a scoped error"
)
async def batch_results(body: BatchResultsRequest, request: Request) -> SuccessResponse[BatchResultsResponse]:
    """Compute detailed results for several assignments of one test.

    Args:
        body: Shared question catalog and per-assignment data
        request: FastAPI request object

    Returns:
        SuccessResponse[BatchResultsResponse]: One entry per assignment
    """
    started = time.perf_counter()
    log_api_request("POST", "/results/batch", logger=logger)

    catalog = QuestionCatalog(body.questions, body.domains, body.subdomains)
    results: List[AssignmentResults] = [_assignment_results(item, catalog) for item in body.assignments]
    failed = sum(1 for result in results if not result.success)

    log_api_response("POST", "/results/batch", status.HTTP_200_OK, _elapsed_ms(started), logger=logger)
    return create_success_response(
        data=BatchResultsResponse(results=results, generated_at=utc_now(), failed_count=failed),
        message=f"Computed results for {len(results) - failed} of {len(results)} assignments",
        request_id=getattr(request.state, "request_id", None),
    )
