"""Test assignment model.

An assignment is one candidate's (or one supervisor's feedback) attempt at a
test. It is created when the test is assigned and mutated only by the
assignment state machine.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from assessment_engine.models.base import EngineModel
from assessment_engine.models.results import ActivityAnalytics, ScoreBreakdown
from assessment_engine.utils.constants import AssignmentKind, CompletionStatus
from assessment_engine.utils.datetime_utils import ensure_utc


class TestAssignment(EngineModel):
    """Single test assignment and its lifecycle fields."""

    __test__ = False  # not a pytest test class

    id: int = Field(..., alias="assignment_id")
    test_id: int
    candidate_id: Optional[str] = None
    supervisor_id: Optional[str] = None
    linked_assignment_id: Optional[int] = None

    scheduled_date: datetime
    expiry_date: datetime
    completion_status: CompletionStatus = CompletionStatus.NOT_STARTED
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    requires_interaction: bool = True

    # Saved paging progress
    current_page: int = Field(default=0, ge=0)
    total_pages: int = Field(default=1, ge=1)

    # Materialized on completion
    score_snapshot: Optional[ScoreBreakdown] = None
    analytics_snapshot: Optional[ActivityAnalytics] = None
    analytics_error: Optional[Dict[str, Any]] = None

    @field_validator("scheduled_date", "expiry_date", "start_time", "end_time")
    @classmethod
    def normalize_datetimes(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    @model_validator(mode="after")
    def check_lifecycle_invariants(self) -> "TestAssignment":
        """Reject records that violate lifecycle invariants."""
        violations = self.invariant_violations()
        if violations:
            raise ValueError("; ".join(violations))
        return self

    @property
    def kind(self) -> AssignmentKind:
        if self.supervisor_id is not None:
            return AssignmentKind.SUPERVISOR_FEEDBACK
        return AssignmentKind.CANDIDATE

    @property
    def status(self) -> CompletionStatus:
        return CompletionStatus(self.completion_status)

    @property
    def is_completed(self) -> bool:
        return self.status == CompletionStatus.COMPLETED

    def invariant_violations(self) -> List[str]:
        """List every lifecycle invariant this record currently breaks.

        Returns:
            List[str]: Human readable violations, empty when consistent
        """
        violations = []
        status = self.status

        if (self.candidate_id is None) == (self.supervisor_id is None):
            violations.append("exactly one of candidate_id or supervisor_id must be set")

        if self.linked_assignment_id is not None:
            if self.supervisor_id is None:
                violations.append("only supervisor feedback may link to a candidate assignment")
            elif self.linked_assignment_id == self.id:
                violations.append("linked_assignment_id must reference another assignment")

        if self.expiry_date < self.scheduled_date:
            violations.append("expiry_date must not precede scheduled_date")

        has_start = self.start_time is not None
        if has_start != (status in (CompletionStatus.STARTED, CompletionStatus.COMPLETED)):
            violations.append("start_time must be set iff the assignment was started")

        if (self.end_time is not None) != (status == CompletionStatus.COMPLETED):
            violations.append("end_time must be set iff the assignment is completed")

        if self.start_time and self.end_time and self.end_time < self.start_time:
            violations.append("end_time must not precede start_time")

        if self.current_page >= self.total_pages:
            violations.append("current_page must be lower than total_pages")

        return violations
