"""Derived result models produced by the engine.

None of these records is persisted independently; they are recomputed on
demand from answers, the question catalog and the activity log.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from assessment_engine.models.base import FrozenModel
from assessment_engine.utils.constants import (
    ActivitySeverity,
    AvailabilityReason,
    NavigationType,
    UrgencyTier,
)


# ============================================================================
# SCORING
# ============================================================================

class SubdomainScore(FrozenModel):
    """Percentage score for one assessed subdomain."""

    subdomain_id: int
    subdomain_name: str
    percentage: float = Field(..., ge=0.0, le=100.0)
    domain_id: int


class ScoreBreakdown(FrozenModel):
    """Hierarchical score rollup for one assignment."""

    overall_score: float = Field(default=0.0, ge=0.0, le=100.0)
    domain_scores: Dict[str, float] = Field(default_factory=dict)
    subdomain_scores: List[SubdomainScore] = Field(default_factory=list)
    total_questions: int = Field(default=0, ge=0)
    total_answered: int = Field(default=0, ge=0)


# ============================================================================
# ACTIVITY ANALYTICS
# ============================================================================

class NavigationEvent(FrozenModel):
    """One closed visit to a question."""

    time_spent: int = Field(..., ge=0)
    navigation_type: NavigationType
    timestamp: datetime


class QuestionTime(FrozenModel):
    """Accumulated dwell time for one question across all visits."""

    time_spent: int = Field(default=0, ge=0)
    time_spent_seconds: int = Field(default=0, ge=0)
    view_count: int = Field(default=0, ge=0)
    average_time: int = Field(default=0, ge=0)
    navigation_events: List[NavigationEvent] = Field(default_factory=list)


class TimelineEntry(FrozenModel):
    """Activity log entry tagged for timeline display."""

    activity_type: str
    timestamp: datetime
    data: Dict[str, Any] = Field(default_factory=dict)
    color: str
    severity: ActivitySeverity
    description: str


class ActivityAnalytics(FrozenModel):
    """Behavioural analytics reconstructed from one activity log.

    Serialized with the camelCase keys the results dashboard reads.
    """

    total_duration: int = Field(default=0, ge=0, alias="totalDuration")
    offscreen_time: int = Field(default=0, ge=0, alias="offscreenTime")
    active_time: int = Field(default=0, ge=0, alias="activeTime")
    fullscreen_violations: int = Field(default=0, ge=0, alias="fullscreenViolations")
    total_pages: int = Field(default=1, ge=1, alias="totalPages")
    question_times: Dict[str, QuestionTime] = Field(default_factory=dict, alias="questionTimes")
    page_times: Dict[str, int] = Field(default_factory=dict, alias="pageTimes")
    activity_log: List[TimelineEntry] = Field(default_factory=list, alias="activityLog")


class TimingSummary(FrozenModel):
    """Aggregate statistics over resolved per-question times."""

    question_count: int = 0
    total_time: int = 0
    average_time: float = 0.0
    min_time: int = 0
    max_time: int = 0
    bucket_counts: Dict[str, int] = Field(default_factory=dict)


class PerformanceInsights(FrozenModel):
    """Pacing insights derived from a timing summary."""

    consistency: int
    is_consistent: bool
    efficiency: str


# ============================================================================
# LIFECYCLE
# ============================================================================

class TimeRemaining(FrozenModel):
    """Tiered time-remaining descriptor for UI consumption."""

    remaining_ms: int
    days: int = 0
    hours: int = 0
    is_expired: bool = False
    tier: UrgencyTier
    label: str


class AvailabilityResult(FrozenModel):
    """Answer to an availability query for one assignment."""

    is_available: bool
    reason: AvailabilityReason
    can_view_results: bool = False
    time_remaining: TimeRemaining


class CompletionResult(FrozenModel):
    """Snapshot returned by completing an assignment."""

    assignment_id: int
    end_time: datetime
    score: ScoreBreakdown
    analytics: Optional[ActivityAnalytics] = None
    analytics_error: Optional[Dict[str, Any]] = None
    already_completed: bool = False
