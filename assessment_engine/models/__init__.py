"""Engine records: reference data, assignments, answers, activity and results."""

from assessment_engine.models.activity import ActivityLogEntry
from assessment_engine.models.answer import Answer, latest_answers
from assessment_engine.models.assignment import TestAssignment
from assessment_engine.models.question import Domain, Question, Subdomain
from assessment_engine.models.results import (
    ActivityAnalytics,
    AvailabilityResult,
    CompletionResult,
    NavigationEvent,
    PerformanceInsights,
    QuestionTime,
    ScoreBreakdown,
    SubdomainScore,
    TimeRemaining,
    TimelineEntry,
    TimingSummary,
)

__all__ = [
    "ActivityAnalytics",
    "ActivityLogEntry",
    "Answer",
    "AvailabilityResult",
    "CompletionResult",
    "Domain",
    "NavigationEvent",
    "PerformanceInsights",
    "Question",
    "QuestionTime",
    "ScoreBreakdown",
    "Subdomain",
    "SubdomainScore",
    "TestAssignment",
    "TimeRemaining",
    "TimelineEntry",
    "TimingSummary",
    "latest_answers",
]
