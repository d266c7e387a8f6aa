"""Assessment engine utilities package.

This package provides constants, datetime helpers, exceptions and logging
used throughout the engine.
"""

from assessment_engine.utils.constants import (
    ACTIVITY_DISPLAY,
    ActivitySeverity,
    ActivityType,
    AssignmentKind,
    AvailabilityReason,
    CompletionStatus,
    NavigationType,
    TimingBucket,
    UrgencyTier,
)
from assessment_engine.utils.datetime_utils import (
    duration_ms,
    ensure_utc,
    format_duration_ms,
    format_time_remaining,
    parse_datetime,
    utc_now,
)
from assessment_engine.utils.exceptions import (
    AssessmentError,
    InvalidQuestionScale,
    InvalidTransition,
    MalformedLog,
    UnknownActivityType,
    ValidationError,
)
from assessment_engine.utils.logger import get_logger, setup_logging

__all__ = [
    "ACTIVITY_DISPLAY",
    "ActivitySeverity",
    "ActivityType",
    "AssessmentError",
    "AssignmentKind",
    "AvailabilityReason",
    "CompletionStatus",
    "InvalidQuestionScale",
    "InvalidTransition",
    "MalformedLog",
    "NavigationType",
    "TimingBucket",
    "UnknownActivityType",
    "UrgencyTier",
    "ValidationError",
    "duration_ms",
    "ensure_utc",
    "format_duration_ms",
    "format_time_remaining",
    "get_logger",
    "parse_datetime",
    "setup_logging",
    "utc_now",
]
