"""Constants and enums for the assessment engine.

This module defines the lifecycle states, activity event types, display
mappings and classification thresholds used throughout the engine.
"""

from enum import Enum
from typing import Dict, NamedTuple


# ============================================================================
# CORE ENUMS
# ============================================================================

class CompletionStatus(str, Enum):
    """Lifecycle states of a single test assignment."""

    NOT_STARTED = "not_started"
    STARTED = "started"
    COMPLETED = "completed"


class AssignmentKind(str, Enum):
    """Who takes the assignment."""

    CANDIDATE = "candidate"
    SUPERVISOR_FEEDBACK = "supervisor_feedback"


class ActivityType(str, Enum):
    """Client-side interaction events recorded during a test session."""

    TEST_START = "test_start"
    PAGE_CHANGE = "page_change"
    QUESTION_START = "question_start"
    QUESTION_END = "question_end"
    OPTION_SELECT = "option_select"
    FULLSCREEN_EXIT = "fullscreen_exit"
    FULLSCREEN_ENTER = "fullscreen_enter"
    TEST_SUBMIT = "test_submit"


class ActivitySeverity(str, Enum):
    """Severity tag attached to timeline entries."""

    INFO = "info"
    NOTICE = "notice"
    CRITICAL = "critical"


class UrgencyTier(str, Enum):
    """Time-remaining urgency tiers for an assignment."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    EXPIRED = "expired"


class AvailabilityReason(str, Enum):
    """Why an assignment can or cannot be started right now."""

    AVAILABLE = "available"
    NOT_YET_OPEN = "not_yet_open"
    EXPIRED = "expired"
    COMPLETED = "completed"


class TimingBucket(str, Enum):
    """Speed classification of the time spent on one question."""

    FAST = "fast"
    NORMAL = "normal"
    SLOW = "slow"


class NavigationType(str, Enum):
    """How an open question interval was closed."""

    QUESTION_CHANGE = "question_change"
    QUESTION_END = "question_end"
    TEST_SUBMIT = "test_submit"
    LOG_END = "log_end"


# ============================================================================
# DISPLAY MAPPINGS
# ============================================================================

class ActivityDisplay(NamedTuple):
    """Colour and severity used to render one activity type."""

    color: str
    severity: ActivitySeverity


ACTIVITY_DISPLAY: Dict[ActivityType, ActivityDisplay] = {
    ActivityType.TEST_START: ActivityDisplay("success", ActivitySeverity.INFO),
    ActivityType.PAGE_CHANGE: ActivityDisplay("info", ActivitySeverity.INFO),
    ActivityType.QUESTION_START: ActivityDisplay("primary", ActivitySeverity.INFO),
    ActivityType.QUESTION_END: ActivityDisplay("secondary", ActivitySeverity.INFO),
    ActivityType.OPTION_SELECT: ActivityDisplay("success", ActivitySeverity.INFO),
    ActivityType.FULLSCREEN_EXIT: ActivityDisplay("error", ActivitySeverity.CRITICAL),
    ActivityType.FULLSCREEN_ENTER: ActivityDisplay("success", ActivitySeverity.NOTICE),
    ActivityType.TEST_SUBMIT: ActivityDisplay("warning", ActivitySeverity.NOTICE),
}


# ============================================================================
# DEFAULTS
# ============================================================================

MS_PER_SECOND = 1000
MS_PER_HOUR = 60 * 60 * MS_PER_SECOND
MS_PER_DAY = 24 * MS_PER_HOUR

UNKNOWN_SUBDOMAIN_NAME = "Unknown Subdomain"

SCOPED_RESULT_ERROR_MESSAGE = "Unable to compute detailed results for this assignment"
