"""Activity event reducer for test-taking sessions.

This service rebuilds behavioural analytics from the flat activity log the
client records while a candidate takes a test: total and offscreen
duration, fullscreen violations, pages visited and per-question dwell time
accumulated over every visit. It also classifies entries for timeline
display and derives pacing statistics for result dashboards.

The reducer is pure. It never reorders or mutates the log it is given and
fails with ``MalformedLog`` instead of guessing when the log is inconsistent.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from assessment_engine.core.config import get_settings
from assessment_engine.models.activity import ActivityLogEntry
from assessment_engine.models.results import (
    ActivityAnalytics,
    NavigationEvent,
    PerformanceInsights,
    QuestionTime,
    TimelineEntry,
    TimingSummary,
)
from assessment_engine.utils.constants import (
    ACTIVITY_DISPLAY,
    MS_PER_SECOND,
    ActivityDisplay,
    ActivityType,
    NavigationType,
    TimingBucket,
)
from assessment_engine.utils.datetime_utils import duration_ms
from assessment_engine.utils.exceptions import MalformedLog, UnknownActivityType
from assessment_engine.utils.logger import PerformanceLogger, get_analytics_logger

logger = get_analytics_logger()

LogInput = Union[ActivityLogEntry, Dict[str, Any]]


# ============================================================================
# CLASSIFICATION
# ============================================================================

def classify_activity(activity_type: Union[str, ActivityType]) -> ActivityDisplay:
    """Colour and severity for an activity type.

    Raises:
        UnknownActivityType: If the type is not part of the closed enumeration
    """
    try:
        return ACTIVITY_DISPLAY[ActivityType(activity_type)]
    except ValueError as e:
        raise UnknownActivityType(activity_type, cause=e) from e


def classify_time(time_ms: int, fast_threshold_ms: int = 10000, slow_threshold_ms: int = 30000) -> TimingBucket:
    """Speed bucket of a resolved per-question time.

    ``fast`` below ``fast_threshold_ms``, ``slow`` from ``slow_threshold_ms``,
    ``normal`` in between (inclusive lower bound, exclusive upper bound).
    """
    if time_ms < fast_threshold_ms:
        return TimingBucket.FAST
    if time_ms < slow_threshold_ms:
        return TimingBucket.NORMAL
    return TimingBucket.SLOW


def _position(value: Any) -> str:
    """1-based label for a 0-based index payload field."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value + 1)
    return "N/A"


def _seconds(value: Any) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return round(value / MS_PER_SECOND)
    return 0


def describe_activity(entry: ActivityLogEntry) -> str:
    """Timeline sentence for one activity entry.

    Raises:
        UnknownActivityType: If the entry's type is unknown
    """
    kind = entry.kind
    data = entry.data

    if kind == ActivityType.TEST_START:
        return (
            f"Started test with {data.get('total_questions') or 0} questions "
            f"across {data.get('total_pages') or 0} pages"
        )
    if kind == ActivityType.PAGE_CHANGE:
        return (
            f"Moved from page {_position(data.get('from_page', 0))} to page "
            f"{_position(data.get('to_page', 0))} ({_seconds(data.get('time_spent'))}s spent)"
        )
    if kind == ActivityType.QUESTION_START:
        return (
            f"Started viewing question {_position(data.get('question_index'))} "
            f"on page {_position(data.get('page', 0))}"
        )
    if kind == ActivityType.QUESTION_END:
        return (
            f"Finished question {_position(data.get('question_index'))} "
            f"({_seconds(data.get('time_spent'))}s spent)"
        )
    if kind == ActivityType.OPTION_SELECT:
        return f"Selected \"{data.get('answer', 'N/A')}\" for question {_position(data.get('question_index'))}"
    if kind == ActivityType.FULLSCREEN_EXIT:
        return f"Exited fullscreen mode on page {_position(data.get('page', 0))}"
    if kind == ActivityType.FULLSCREEN_ENTER:
        return f"Returned to fullscreen mode ({_seconds(data.get('offscreen_duration'))}s offline)"
    return (
        f"Submitted test with {data.get('total_answered') or 0}/"
        f"{data.get('total_questions') or 0} questions answered"
    )


# ============================================================================
# REDUCER
# ============================================================================

@dataclass
class _QuestionAccumulator:
    time_spent: int = 0
    view_count: int = 0
    navigation_events: List[NavigationEvent] = field(default_factory=list)


@dataclass
class _OpenQuestion:
    key: str
    opened_at: datetime


@dataclass
class _ReducerState:
    questions: Dict[str, _QuestionAccumulator] = field(default_factory=dict)
    open_question: Optional[_OpenQuestion] = None
    offscreen_since: Optional[datetime] = None
    offscreen_time: int = 0
    fullscreen_violations: int = 0
    max_page: Optional[int] = None
    unmatched_closes: int = 0
    current_page: int = 0
    page_opened_at: Optional[datetime] = None
    page_times: Dict[int, int] = field(default_factory=dict)

    def close_question(self, closed_at: datetime, navigation_type: NavigationType) -> None:
        """Close the open question interval into its accumulator."""
        interval = self.open_question
        spent = duration_ms(interval.opened_at, closed_at)
        accumulator = self.questions[interval.key]
        accumulator.time_spent += spent
        accumulator.navigation_events.append(
            NavigationEvent(time_spent=spent, navigation_type=navigation_type, timestamp=closed_at)
        )
        self.open_question = None

    def close_offscreen(self, closed_at: datetime) -> None:
        self.offscreen_time += duration_ms(self.offscreen_since, closed_at)
        self.offscreen_since = None

    def close_page(self, closed_at: datetime) -> None:
        spent = duration_ms(self.page_opened_at, closed_at)
        self.page_times[self.current_page] = self.page_times.get(self.current_page, 0) + spent
        self.page_opened_at = None


class ActivityService:
    """Service reducing activity logs into analytics."""

    def __init__(
        self,
        unmatched_close_tolerance: Optional[int] = None,
        fast_threshold_ms: Optional[int] = None,
        slow_threshold_ms: Optional[int] = None,
        consistency_threshold: Optional[int] = None,
    ):
        """Initialize activity service.

        Args:
            unmatched_close_tolerance: Unmatched ``question_end`` /
                ``fullscreen_enter`` events accepted per log
            fast_threshold_ms: Upper bound (exclusive) of the fast bucket
            slow_threshold_ms: Lower bound (inclusive) of the slow bucket
            consistency_threshold: Consistency percentage above which pacing
                counts as consistent
        """
        settings = get_settings()
        self.unmatched_close_tolerance = (
            settings.ACTIVITY_UNMATCHED_CLOSE_TOLERANCE
            if unmatched_close_tolerance is None else unmatched_close_tolerance
        )
        self.fast_threshold_ms = settings.TIMING_FAST_THRESHOLD_MS if fast_threshold_ms is None else fast_threshold_ms
        self.slow_threshold_ms = settings.TIMING_SLOW_THRESHOLD_MS if slow_threshold_ms is None else slow_threshold_ms
        self.consistency_threshold = (
            settings.PACING_CONSISTENCY_THRESHOLD if consistency_threshold is None else consistency_threshold
        )

    def reduce(self, activity_log: Iterable[LogInput]) -> ActivityAnalytics:
        """Reduce an ordered activity log into analytics.

        Args:
            activity_log: Entries in timestamp order, as models or raw dicts

        Returns:
            ActivityAnalytics: Durations, violations, pages, per-question
            and per-page times and the tagged timeline

        Raises:
            MalformedLog: If the log is empty, lacks a leading ``test_start``,
                is out of order, has unusable payloads, or more unmatched
                closes than tolerated
            UnknownActivityType: If any entry has an unknown type
        """
        entries = self._parse_entries(activity_log)

        with PerformanceLogger("reduce_activity_log", logger, {"entry_count": len(entries)}):
            kinds = [entry.kind for entry in entries]
            self._check_order(entries, kinds)

            state = _ReducerState(page_opened_at=entries[0].timestamp)
            for index, (entry, kind) in enumerate(zip(entries, kinds)):
                self._apply(state, index, entry, kind)

            started_at = entries[0].timestamp
            finished_at = entries[-1].timestamp

            if state.open_question is not None:
                state.close_question(finished_at, NavigationType.LOG_END)
            if state.offscreen_since is not None:
                state.close_offscreen(finished_at)
            if state.page_opened_at is not None:
                state.close_page(finished_at)

            if state.unmatched_closes > self.unmatched_close_tolerance:
                raise MalformedLog(
                    f"Activity log has {state.unmatched_closes} unmatched close events",
                    details={
                        "unmatched_closes": state.unmatched_closes,
                        "tolerance": self.unmatched_close_tolerance,
                    },
                )

            total_duration = duration_ms(started_at, finished_at)
            analytics = ActivityAnalytics(
                total_duration=total_duration,
                offscreen_time=state.offscreen_time,
                active_time=max(total_duration - state.offscreen_time, 0),
                fullscreen_violations=state.fullscreen_violations,
                total_pages=(state.max_page + 1) if state.max_page is not None else 1,
                question_times={key: self._question_time(acc) for key, acc in state.questions.items()},
                page_times={str(page): state.page_times[page] for page in sorted(state.page_times)},
                activity_log=[self._timeline_entry(entry) for entry in entries],
            )

        logger.debug(
            "Reduced activity log",
            extra={
                "entry_count": len(entries),
                "total_duration": analytics.total_duration,
                "fullscreen_violations": analytics.fullscreen_violations,
                "questions_timed": len(analytics.question_times),
            },
        )
        return analytics

    def _parse_entries(self, activity_log: Iterable[LogInput]) -> List[ActivityLogEntry]:
        entries = []
        for index, raw in enumerate(activity_log):
            if isinstance(raw, ActivityLogEntry):
                entries.append(raw)
                continue
            try:
                entries.append(ActivityLogEntry.model_validate(raw))
            except PydanticValidationError as e:
                raise MalformedLog(
                    f"Activity log entry {index} is not a valid entry",
                    entry_index=index,
                    cause=e,
                ) from e

        if not entries:
            raise MalformedLog("Activity log is empty; a test_start entry is required")
        return entries

    def _check_order(self, entries: List[ActivityLogEntry], kinds: List[ActivityType]) -> None:
        if ActivityType.TEST_START not in kinds:
            raise MalformedLog("Activity log has no test_start entry")

        if kinds[0] != ActivityType.TEST_START:
            raise MalformedLog(
                "Activity log records events before test_start",
                entry_index=0,
                activity_type=entries[0].activity_type,
            )

        for index in range(1, len(entries)):
            if entries[index].timestamp < entries[index - 1].timestamp:
                raise MalformedLog(
                    "Activity log timestamps are out of order",
                    entry_index=index,
                    activity_type=entries[index].activity_type,
                )

    def _apply(self, state: _ReducerState, index: int, entry: ActivityLogEntry, kind: ActivityType) -> None:
        timestamp = entry.timestamp

        if kind == ActivityType.QUESTION_START:
            key = self._question_key(entry, index)
            if state.open_question is not None:
                if state.open_question.key == key:
                    return
                state.close_question(timestamp, NavigationType.QUESTION_CHANGE)
            state.questions.setdefault(key, _QuestionAccumulator()).view_count += 1
            state.open_question = _OpenQuestion(key=key, opened_at=timestamp)

        elif kind == ActivityType.QUESTION_END:
            key = self._question_key(entry, index)
            if state.open_question is not None and state.open_question.key == key:
                state.close_question(timestamp, NavigationType.QUESTION_END)
            else:
                state.unmatched_closes += 1
                logger.debug("Unmatched question_end", extra={"entry_index": index, "question": key})

        elif kind == ActivityType.TEST_SUBMIT:
            if state.open_question is not None:
                state.close_question(timestamp, NavigationType.TEST_SUBMIT)
            if state.page_opened_at is not None:
                state.close_page(timestamp)

        elif kind == ActivityType.FULLSCREEN_EXIT:
            state.fullscreen_violations += 1
            if state.offscreen_since is None:
                state.offscreen_since = timestamp

        elif kind == ActivityType.FULLSCREEN_ENTER:
            if state.offscreen_since is not None:
                state.close_offscreen(timestamp)
            else:
                state.unmatched_closes += 1
                logger.debug("Unmatched fullscreen_enter", extra={"entry_index": index})

        elif kind == ActivityType.PAGE_CHANGE:
            to_page = entry.get("to_page")
            if not isinstance(to_page, int) or isinstance(to_page, bool) or to_page < 0:
                raise MalformedLog(
                    "page_change entry has no valid to_page",
                    entry_index=index,
                    activity_type=entry.activity_type,
                )
            state.max_page = to_page if state.max_page is None else max(state.max_page, to_page)
            if state.page_opened_at is not None:
                state.close_page(timestamp)
            state.current_page = to_page
            state.page_opened_at = timestamp

    @staticmethod
    def _question_key(entry: ActivityLogEntry, index: int) -> str:
        """Identify the question an entry refers to.

        Uses ``question_id`` when the client sent it, ``question_index``
        otherwise.
        """
        value = entry.get("question_id")
        if value is None:
            value = entry.get("question_index")
        if value is None:
            raise MalformedLog(
                f"{entry.activity_type} entry does not identify a question",
                entry_index=index,
                activity_type=entry.activity_type,
            )
        return str(value)

    @staticmethod
    def _question_time(accumulator: _QuestionAccumulator) -> QuestionTime:
        return QuestionTime(
            time_spent=accumulator.time_spent,
            time_spent_seconds=round(accumulator.time_spent / MS_PER_SECOND),
            view_count=accumulator.view_count,
            average_time=round(accumulator.time_spent / accumulator.view_count) if accumulator.view_count else 0,
            navigation_events=accumulator.navigation_events,
        )

    @staticmethod
    def _timeline_entry(entry: ActivityLogEntry) -> TimelineEntry:
        display = classify_activity(entry.activity_type)
        return TimelineEntry(
            activity_type=entry.activity_type,
            timestamp=entry.timestamp,
            data=dict(entry.data),
            color=display.color,
            severity=display.severity,
            description=describe_activity(entry),
        )

    # ------------------------------------------------------------------
    # Pacing statistics
    # ------------------------------------------------------------------

    def classify_time(self, time_ms: int) -> TimingBucket:
        return classify_time(time_ms, self.fast_threshold_ms, self.slow_threshold_ms)

    def timing_summary(self, analytics: ActivityAnalytics) -> TimingSummary:
        """Aggregate per-question times into counts and extremes.

        Args:
            analytics: Reduced analytics of one assignment

        Returns:
            TimingSummary: Totals, average, extremes and bucket counts
        """
        times = [qt.time_spent for qt in analytics.question_times.values()]
        counts = {bucket.value: 0 for bucket in TimingBucket}
        if not times:
            return TimingSummary(bucket_counts=counts)

        for time_ms in times:
            counts[self.classify_time(time_ms).value] += 1

        total = sum(times)
        return TimingSummary(
            question_count=len(times),
            total_time=total,
            average_time=total / len(times),
            min_time=min(times),
            max_time=max(times),
            bucket_counts=counts,
        )

    def insights(self, summary: TimingSummary) -> Optional[PerformanceInsights]:
        """Pacing consistency and efficiency.

        Consistency is ``(1 - (max - min) / average) * 100`` rounded half up;
        efficiency is ``High`` when more than half the questions were fast,
        ``Moderate`` when more than half were normal.

        Returns:
            PerformanceInsights: Insights, or None without timed questions
        """
        if summary.question_count == 0 or summary.average_time <= 0:
            return None

        spread = (summary.max_time - summary.min_time) / summary.average_time
        consistency = math.floor((1 - spread) * 100 + 0.5)

        half = summary.question_count * 0.5
        if summary.bucket_counts.get(TimingBucket.FAST.value, 0) > half:
            efficiency = "High"
        elif summary.bucket_counts.get(TimingBucket.NORMAL.value, 0) > half:
            efficiency = "Moderate"
        else:
            efficiency = "Needs improvement"

        return PerformanceInsights(
            consistency=consistency,
            is_consistent=consistency > self.consistency_threshold,
            efficiency=efficiency,
        )
