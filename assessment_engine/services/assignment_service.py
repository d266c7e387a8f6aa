"""Assignment state machine.

Governs the ``not_started -> started -> completed`` lifecycle of a single
test assignment, its availability window and the urgency of its remaining
time. This is the only part of the engine that mutates records: every other
service is a pure function of the snapshot it is given.
"""

import threading
import weakref
from collections import OrderedDict
from datetime import datetime
from typing import Iterable, List, Optional, Union

from assessment_engine.core.config import get_settings
from assessment_engine.models.activity import ActivityLogEntry
from assessment_engine.models.answer import Answer
from assessment_engine.models.assignment import TestAssignment
from assessment_engine.models.question import Question
from assessment_engine.models.results import (
    AvailabilityResult,
    CompletionResult,
    TimeRemaining,
)
from assessment_engine.services.activity_service import ActivityService, LogInput, classify_activity
from assessment_engine.services.question_catalog import QuestionCatalog, validate_scale
from assessment_engine.services.scoring_service import ScoringService
from assessment_engine.utils.constants import (
    MS_PER_DAY,
    AvailabilityReason,
    CompletionStatus,
    UrgencyTier,
)
from assessment_engine.utils.datetime_utils import (
    duration_ms,
    ensure_utc,
    format_time_remaining,
    parse_datetime,
    split_days_hours,
)
from assessment_engine.utils.exceptions import (
    InvalidTransition,
    MalformedLog,
    UnknownActivityType,
    ValidationError,
)
from assessment_engine.utils.logger import get_lifecycle_logger

logger = get_lifecycle_logger()


class _AssignmentLock:
    """Lock of one assignment id, usable as a context manager."""

    def __init__(self, assignment_id: int):
        self.assignment_id = assignment_id
        self._lock = threading.Lock()

    def __enter__(self) -> "_AssignmentLock":
        self._lock.acquire()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self._lock.release()


class AssignmentLocks:
    """Registry of per-assignment locks and recent completion results.

    A lock lives only while some caller holds or waits on it. Completion
    results are kept for the most recently completed assignments so that a
    retried ``complete`` on another copy of the record returns the first
    result instead of scoring again.
    """

    def __init__(self, retained_results: Optional[int] = None):
        if retained_results is None:
            retained_results = get_settings().COMPLETED_RESULTS_RETAINED
        self.retained_results = retained_results
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[int, _AssignmentLock]" = weakref.WeakValueDictionary()
        self._completed: "OrderedDict[int, CompletionResult]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._locks)

    def lock_for(self, assignment_id: int) -> _AssignmentLock:
        with self._guard:
            lock = self._locks.get(assignment_id)
            if lock is None:
                lock = _AssignmentLock(assignment_id)
                self._locks[assignment_id] = lock
            return lock

    def completed(self, assignment_id: int) -> Optional[CompletionResult]:
        with self._guard:
            return self._completed.get(assignment_id)

    def remember_completion(self, result: CompletionResult) -> None:
        with self._guard:
            self._completed[result.assignment_id] = result
            self._completed.move_to_end(result.assignment_id)
            while len(self._completed) > self.retained_results:
                self._completed.popitem(last=False)


_assignment_locks = AssignmentLocks()


class AssignmentService:
    """Service driving assignment lifecycle transitions."""

    def __init__(
        self,
        scoring_service: Optional[ScoringService] = None,
        activity_service: Optional[ActivityService] = None,
        critical_days: Optional[int] = None,
        warning_days: Optional[int] = None,
        locks: Optional[AssignmentLocks] = None,
    ):
        """Initialize assignment service.

        Args:
            scoring_service: Scoring engine run on completion
            activity_service: Activity reducer run on completion
            critical_days: Remaining days below which urgency is critical
            warning_days: Remaining days below which urgency is warning
            locks: Per-assignment lock registry, shared process-wide by default
        """
        settings = get_settings()
        self.scoring_service = scoring_service or ScoringService()
        self.activity_service = activity_service or ActivityService()
        self.critical_days = settings.URGENCY_CRITICAL_DAYS if critical_days is None else critical_days
        self.warning_days = settings.URGENCY_WARNING_DAYS if warning_days is None else warning_days
        self.locks = locks or _assignment_locks

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_available(self, assignment: TestAssignment, now: datetime) -> bool:
        """Whether a start/continue action may be offered right now.

        Both window bounds are inclusive; a completed assignment is never
        available again.
        """
        now = ensure_utc(now)
        return (
            assignment.scheduled_date <= now <= assignment.expiry_date
            and not assignment.is_completed
        )

    def time_remaining(self, assignment: TestAssignment, now: datetime) -> TimeRemaining:
        return self.remaining_until(assignment.expiry_date, now)

    def remaining_until(self, expiry_date: datetime, now: datetime) -> TimeRemaining:
        """Tiered time remaining until ``expiry_date``.

        Args:
            expiry_date: End of the availability window
            now: Reference time

        Returns:
            TimeRemaining: Remaining milliseconds (negative once expired),
            whole days and hours, urgency tier and display label
        """
        remaining = duration_ms(now, expiry_date)
        days, hours = split_days_hours(remaining) if remaining >= 0 else (0, 0)

        return TimeRemaining(
            remaining_ms=remaining,
            days=days,
            hours=hours,
            is_expired=remaining < 0,
            tier=self.urgency_tier(remaining),
            label=format_time_remaining(remaining),
        )

    def urgency_tier(self, remaining_ms: int) -> UrgencyTier:
        """Urgency tier for a remaining duration.

        Thresholds use strict ``<``: exactly one day left is ``warning`` and
        exactly three days left is ``normal``.
        """
        if remaining_ms < 0:
            return UrgencyTier.EXPIRED
        if remaining_ms < self.critical_days * MS_PER_DAY:
            return UrgencyTier.CRITICAL
        if remaining_ms < self.warning_days * MS_PER_DAY:
            return UrgencyTier.WARNING
        return UrgencyTier.NORMAL

    def availability(
        self,
        scheduled_date: Union[str, datetime],
        expiry_date: Union[str, datetime],
        completion_status: Union[str, CompletionStatus],
        now: Union[str, datetime],
    ) -> AvailabilityResult:
        """Answer an availability query from raw boundary values.

        Args:
            scheduled_date: Window start, ISO-8601 or datetime
            expiry_date: Window end, ISO-8601 or datetime
            completion_status: Current lifecycle state
            now: Reference time, ISO-8601 or datetime

        Returns:
            AvailabilityResult: Availability, reason and time remaining

        Raises:
            ValidationError: If a date or the status cannot be parsed, or the
                window ends before it starts
        """
        try:
            scheduled = parse_datetime(scheduled_date)
            expiry = parse_datetime(expiry_date)
            reference = parse_datetime(now)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid date in availability query: {e}", cause=e) from e

        if scheduled is None or expiry is None or reference is None:
            raise ValidationError("scheduled_date, expiry_date and now are required")
        if expiry < scheduled:
            raise ValidationError(
                "expiry_date must not precede scheduled_date",
                field="expiry_date",
                value=expiry.isoformat(),
            )

        try:
            status = CompletionStatus(completion_status)
        except ValueError as e:
            raise ValidationError(
                f"Unknown completion status: {completion_status!r}",
                field="completion_status",
                value=completion_status,
                cause=e,
            ) from e

        if status == CompletionStatus.COMPLETED:
            reason = AvailabilityReason.COMPLETED
        elif reference < scheduled:
            reason = AvailabilityReason.NOT_YET_OPEN
        elif reference > expiry:
            reason = AvailabilityReason.EXPIRED
        else:
            reason = AvailabilityReason.AVAILABLE

        return AvailabilityResult(
            is_available=reason == AvailabilityReason.AVAILABLE,
            reason=reason,
            can_view_results=status == CompletionStatus.COMPLETED,
            time_remaining=self.remaining_until(expiry, reference),
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, assignment: TestAssignment, now: datetime) -> TestAssignment:
        """Start or resume an assignment.

        Resuming keeps the original ``start_time``.

        Raises:
            InvalidTransition: If the assignment is completed or outside its
                availability window
        """
        now = ensure_utc(now)

        with self.locks.lock_for(assignment.id):
            if assignment.is_completed or self.locks.completed(assignment.id) is not None:
                raise InvalidTransition(
                    f"Assignment {assignment.id} is already completed",
                    assignment_id=assignment.id,
                    current_status=CompletionStatus.COMPLETED.value,
                    action="start",
                )
            if not self.is_available(assignment, now):
                raise InvalidTransition(
                    f"Assignment {assignment.id} is outside its availability window",
                    assignment_id=assignment.id,
                    current_status=assignment.status.value,
                    action="start",
                )

            resumed = assignment.start_time is not None
            if not resumed:
                assignment.start_time = now
            assignment.completion_status = CompletionStatus.STARTED
            self._check_invariants(assignment)

        logger.info(
            "Resumed assignment" if resumed else "Started assignment",
            extra={"assignment_id": assignment.id, "start_time": assignment.start_time.isoformat()},
        )
        return assignment

    def complete(
        self,
        assignment: TestAssignment,
        now: datetime,
        answers: Iterable[Answer],
        questions: Union[QuestionCatalog, Iterable[Question]],
        activity_log: Optional[Iterable[LogInput]] = None,
    ) -> CompletionResult:
        """Complete an assignment and materialize its results.

        Scoring runs before any field is changed, so a scoring failure leaves
        the assignment untouched. A reducer failure does not block
        completion; it is recorded in ``analytics_error``.

        Args:
            assignment: Assignment to complete
            now: Submission time
            answers: Stored answers of the assignment
            questions: Question catalog of its test
            activity_log: Activity log recorded during the session

        Returns:
            CompletionResult: Score and analytics snapshot. A repeated call
            for the same assignment id, on this or another copy of the
            record, returns the stored snapshot with ``already_completed`` set.

        Raises:
            InvalidTransition: If the assignment was never started (and needs
                interaction) or is past its expiry
            InvalidQuestionScale: If the catalog has an invalid scale
            ValidationError: If answers are inconsistent with the assignment
        """
        now = ensure_utc(now)

        with self.locks.lock_for(assignment.id):
            previous = self.locks.completed(assignment.id)
            if previous is not None and not assignment.is_completed:
                self._apply_completion(assignment, previous)
            if assignment.is_completed:
                logger.info("Assignment already completed", extra={"assignment_id": assignment.id})
                return self._completion_result(assignment, already_completed=True)

            self._check_can_complete(assignment, now)

            score = self.scoring_service.score(assignment, answers, questions)
            analytics, analytics_error = self._reduce_for_completion(assignment, activity_log)

            if assignment.start_time is None:
                assignment.start_time = now
            assignment.end_time = now
            assignment.completion_status = CompletionStatus.COMPLETED
            assignment.score_snapshot = score
            assignment.analytics_snapshot = analytics
            assignment.analytics_error = analytics_error
            self._check_invariants(assignment)
            result = self._completion_result(assignment)
            self.locks.remember_completion(result)

        logger.info(
            "Completed assignment",
            extra={
                "assignment_id": assignment.id,
                "overall_score": score.overall_score,
                "total_answered": score.total_answered,
                "analytics_available": analytics is not None,
            },
        )
        return result

    def _check_can_complete(self, assignment: TestAssignment, now: datetime) -> None:
        status = assignment.status

        if status == CompletionStatus.NOT_STARTED and assignment.requires_interaction:
            raise InvalidTransition(
                f"Assignment {assignment.id} cannot be completed before it is started",
                assignment_id=assignment.id,
                current_status=status.value,
                action="complete",
            )
        if now > assignment.expiry_date:
            raise InvalidTransition(
                f"Assignment {assignment.id} expired before submission",
                assignment_id=assignment.id,
                current_status=status.value,
                action="complete",
            )
        if assignment.start_time is not None and now < assignment.start_time:
            raise InvalidTransition(
                f"Assignment {assignment.id} cannot be completed before its start time",
                assignment_id=assignment.id,
                current_status=status.value,
                action="complete",
            )

    def _reduce_for_completion(self, assignment: TestAssignment, activity_log: Optional[Iterable[LogInput]]):
        if activity_log is None:
            return None, None
        try:
            return self.activity_service.reduce(activity_log), None
        except (MalformedLog, UnknownActivityType) as e:
            logger.warning(
                "Activity analytics unavailable for completed assignment",
                extra={"assignment_id": assignment.id, "error_code": e.error_code, "reason": e.message},
            )
            return None, e.to_dict()

    def _apply_completion(self, assignment: TestAssignment, result: CompletionResult) -> None:
        """Bring another copy of a completed record in line with its result."""
        if assignment.start_time is None:
            assignment.start_time = result.end_time
        assignment.end_time = result.end_time
        assignment.completion_status = CompletionStatus.COMPLETED
        assignment.score_snapshot = result.score
        assignment.analytics_snapshot = result.analytics
        assignment.analytics_error = result.analytics_error
        self._check_invariants(assignment)

    def _completion_result(self, assignment: TestAssignment, already_completed: bool = False) -> CompletionResult:
        return CompletionResult(
            assignment_id=assignment.id,
            end_time=assignment.end_time,
            score=assignment.score_snapshot,
            analytics=assignment.analytics_snapshot,
            analytics_error=assignment.analytics_error,
            already_completed=already_completed,
        )

    # ------------------------------------------------------------------
    # In-session writes
    # ------------------------------------------------------------------

    def _require_in_session(self, assignment: TestAssignment, now: Optional[datetime], action: str) -> None:
        if assignment.status != CompletionStatus.STARTED:
            raise InvalidTransition(
                f"Assignment {assignment.id} is not in progress",
                assignment_id=assignment.id,
                current_status=assignment.status.value,
                action=action,
            )
        if now is not None and ensure_utc(now) > assignment.expiry_date:
            raise InvalidTransition(
                f"Assignment {assignment.id} has expired",
                assignment_id=assignment.id,
                current_status=assignment.status.value,
                action=action,
            )

    def record_answer(
        self,
        assignment: TestAssignment,
        question: Question,
        raw_value: int,
        now: datetime,
    ) -> Answer:
        """Accept an answer while the assignment is in progress.

        Returns:
            Answer: New answer stamped with ``now``; merging keeps the latest

        Raises:
            InvalidTransition: If the assignment is not started or expired
            InvalidQuestionScale: If the question's scale is invalid
            ValidationError: If the value is outside ``1..likert_points``
        """
        self._require_in_session(assignment, now, "record_answer")
        validate_scale(question)

        if not 1 <= raw_value <= question.likert_points:
            raise ValidationError(
                f"Answer {raw_value} is outside the 1-{question.likert_points} scale of question {question.id}",
                field="raw_value",
                value=raw_value,
            )

        return Answer(
            question_id=question.id,
            assignment_id=assignment.id,
            raw_value=raw_value,
            answered_at=ensure_utc(now),
        )

    def save_progress(
        self,
        assignment: TestAssignment,
        current_page: int,
        total_pages: Optional[int] = None,
    ) -> TestAssignment:
        """Store paging progress of an in-progress assignment.

        Raises:
            InvalidTransition: If the assignment is not started
            ValidationError: If the page is outside ``0..total_pages - 1``
        """
        self._require_in_session(assignment, None, "save_progress")

        pages = assignment.total_pages if total_pages is None else total_pages
        if pages < 1 or not 0 <= current_page < pages:
            raise ValidationError(
                f"Page {current_page} is outside a test of {pages} pages",
                field="current_page",
                value=current_page,
            )

        assignment.current_page = current_page
        assignment.total_pages = pages
        logger.debug(
            "Saved progress",
            extra={"assignment_id": assignment.id, "current_page": current_page, "total_pages": pages},
        )
        return assignment

    def log_activity(
        self,
        assignment: TestAssignment,
        log: Iterable[LogInput],
        entry: LogInput,
    ) -> List[ActivityLogEntry]:
        """Append one client event to an in-progress assignment's log.

        Returns:
            List[ActivityLogEntry]: New log; the given log is left unchanged

        Raises:
            InvalidTransition: If the assignment is not started
            UnknownActivityType: If the entry has an unknown type
            MalformedLog: If the entry is older than the last recorded one
        """
        self._require_in_session(assignment, None, "log_activity")

        entries = [e if isinstance(e, ActivityLogEntry) else ActivityLogEntry.model_validate(e) for e in log]
        new_entry = entry if isinstance(entry, ActivityLogEntry) else ActivityLogEntry.model_validate(entry)
        classify_activity(new_entry.activity_type)

        if entries and new_entry.timestamp < entries[-1].timestamp:
            raise MalformedLog(
                "Activity entry is older than the last recorded entry",
                entry_index=len(entries),
                activity_type=new_entry.activity_type,
            )

        return entries + [new_entry]

    def _check_invariants(self, assignment: TestAssignment) -> None:
        violations = assignment.invariant_violations()
        if violations:
            raise InvalidTransition(
                f"Assignment {assignment.id} would violate lifecycle invariants",
                assignment_id=assignment.id,
                current_status=assignment.status.value,
                action="check_invariants",
                details={"violations": violations},
            )
