"""Unit tests for engine records."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from assessment_engine.models.activity import ActivityLogEntry
from assessment_engine.models.answer import Answer, latest_answers
from assessment_engine.utils.constants import ActivityType, AssignmentKind, CompletionStatus
from assessment_engine.utils.exceptions import UnknownActivityType


class TestTestAssignment:
    """Test assignment record invariants."""

    def test_defaults(self, make_assignment):
        assignment = make_assignment()

        assert assignment.status == CompletionStatus.NOT_STARTED
        assert assignment.kind == AssignmentKind.CANDIDATE
        assert assignment.is_completed is False
        assert assignment.invariant_violations() == []

    def test_supervisor_feedback(self, make_assignment):
        assignment = make_assignment(candidate_id=None, supervisor_id="sup-9", linked_assignment_id=3)

        assert assignment.kind == AssignmentKind.SUPERVISOR_FEEDBACK

    @pytest.mark.parametrize(
        "overrides",
        [
            {"supervisor_id": "sup-1"},
            {"candidate_id": None},
            {"expiry_date": datetime(2023, 12, 31, tzinfo=timezone.utc)},
            {"completion_status": "started"},
            {"start_time": datetime(2024, 1, 2, tzinfo=timezone.utc)},
            {"completion_status": "completed", "start_time": datetime(2024, 1, 2, tzinfo=timezone.utc)},
            {
                "completion_status": "completed",
                "start_time": datetime(2024, 1, 3, tzinfo=timezone.utc),
                "end_time": datetime(2024, 1, 2, tzinfo=timezone.utc),
            },
            {"current_page": 1, "total_pages": 1},
            {"linked_assignment_id": 3},
            {"candidate_id": None, "supervisor_id": "sup-9", "linked_assignment_id": 1},
        ],
    )
    def test_invariants_rejected(self, make_assignment, overrides):
        """Test inconsistent records fail validation."""
        with pytest.raises(PydanticValidationError):
            make_assignment(**overrides)

    def test_naive_dates_are_utc(self, make_assignment):
        assignment = make_assignment(scheduled_date=datetime(2024, 1, 1), expiry_date="2024-01-10T05:30:00+05:30")

        assert assignment.scheduled_date.tzinfo == timezone.utc
        assert assignment.expiry_date == datetime(2024, 1, 10, tzinfo=timezone.utc)


class TestAnswers:
    """Test answer merging."""

    def test_latest_answers(self):
        base = datetime(2024, 1, 5, tzinfo=timezone.utc)
        answers = [
            Answer(question_id=2, assignment_id=1, raw_value=3, answered_at=base),
            Answer(question_id=1, assignment_id=1, raw_value=2, answered_at=base + timedelta(seconds=5)),
            Answer(question_id=1, assignment_id=1, raw_value=4, answered_at=base),
        ]

        merged = latest_answers(answers)

        assert [(a.question_id, a.raw_value) for a in merged] == [(1, 2), (2, 3)]

    def test_tie_is_order_independent(self):
        """Test equal timestamps resolve the same way in any order."""
        at = datetime(2024, 1, 5, tzinfo=timezone.utc)
        first = Answer(question_id=1, assignment_id=1, raw_value=2, answered_at=at)
        second = Answer(question_id=1, assignment_id=1, raw_value=5, answered_at=at)

        assert latest_answers([first, second]) == latest_answers([second, first])

    def test_unstamped_answers_are_deterministic(self):
        """Test answers without a timestamp never depend on the clock."""
        unstamped = Answer(question_id=1, assignment_id=1, raw_value=5)
        again = Answer(question_id=1, assignment_id=1, raw_value=2)
        stamped = Answer(
            question_id=1, assignment_id=1, raw_value=1, answered_at=datetime(2024, 1, 5, tzinfo=timezone.utc)
        )

        assert unstamped.answered_at is None
        assert latest_answers([unstamped, again]) == latest_answers([again, unstamped]) == [unstamped]
        assert latest_answers([stamped, unstamped]) == [stamped]

    def test_raw_value_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            Answer(question_id=1, assignment_id=1, raw_value=0)


class TestActivityLogEntry:
    """Test activity log entries."""

    def test_kind(self):
        entry = ActivityLogEntry(activity_type="page_change", timestamp="2024-01-05T09:00:00Z", data={"to_page": 1})

        assert entry.kind == ActivityType.PAGE_CHANGE
        assert entry.get("to_page") == 1
        assert entry.get("from_page", 0) == 0

    def test_unknown_kind(self):
        entry = ActivityLogEntry(activity_type="scroll", timestamp="2024-01-05T09:00:00Z")

        with pytest.raises(UnknownActivityType):
            entry.kind

    def test_entries_are_immutable(self):
        entry = ActivityLogEntry(activity_type="test_start", timestamp="2024-01-05T09:00:00Z")

        with pytest.raises(PydanticValidationError):
            entry.activity_type = "test_submit"
