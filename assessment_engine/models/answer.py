"""Answer model for Likert responses."""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pydantic import Field, field_validator

from assessment_engine.models.base import FrozenModel
from assessment_engine.utils.datetime_utils import ensure_utc

_UNSTAMPED = datetime.min.replace(tzinfo=timezone.utc)


class Answer(FrozenModel):
    """Raw response to one question within one assignment.

    There is at most one effective answer per (assignment, question); when a
    question is answered again the later ``answered_at`` wins. Answers
    without ``answered_at`` are older than any stamped answer.
    """

    question_id: int
    assignment_id: int
    raw_value: int = Field(..., ge=1)
    answered_at: Optional[datetime] = None

    @field_validator("answered_at")
    @classmethod
    def normalize_answered_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None


def latest_answers(answers: Iterable[Answer]) -> List[Answer]:
    """Collapse answers to the last write per question.

    Ties on ``answered_at`` (including two unstamped answers) are broken by
    the higher raw value so the result never depends on input order.

    Args:
        answers: Answers in any order

    Returns:
        List[Answer]: One answer per question, sorted by question id
    """
    latest: Dict[int, Answer] = {}
    for answer in answers:
        current = latest.get(answer.question_id)
        if current is None or _answer_sort_key(answer) > _answer_sort_key(current):
            latest[answer.question_id] = answer

    return [latest[question_id] for question_id in sorted(latest)]


def _answer_sort_key(answer: Answer) -> Any:
    return (answer.answered_at or _UNSTAMPED, answer.raw_value)
