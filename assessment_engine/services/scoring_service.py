"""Response scoring engine for Likert assessments.

This service converts the raw answers of one assignment into the
hierarchical score rollup shown on result dashboards:

    question percentage -> subdomain mean -> domain mean of subdomain means
    -> overall mean of domain percentages

Scoring is pure: it reads the answers and the question catalog, never the
clock or any stored state, and canonically orders every input before
summing so the same answers always produce the same breakdown.
"""

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Union

from assessment_engine.core.config import get_settings
from assessment_engine.models.answer import Answer, latest_answers
from assessment_engine.models.assignment import TestAssignment
from assessment_engine.models.question import Question
from assessment_engine.models.results import ScoreBreakdown, SubdomainScore
from assessment_engine.services.question_catalog import QuestionCatalog, validate_scale
from assessment_engine.utils.exceptions import ValidationError
from assessment_engine.utils.logger import PerformanceLogger, get_scoring_logger

logger = get_scoring_logger()

# Questions without a subdomain are grouped under this key within their domain
_DIRECT_GROUP = -1


def normalize_response(raw_value: int, likert_points: int, is_reversed: bool) -> int:
    """Apply reverse-scoring to a raw Likert response.

    Args:
        raw_value: Selected point on the scale (1..likert_points)
        likert_points: Size of the scale
        is_reversed: Whether the question is phrased against its domain

    Returns:
        int: Response oriented in the domain's direction
    """
    if is_reversed:
        return likert_points + 1 - raw_value
    return raw_value


def question_percentage(question: Question, raw_value: int) -> float:
    """Map one response linearly onto 0-100.

    Args:
        question: Question that was answered
        raw_value: Raw response value

    Returns:
        float: ``(normalized - 1) / (likert_points - 1) * 100``

    Raises:
        InvalidQuestionScale: If the question's scale has one point or fewer
        ValidationError: If the response is outside ``1..likert_points``
    """
    validate_scale(question)

    if not 1 <= raw_value <= question.likert_points:
        raise ValidationError(
            f"Answer {raw_value} is outside the 1-{question.likert_points} scale of question {question.id}",
            field="raw_value",
            value=raw_value,
        )

    normalized = normalize_response(raw_value, question.likert_points, question.is_reversed)
    return (normalized - 1) / (question.likert_points - 1) * 100


def _mean(values: Sequence[float]) -> float:
    return math.fsum(values) / len(values)


class ScoringService:
    """Service computing score breakdowns for assignments."""

    def __init__(self, decimal_places: Optional[int] = None):
        """Initialize scoring service.

        Args:
            decimal_places: Rounding applied to reported percentages,
                defaults to ``SCORE_DECIMAL_PLACES``
        """
        if decimal_places is None:
            decimal_places = get_settings().SCORE_DECIMAL_PLACES
        self.decimal_places = decimal_places

    def score(
        self,
        assignment: TestAssignment,
        answers: Iterable[Answer],
        questions: Union[QuestionCatalog, Iterable[Question]],
    ) -> ScoreBreakdown:
        """Score one assignment.

        Args:
            assignment: Assignment the answers belong to
            answers: Stored answers, in any order; the last write per
                question wins
            questions: Question catalog of the assignment's test

        Returns:
            ScoreBreakdown: Domain, subdomain and overall percentages.
            Domains and subdomains without answers are omitted.

        Raises:
            InvalidQuestionScale: If any catalog question has an invalid scale
            ValidationError: If an answer belongs to another assignment or
                is outside its question's scale
        """
        catalog = questions if isinstance(questions, QuestionCatalog) else QuestionCatalog(questions)
        catalog.validate_scales()

        answers = list(answers)
        foreign = sorted({a.assignment_id for a in answers if a.assignment_id != assignment.id})
        if foreign:
            raise ValidationError(
                f"Answers for assignment {assignment.id} include answers of other assignments",
                field="assignment_id",
                value=foreign,
            )

        with PerformanceLogger("score_assignment", logger, {"assignment_id": assignment.id}):
            groups: Dict[int, Dict[int, List[float]]] = defaultdict(lambda: defaultdict(list))
            answered = 0

            for answer in latest_answers(answers):
                question = catalog.get(answer.question_id)
                if question is None:
                    logger.warning(
                        "Skipping answer to a question outside the test catalog",
                        extra={"assignment_id": assignment.id, "question_id": answer.question_id},
                    )
                    continue

                group = question.subdomain_id if question.subdomain_id is not None else _DIRECT_GROUP
                groups[question.domain_id][group].append(question_percentage(question, answer.raw_value))
                answered += 1

            breakdown = self._rollup(catalog, groups, answered)

        logger.info(
            "Scored assignment",
            extra={
                "assignment_id": assignment.id,
                "overall_score": breakdown.overall_score,
                "domains_scored": len(breakdown.domain_scores),
                "total_answered": breakdown.total_answered,
            },
        )
        return breakdown

    def _rollup(
        self,
        catalog: QuestionCatalog,
        groups: Dict[int, Dict[int, List[float]]],
        answered: int,
    ) -> ScoreBreakdown:
        domain_scores: Dict[str, float] = {}
        subdomain_scores: List[SubdomainScore] = []
        domain_means: List[float] = []

        for domain_id in sorted(groups):
            group_means = []
            for group_id in sorted(groups[domain_id]):
                mean = _mean(groups[domain_id][group_id])
                group_means.append(mean)
                if group_id != _DIRECT_GROUP:
                    subdomain_scores.append(
                        SubdomainScore(
                            subdomain_id=group_id,
                            subdomain_name=catalog.subdomain_name(group_id),
                            percentage=self._round(mean),
                            domain_id=domain_id,
                        )
                    )

            domain_mean = _mean(group_means)
            domain_means.append(domain_mean)

            key = catalog.domain_key(domain_id)
            if key in domain_scores:
                key = f"{key}_{domain_id}"
            domain_scores[key] = self._round(domain_mean)

        overall = _mean(domain_means) if domain_means else 0.0

        return ScoreBreakdown(
            overall_score=self._round(overall),
            domain_scores=domain_scores,
            subdomain_scores=subdomain_scores,
            total_questions=len(catalog),
            total_answered=answered,
        )

    def _round(self, value: float) -> float:
        return round(value, self.decimal_places)
