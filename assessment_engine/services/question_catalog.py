"""Question catalog for the scoring engine.

Wraps the read-only reference data (questions, domains, subdomains) of one
test and resolves the lookups scoring needs: question by id, the domain key
used in score maps, and subdomain names.
"""

import re
from typing import Dict, Iterable, List, Optional

from assessment_engine.models.question import Domain, Question, Subdomain
from assessment_engine.utils.constants import UNKNOWN_SUBDOMAIN_NAME
from assessment_engine.utils.exceptions import InvalidQuestionScale, ValidationError

_WHITESPACE_RE = re.compile(r"\s+")


def domain_key(domain_name: Optional[str], domain_id: int) -> str:
    """Key under which a domain appears in ``domain_scores``.

    Args:
        domain_name: Display name of the domain, if known
        domain_id: Domain identifier

    Returns:
        str: Lower-cased name with whitespace runs replaced by ``_``,
        or ``domain_<id>`` when the name is unknown
    """
    if domain_name and domain_name.strip():
        return _WHITESPACE_RE.sub("_", domain_name.strip().lower())
    return f"domain_{domain_id}"


def validate_scale(question: Question) -> None:
    """Reject Likert scales that cannot be mapped onto 0-100.

    Raises:
        InvalidQuestionScale: If ``likert_points`` is one or less
    """
    if question.likert_points <= 1:
        raise InvalidQuestionScale(
            f"Question {question.id} has an invalid Likert scale of {question.likert_points} points",
            question_id=question.id,
            likert_points=question.likert_points,
        )


class QuestionCatalog:
    """Immutable lookup over the questions of one test."""

    def __init__(
        self,
        questions: Iterable[Question],
        domains: Optional[Iterable[Domain]] = None,
        subdomains: Optional[Iterable[Subdomain]] = None,
    ):
        """Build the catalog.

        Args:
            questions: Questions of the test
            domains: Domain reference data used for names
            subdomains: Subdomain reference data used for names

        Raises:
            ValidationError: If question ids repeat or a question's subdomain
                belongs to a different domain
        """
        self._questions: Dict[int, Question] = {}
        for question in questions:
            if question.id in self._questions:
                raise ValidationError(
                    f"Duplicate question {question.id} in catalog",
                    field="question_id",
                    value=question.id,
                )
            self._questions[question.id] = question

        self._domains: Dict[int, Domain] = {d.domain_id: d for d in domains or []}
        self._subdomains: Dict[int, Subdomain] = {s.subdomain_id: s for s in subdomains or []}

        self._check_subdomain_links()

    def _check_subdomain_links(self) -> None:
        errors = []
        for question in self._questions.values():
            if question.subdomain_id is None:
                continue
            subdomain = self._subdomains.get(question.subdomain_id)
            if subdomain is not None and subdomain.domain_id != question.domain_id:
                errors.append(
                    f"question {question.id}: subdomain {subdomain.subdomain_id} belongs to "
                    f"domain {subdomain.domain_id}, not {question.domain_id}"
                )
        if errors:
            raise ValidationError(
                "Question catalog links subdomains to the wrong domain",
                field="subdomain_id",
                validation_errors=errors,
            )

    def __len__(self) -> int:
        return len(self._questions)

    def __contains__(self, question_id: int) -> bool:
        return question_id in self._questions

    def get(self, question_id: int) -> Optional[Question]:
        return self._questions.get(question_id)

    @property
    def questions(self) -> List[Question]:
        """Questions sorted by id."""
        return [self._questions[qid] for qid in sorted(self._questions)]

    def validate_scales(self) -> None:
        """Check every question's Likert scale.

        Raises:
            InvalidQuestionScale: On the first question with an invalid scale
        """
        for question in self.questions:
            validate_scale(question)

    def domain_name(self, domain_id: int) -> Optional[str]:
        domain = self._domains.get(domain_id)
        return domain.domain_name if domain else None

    def domain_key(self, domain_id: int) -> str:
        return domain_key(self.domain_name(domain_id), domain_id)

    def subdomain_name(self, subdomain_id: int) -> str:
        subdomain = self._subdomains.get(subdomain_id)
        return subdomain.subdomain_name if subdomain else UNKNOWN_SUBDOMAIN_NAME
