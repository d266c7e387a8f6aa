"""Question catalog reference models.

Questions, domains and subdomains are created by administrators and are
read-only input to scoring.
"""

from typing import Optional

from pydantic import Field

from assessment_engine.models.base import FrozenModel


class Domain(FrozenModel):
    """Top level of the personality taxonomy."""

    domain_id: int
    domain_name: str = Field(..., min_length=1)


class Subdomain(FrozenModel):
    """Second level of the taxonomy; always linked to its domain."""

    subdomain_id: int
    subdomain_name: str = Field(..., min_length=1)
    domain_id: int


class Question(FrozenModel):
    """Likert question as used by the scoring engine.

    ``likert_points`` is not constrained here: a scale of size one
    or less is rejected by the scoring engine with ``InvalidQuestionScale``
    so the failure is reported against the assignment being scored.
    """

    id: int = Field(..., alias="question_id")
    domain_id: int
    subdomain_id: Optional[int] = None
    likert_points: int = 5
    is_reversed: bool = False
    question_text: Optional[str] = None
