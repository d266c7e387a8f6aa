"""Shared pytest fixtures for the assessment engine test suite."""

import os

# Settings are cached on first use, so the environment must be set first
os.environ["APP_ENV"] = "test"

from datetime import datetime, timedelta, timezone

import pytest

from assessment_engine.models.answer import Answer
from assessment_engine.models.assignment import TestAssignment
from assessment_engine.models.question import Domain, Question, Subdomain
from assessment_engine.services.question_catalog import QuestionCatalog

SCHEDULED = datetime(2024, 1, 1, tzinfo=timezone.utc)
EXPIRY = datetime(2024, 1, 10, tzinfo=timezone.utc)
SESSION_START = datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_assignment():
    """Factory for candidate assignments open from 2024-01-01 to 2024-01-10."""

    def _make(**overrides) -> TestAssignment:
        data = {
            "assignment_id": 1,
            "test_id": 7,
            "candidate_id": "cand-1",
            "scheduled_date": SCHEDULED,
            "expiry_date": EXPIRY,
        }
        data.update(overrides)
        return TestAssignment(**data)

    return _make


@pytest.fixture
def started_assignment(make_assignment):
    """Assignment started on 2024-01-05 09:00 UTC."""
    return make_assignment(completion_status="started", start_time=SESSION_START)


@pytest.fixture
def domains():
    return [
        Domain(domain_id=1, domain_name="Openness"),
        Domain(domain_id=2, domain_name="Emotional  Stability"),
    ]


@pytest.fixture
def subdomains():
    return [
        Subdomain(subdomain_id=10, subdomain_name="Curiosity", domain_id=1),
        Subdomain(subdomain_id=11, subdomain_name="Imagination", domain_id=1),
        Subdomain(subdomain_id=20, subdomain_name="Calmness", domain_id=2),
    ]


@pytest.fixture
def questions():
    """Two domains; subdomain 10 has two questions, question 5 has no subdomain."""
    return [
        Question(question_id=1, domain_id=1, subdomain_id=10, likert_points=5),
        Question(question_id=2, domain_id=1, subdomain_id=10, likert_points=5),
        Question(question_id=3, domain_id=1, subdomain_id=11, likert_points=5),
        Question(question_id=4, domain_id=2, subdomain_id=20, likert_points=5, is_reversed=True),
        Question(question_id=5, domain_id=2, likert_points=7),
    ]


@pytest.fixture
def catalog(questions, domains, subdomains):
    return QuestionCatalog(questions, domains, subdomains)


@pytest.fixture
def make_answer():
    """Factory for answers of assignment 1."""

    def _make(question_id: int, raw_value: int, assignment_id: int = 1, answered_at: datetime = SESSION_START) -> Answer:
        return Answer(
            question_id=question_id,
            assignment_id=assignment_id,
            raw_value=raw_value,
            answered_at=answered_at,
        )

    return _make


@pytest.fixture
def answers(make_answer):
    """Answers to every catalog question.

    Openness: curiosity 100, imagination 0 -> 50.0.
    Emotional stability: calmness 75 (reversed 2 -> 4), direct 66.67 -> 70.8.
    """
    return [
        make_answer(1, 5),
        make_answer(2, 5),
        make_answer(3, 1),
        make_answer(4, 2),
        make_answer(5, 5),
    ]


@pytest.fixture
def make_entry():
    """Factory for raw activity log entries ``seconds`` after the session start."""

    def _make(activity_type: str, seconds: float, **data) -> dict:
        return {
            "activity_type": activity_type,
            "timestamp": SESSION_START + timedelta(seconds=seconds),
            "data": data,
        }

    return _make


@pytest.fixture
def client():
    """HTTP client for the FastAPI application."""
    from fastapi.testclient import TestClient

    from assessment_engine.api.main import app

    with TestClient(app) as test_client:
        yield test_client
