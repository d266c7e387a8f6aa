"""Integration tests for the assessment engine API endpoints.

This module exercises the HTTP adapter end to end: request parsing, engine
services, the response envelope and the mapping of engine errors to status
codes.
"""

import logging

import pytest

from assessment_engine.api.main import status_code_for
from assessment_engine.utils.exceptions import (
    AssessmentError,
    InvalidQuestionScale,
    InvalidTransition,
    MalformedLog,
    UnknownActivityType,
    ValidationError,
)

API = "/api/v1"


@pytest.fixture
def assignment_payload():
    return {
        "assignment_id": 42,
        "test_id": 7,
        "candidate_id": "cand-42",
        "scheduled_date": "2024-01-01T00:00:00Z",
        "expiry_date": "2024-01-10T00:00:00Z",
        "completion_status": "started",
        "start_time": "2024-01-05T09:00:00Z",
    }


@pytest.fixture
def catalog_payload():
    return {
        "questions": [
            {"question_id": 1, "domain_id": 1, "subdomain_id": 10, "likert_points": 5},
            {"question_id": 2, "domain_id": 1, "subdomain_id": 11, "likert_points": 5, "is_reversed": True},
            {"question_id": 3, "domain_id": 2, "likert_points": 7},
        ],
        "domains": [
            {"domain_id": 1, "domain_name": "Openness"},
            {"domain_id": 2, "domain_name": "Team Work"},
        ],
        "subdomains": [
            {"subdomain_id": 10, "subdomain_name": "Curiosity", "domain_id": 1},
            {"subdomain_id": 11, "subdomain_name": "Imagination", "domain_id": 1},
        ],
    }


@pytest.fixture
def answers_payload():
    return [
        {"question_id": 1, "assignment_id": 42, "raw_value": 4, "answered_at": "2024-01-05T09:01:00Z"},
        {"question_id": 2, "assignment_id": 42, "raw_value": 2, "answered_at": "2024-01-05T09:02:00Z"},
        {"question_id": 3, "assignment_id": 42, "raw_value": 7, "answered_at": "2024-01-05T09:03:00Z"},
    ]


@pytest.fixture
def activity_log_payload():
    return [
        {"activity_type": "test_start", "timestamp": "2024-01-05T09:00:00Z", "data": {"total_questions": 3, "total_pages": 2}},
        {"activity_type": "question_start", "timestamp": "2024-01-05T09:00:05Z", "data": {"question_id": 1, "question_index": 0, "page": 0}},
        {"activity_type": "fullscreen_exit", "timestamp": "2024-01-05T09:00:10Z", "data": {"page": 0}},
        {"activity_type": "fullscreen_enter", "timestamp": "2024-01-05T09:00:14Z", "data": {"offscreen_duration": 4000}},
        {"activity_type": "question_end", "timestamp": "2024-01-05T09:00:20Z", "data": {"question_id": 1, "question_index": 0}},
        {"activity_type": "page_change", "timestamp": "2024-01-05T09:00:25Z", "data": {"from_page": 0, "to_page": 1}},
        {"activity_type": "test_submit", "timestamp": "2024-01-05T09:01:00Z", "data": {"total_answered": 3, "total_questions": 3}},
    ]


class TestHealthEndpoint:
    """Integration tests for the health endpoint."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["environment"] == "test"


class TestScoringEndpoint:
    """Integration tests for the scoring endpoint."""

    def test_score_assignment(self, client, assignment_payload, catalog_payload, answers_payload):
        """Test a successful score breakdown."""
        # Arrange
        request_data = {"assignment": assignment_payload, "answers": answers_payload, **catalog_payload}

        # Act
        response = client.post(f"{API}/scoring/score", json=request_data)

        # Assert
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        # Curiosity 75, imagination reversed 2 -> 4 = 75, team work 100
        assert data["domain_scores"] == {"openness": 75.0, "team_work": 100.0}
        assert data["overall_score"] == 87.5
        assert data["total_questions"] == 3
        assert data["total_answered"] == 3
        assert [s["subdomain_name"] for s in data["subdomain_scores"]] == ["Curiosity", "Imagination"]

    def test_invalid_scale(self, client, assignment_payload, catalog_payload):
        """Test a one point scale is reported as 422."""
        catalog_payload["questions"].append({"question_id": 9, "domain_id": 2, "likert_points": 1})
        request_data = {"assignment": assignment_payload, "answers": [], **catalog_payload}

        response = client.post(f"{API}/scoring/score", json=request_data)

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "INVALID_QUESTION_SCALE"
        assert error["details"]["question_id"] == 9

    def test_foreign_answers(self, client, assignment_payload, catalog_payload):
        """Test answers of another assignment are a bad request."""
        answers = [{"question_id": 1, "assignment_id": 99, "raw_value": 3}]
        request_data = {"assignment": assignment_payload, "answers": answers, **catalog_payload}

        response = client.post(f"{API}/scoring/score", json=request_data)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_inconsistent_assignment(self, client, assignment_payload, catalog_payload):
        """Test records breaking lifecycle invariants fail request validation."""
        assignment_payload.pop("start_time")
        request_data = {"assignment": assignment_payload, "answers": [], **catalog_payload}

        response = client.post(f"{API}/scoring/score", json=request_data)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "REQUEST_VALIDATION_ERROR"


class TestAnalyticsEndpoint:
    """Integration tests for the analytics endpoint."""

    def test_reduce(self, client, activity_log_payload):
        """Test analytics are returned with camelCase keys and pacing statistics."""
        response = client.post(f"{API}/analytics/reduce", json={"activity_log": activity_log_payload})

        assert response.status_code == 200
        data = response.json()["data"]
        analytics = data["analytics"]
        assert analytics["totalDuration"] == 60000
        assert analytics["offscreenTime"] == 4000
        assert analytics["activeTime"] == 56000
        assert analytics["fullscreenViolations"] == 1
        assert analytics["totalPages"] == 2
        assert analytics["pageTimes"] == {"0": 25000, "1": 35000}
        assert analytics["questionTimes"]["1"]["time_spent"] == 15000
        assert analytics["questionTimes"]["1"]["view_count"] == 1
        assert len(analytics["activityLog"]) == len(activity_log_payload)
        assert analytics["activityLog"][2]["severity"] == "critical"
        assert data["timing_summary"]["bucket_counts"] == {"fast": 0, "normal": 1, "slow": 0}
        assert data["insights"]["consistency"] == 100

    def test_missing_test_start(self, client, activity_log_payload):
        response = client.post(f"{API}/analytics/reduce", json={"activity_log": activity_log_payload[1:]})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "MALFORMED_LOG"

    def test_unknown_activity_type(self, client, activity_log_payload):
        activity_log_payload.append({"activity_type": "tab_switch", "timestamp": "2024-01-05T09:02:00Z", "data": {}})

        response = client.post(f"{API}/analytics/reduce", json={"activity_log": activity_log_payload})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "UNKNOWN_ACTIVITY_TYPE"


class TestAvailabilityEndpoint:
    """Integration tests for the availability endpoint."""

    def test_available(self, client):
        request_data = {
            "scheduled_date": "2024-01-01T00:00:00Z",
            "expiry_date": "2024-01-10T00:00:00Z",
            "completion_status": "not_started",
            "now": "2024-01-05T00:00:00Z",
        }

        response = client.post(f"{API}/assignments/availability", json=request_data)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["is_available"] is True
        assert data["reason"] == "available"
        assert data["time_remaining"]["tier"] == "normal"
        assert data["time_remaining"]["label"] == "5 days 0 hours remaining"

    def test_expired(self, client):
        request_data = {
            "scheduled_date": "2024-01-01T00:00:00Z",
            "expiry_date": "2024-01-10T00:00:00Z",
            "completion_status": "started",
            "now": "2024-01-11T00:00:00Z",
        }

        data = client.post(f"{API}/assignments/availability", json=request_data).json()["data"]

        assert data["is_available"] is False
        assert data["reason"] == "expired"
        assert data["time_remaining"]["is_expired"] is True

    def test_invalid_date(self, client):
        request_data = {
            "scheduled_date": "soon",
            "expiry_date": "2024-01-10T00:00:00Z",
            "completion_status": "started",
        }

        response = client.post(f"{API}/assignments/availability", json=request_data)

        assert response.status_code == 400


class TestBatchResultsEndpoint:
    """Integration tests for batch results."""

    def test_failure_is_scoped_to_one_assignment(
        self, client, assignment_payload, catalog_payload, answers_payload, activity_log_payload
    ):
        """Test a broken activity log does not fail the other assignments."""
        broken = dict(assignment_payload, assignment_id=43, candidate_id="cand-43")
        request_data = {
            **catalog_payload,
            "assignments": [
                {"assignment": assignment_payload, "answers": answers_payload, "activity_log": activity_log_payload},
                {"assignment": broken, "answers": [], "activity_log": activity_log_payload[1:]},
            ],
        }

        response = client.post(f"{API}/results/batch", json=request_data)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["failed_count"] == 1
        good, bad = data["results"]
        assert good["success"] is True
        assert good["score"]["overall_score"] == 87.5
        assert good["analytics"]["analytics"]["totalDuration"] == 60000
        assert bad["success"] is False
        assert bad["assignment_id"] == 43
        assert bad["error"] == {
            "message": "Unable to compute detailed results for this assignment",
            "code": "MALFORMED_LOG",
        }

    @pytest.mark.parametrize(
        "break_item",
        [
            lambda item: item["answers"][0].update(raw_value=0),
            lambda item: item["assignment"].update(completion_status="completed"),
            lambda item: item["assignment"].pop("test_id"),
        ],
        ids=["answer_below_scale", "completed_without_end_time", "missing_field"],
    )
    def test_invalid_record_is_scoped_to_one_assignment(
        self, client, assignment_payload, catalog_payload, answers_payload, break_item
    ):
        """Test an invalid record next to a valid one only fails its own entry."""
        broken = {
            "assignment": dict(assignment_payload, assignment_id=43, candidate_id="cand-43"),
            "answers": [dict(answer, assignment_id=43) for answer in answers_payload],
        }
        break_item(broken)
        request_data = {
            **catalog_payload,
            "assignments": [{"assignment": assignment_payload, "answers": answers_payload}, broken],
        }

        response = client.post(f"{API}/results/batch", json=request_data)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["failed_count"] == 1
        good, bad = data["results"]
        assert good["success"] is True
        assert good["score"]["overall_score"] == 87.5
        assert bad["assignment_id"] == 43
        assert bad["error"]["code"] == "VALIDATION_ERROR"


class TestErrorMapping:
    """Test status codes of engine errors."""

    @pytest.mark.parametrize(
        "error, status_code",
        [
            (InvalidTransition("x"), 409),
            (MalformedLog("x"), 422),
            (InvalidQuestionScale("x"), 422),
            (UnknownActivityType("x"), 422),
            (ValidationError("x"), 400),
            (AssessmentError("x"), 500),
        ],
    )
    def test_status_code_for(self, error, status_code):
        assert status_code_for(error) == status_code

    def test_request_id_round_trip(self, client):
        """Test a valid client request ID is echoed back."""
        request_id = "0f8fad5b-d9cb-469f-a165-70867728950e"

        response = client.get("/health", headers={"X-Request-ID": request_id})

        assert response.headers["X-Request-ID"] == request_id

    def test_request_id_generated(self, client):
        response = client.get("/health", headers={"X-Request-ID": "short"})

        assert response.headers["X-Request-ID"] != "short"
        assert len(response.headers["X-Request-ID"]) == 36

    def test_error_carries_request_id(self, client, activity_log_payload):
        request_id = "0f8fad5b-d9cb-469f-a165-70867728950e"

        response = client.post(
            f"{API}/analytics/reduce",
            json={"activity_log": activity_log_payload[1:]},
            headers={"X-Request-ID": request_id},
        )

        assert response.json()["error"]["request_id"] == request_id

    def test_error_log_carries_exception_chain(self, client, caplog):
        """Test engine errors are logged with their underlying causes."""
        request_data = {
            "scheduled_date": "soon",
            "expiry_date": "2024-01-10T00:00:00Z",
            "completion_status": "started",
        }

        with caplog.at_level(logging.WARNING, logger="assessment_engine.api"):
            client.post(f"{API}/assignments/availability", json=request_data)

        record = next(r for r in caplog.records if r.getMessage().startswith("Engine error"))
        assert [link["type"] for link in record.exception_chain] == ["ValidationError", "ValueError"]
