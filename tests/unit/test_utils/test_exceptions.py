"""Unit tests for the engine exception hierarchy."""

import pytest

from assessment_engine.utils.exceptions import (
    AssessmentError,
    InvalidQuestionScale,
    InvalidTransition,
    MalformedLog,
    UnknownActivityType,
    ValidationError,
    create_error_response,
    handle_exception_chain,
)


class TestAssessmentErrors:
    """Test error construction and serialization."""

    @pytest.mark.parametrize(
        "error, code",
        [
            (ValidationError("bad"), "VALIDATION_ERROR"),
            (InvalidTransition("no"), "INVALID_TRANSITION"),
            (MalformedLog("broken"), "MALFORMED_LOG"),
            (InvalidQuestionScale("scale"), "INVALID_QUESTION_SCALE"),
            (UnknownActivityType("scroll"), "UNKNOWN_ACTIVITY_TYPE"),
        ],
    )
    def test_error_codes(self, error, code):
        """Test every error is an AssessmentError with its own code."""
        assert isinstance(error, AssessmentError)
        assert error.error_code == code

    def test_invalid_transition_details(self):
        error = InvalidTransition("Cannot start", assignment_id=5, current_status="completed", action="start")

        assert error.details == {"assignment_id": 5, "current_status": "completed", "action": "start"}
        assert "Code: INVALID_TRANSITION" in str(error)

    def test_unknown_activity_type_message(self):
        error = UnknownActivityType("scroll")

        assert error.message == "Unknown activity type: 'scroll'"
        assert error.details == {"activity_type": "scroll"}

    def test_to_dict_includes_cause(self):
        cause = ValueError("bad timestamp")
        error = MalformedLog("Broken log", entry_index=3, cause=cause)

        data = error.to_dict()

        assert data["error_type"] == "MalformedLog"
        assert data["details"] == {"entry_index": 3}
        assert data["cause"] == "bad timestamp"

    def test_create_error_response(self):
        error = ValidationError("Bad value", field="raw_value", value=9)

        response = create_error_response(error, request_id="req-1")

        assert response == {
            "success": False,
            "error": {
                "type": "ValidationError",
                "message": "Bad value",
                "code": "VALIDATION_ERROR",
                "details": {"field": "raw_value", "value": 9},
                "request_id": "req-1",
            },
        }

    def test_create_error_response_without_details(self):
        response = create_error_response(ValidationError("Bad value", field="raw_value"), include_details=False)

        assert "details" not in response["error"]
        assert "request_id" not in response["error"]

    def test_handle_exception_chain(self):
        root = ValueError("root cause")
        error = MalformedLog("Broken log", cause=root)

        chain = handle_exception_chain(error)

        assert [link["type"] for link in chain] == ["MalformedLog", "ValueError"]
        assert chain[0]["error_code"] == "MALFORMED_LOG"
