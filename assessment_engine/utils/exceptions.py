"""Custom exception classes for the assessment engine.

This module defines the hierarchy of errors raised by the assignment state
machine, the scoring engine and the activity reducer.
"""

from typing import Any, Dict, List, Optional


class AssessmentError(Exception):
    """Base exception class for all assessment engine errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """Initialize assessment error.

        Args:
            message: Error message
            error_code: Application-specific error code
            details: Additional error details
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary representation.

        Returns:
            Dict[str, Any]: Exception data
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.error_code:
            parts.append(f"Code: {self.error_code}")
        if self.details:
            parts.append(f"Details: {self.details}")
        return " | ".join(parts)


class ValidationError(AssessmentError):
    """Exception for input validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        validation_errors: Optional[List[str]] = None,
        **kwargs
    ):
        """Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            value: Invalid value
            validation_errors: List of specific validation errors
            **kwargs: Additional arguments for parent class
        """
        details = kwargs.get("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        if validation_errors:
            details["validation_errors"] = validation_errors

        kwargs["details"] = details
        kwargs.setdefault("error_code", "VALIDATION_ERROR")
        super().__init__(message, **kwargs)

        self.field = field
        self.value = value
        self.validation_errors = validation_errors or []


# Domain-specific exceptions

class InvalidTransition(AssessmentError):
    """Exception for assignment state machine misuse.

    Raised when ``start``, ``complete`` or an answer/activity write is
    attempted while the assignment is in a state that does not allow it.
    """

    def __init__(
        self,
        message: str,
        assignment_id: Optional[Any] = None,
        current_status: Optional[str] = None,
        action: Optional[str] = None,
        **kwargs
    ):
        """Initialize invalid transition error.

        Args:
            message: Error message
            assignment_id: Assignment ID
            current_status: Completion status at the time of the attempt
            action: Action that was rejected
            **kwargs: Additional arguments for parent class
        """
        details = kwargs.get("details", {})
        if assignment_id is not None:
            details["assignment_id"] = assignment_id
        if current_status:
            details["current_status"] = current_status
        if action:
            details["action"] = action

        kwargs["details"] = details
        kwargs.setdefault("error_code", "INVALID_TRANSITION")
        super().__init__(message, **kwargs)

        self.assignment_id = assignment_id
        self.current_status = current_status
        self.action = action


class MalformedLog(AssessmentError):
    """Exception for activity logs that cannot be reduced faithfully."""

    def __init__(
        self,
        message: str,
        entry_index: Optional[int] = None,
        activity_type: Optional[str] = None,
        **kwargs
    ):
        """Initialize malformed log error.

        Args:
            message: Error message
            entry_index: Position of the offending entry in the log
            activity_type: Activity type of the offending entry
            **kwargs: Additional arguments for parent class
        """
        details = kwargs.get("details", {})
        if entry_index is not None:
            details["entry_index"] = entry_index
        if activity_type:
            details["activity_type"] = activity_type

        kwargs["details"] = details
        kwargs.setdefault("error_code", "MALFORMED_LOG")
        super().__init__(message, **kwargs)

        self.entry_index = entry_index
        self.activity_type = activity_type


class InvalidQuestionScale(AssessmentError):
    """Exception for Likert scales that cannot be normalized."""

    def __init__(
        self,
        message: str,
        question_id: Optional[Any] = None,
        likert_points: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.get("details", {})
        if question_id is not None:
            details["question_id"] = question_id
        if likert_points is not None:
            details["likert_points"] = likert_points

        kwargs["details"] = details
        kwargs.setdefault("error_code", "INVALID_QUESTION_SCALE")
        super().__init__(message, **kwargs)

        self.question_id = question_id
        self.likert_points = likert_points


class UnknownActivityType(AssessmentError):
    """Exception for activity types outside the closed enumeration."""

    def __init__(self, activity_type: Any, **kwargs):
        details = kwargs.get("details", {})
        details["activity_type"] = activity_type

        kwargs["details"] = details
        kwargs.setdefault("error_code", "UNKNOWN_ACTIVITY_TYPE")
        super().__init__(f"Unknown activity type: {activity_type!r}", **kwargs)

        self.activity_type = activity_type


# Utility functions for error handling

def create_error_response(
    error: AssessmentError,
    include_details: bool = True,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    """Create standardized error response dictionary.

    Args:
        error: Assessment error instance
        include_details: Whether to include error details
        request_id: Request ID to echo back to the caller

    Returns:
        Dict[str, Any]: Error response dictionary
    """
    response = {
        "success": False,
        "error": {
            "type": error.__class__.__name__,
            "message": error.message,
            "code": error.error_code,
        }
    }

    if include_details and error.details:
        response["error"]["details"] = error.details

    if request_id:
        response["error"]["request_id"] = request_id

    return response


def handle_exception_chain(exception: Exception) -> List[Dict[str, Any]]:
    """Walk an exception chain and describe every link.

    Args:
        exception: Exception to process

    Returns:
        List[Dict[str, Any]]: List of error information
    """
    errors = []
    current_exception = exception

    while current_exception:
        error_info = {
            "type": current_exception.__class__.__name__,
            "message": str(current_exception),
        }

        if isinstance(current_exception, AssessmentError):
            error_info.update({
                "error_code": current_exception.error_code,
                "details": current_exception.details,
            })

        errors.append(error_info)

        if isinstance(current_exception, AssessmentError) and current_exception.cause:
            current_exception = current_exception.cause
        else:
            current_exception = getattr(current_exception, "__cause__", None)

    return errors


__all__ = [
    "AssessmentError",
    "ValidationError",
    "InvalidTransition",
    "MalformedLog",
    "InvalidQuestionScale",
    "UnknownActivityType",
    "create_error_response",
    "handle_exception_chain",
]
