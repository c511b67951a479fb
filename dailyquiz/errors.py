"""
dailyquiz/errors.py
Centralized error handling

All business-rule rejections are APIError subclasses raised by services and
rendered by a single exception handler. They are expected, recoverable by
the caller and never process-fatal. Only an unreachable database is
reported as an infrastructure failure (503).

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}
"""

import logging
import uuid
from typing import Optional, Dict, Any

from fastapi import status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_EXPIRED = "AUTH_EXPIRED"
    AUTH_INVALID = "AUTH_INVALID"
    FORBIDDEN = "FORBIDDEN"

    NOT_FOUND = "NOT_FOUND"
    QUESTION_NOT_FOUND = "QUESTION_NOT_FOUND"
    QUESTION_NOT_OPEN = "QUESTION_NOT_OPEN"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"

    ALREADY_SUBMITTED = "ALREADY_SUBMITTED"
    SUBMISSION_CONFLICT = "SUBMISSION_CONFLICT"
    NAME_DEVICE_CONFLICT = "NAME_DEVICE_CONFLICT"
    BANNED = "BANNED"
    DEVICE_MISMATCH = "DEVICE_MISMATCH"
    DELETE_BLOCKED = "DELETE_BLOCKED"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class UnauthorizedError(APIError):
    """401 Unauthorized - Authentication required"""
    def __init__(self, message: str = "Authentication required", code: str = ErrorCode.AUTH_REQUIRED):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="Unauthorized",
            message=message,
            code=code
        )


class ForbiddenError(APIError):
    """403 Forbidden - Access denied"""
    def __init__(self, message: str, code: str = ErrorCode.FORBIDDEN, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error="Forbidden",
            message=message,
            code=code,
            details=details
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=code,
            details={"id": identifier} if identifier is not None else None
        )


class ConflictError(APIError):
    """409 Conflict - Request clashes with stored state"""
    def __init__(self, message: str, code: str, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error="Conflict",
            message=message,
            code=code,
            details=details
        )


# =============================================================================
# Domain errors
# =============================================================================

class QuestionNotFoundError(NotFoundError):
    def __init__(self, question_id: int):
        self.question_id = question_id
        super().__init__("Question", question_id, ErrorCode.QUESTION_NOT_FOUND)


class ParticipantNotFoundError(NotFoundError):
    def __init__(self, participant_id: int):
        self.participant_id = participant_id
        super().__init__("Participant", participant_id, ErrorCode.PARTICIPANT_NOT_FOUND)


class AlreadySubmittedError(ConflictError):
    """Second submission for a (participant, question) pair. Not retried."""
    def __init__(self, participant_id: int, question_id: int):
        self.participant_id = participant_id
        self.question_id = question_id
        super().__init__(
            "Already submitted",
            ErrorCode.ALREADY_SUBMITTED,
            {"participant_id": participant_id, "question_id": question_id}
        )


class SubmissionConflictError(ConflictError):
    """Answer order could not be assigned after the configured retries."""
    def __init__(self, question_id: int, attempts: int):
        super().__init__(
            "Too many concurrent submissions, please submit again",
            ErrorCode.SUBMISSION_CONFLICT,
            {"question_id": question_id, "attempts": attempts}
        )


class NameDeviceConflictError(ForbiddenError):
    """Name and device are bound to different participants."""
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.NAME_DEVICE_CONFLICT)


class QuestionNotOpenError(ForbiddenError):
    """Question exists but its slot has not opened yet."""
    def __init__(self, question_id: int):
        self.question_id = question_id
        super().__init__(
            "This question is not open yet.",
            ErrorCode.QUESTION_NOT_OPEN,
            {"question_id": question_id}
        )


class DeviceMismatchError(ForbiddenError):
    def __init__(self):
        super().__init__("This device is not registered to you.", ErrorCode.DEVICE_MISMATCH)


class BannedError(ForbiddenError):
    def __init__(self, participant_id: Optional[int] = None):
        super().__init__(
            "You are banned from this competition.",
            ErrorCode.BANNED,
            {"participant_id": participant_id} if participant_id is not None else None
        )


class DeleteBlockedError(ConflictError):
    """Question still referenced by submissions; dependents must be deleted first."""
    def __init__(self, question_id: int, submission_count: int):
        self.question_id = question_id
        self.submission_count = submission_count
        super().__init__(
            f"Question {question_id} has {submission_count} submission(s); delete them first",
            ErrorCode.DELETE_BLOCKED,
            {"question_id": question_id, "submission_count": submission_count}
        )


def service_unavailable_response(error: Exception, context: str = "") -> JSONResponse:
    """Log a storage failure with a short id and build a safe 503 response"""
    log_id = str(uuid.uuid4())[:8]
    logger.error(f"[{log_id}] Storage unavailable in {context}: {type(error).__name__}: {str(error)}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "success": False,
            "error": "Service Unavailable",
            "message": "The database is temporarily unavailable. Please try again later.",
            "code": ErrorCode.SERVICE_UNAVAILABLE,
            "details": {"log_id": log_id}
        }
    )
