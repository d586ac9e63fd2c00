from typing import Dict, Any, Optional
from datetime import datetime
from fastapi import status
from pydantic import BaseModel
from sqlalchemy.exc import DBAPIError, OperationalError
import logging

logger = logging.getLogger(__name__)


class BaseCustomException(Exception):
    """Base class for custom exceptions"""

    retryable = False

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code
        super().__init__(self.message)


class NotFoundError(BaseCustomException):
    """Exception for missing users, doctors, categories or appointments"""

    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
            error_code=error_code or "NOT_FOUND"
        )


class InvalidArgumentError(BaseCustomException):
    """Exception for malformed dates, times, steps, empty reasons and negative numbers"""

    def __init__(
        self,
        message: str = "Invalid argument",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
            error_code=error_code or "INVALID_ARGUMENT"
        )


class ConflictError(BaseCustomException):
    """Exception for uniqueness conflicts"""

    def __init__(
        self,
        message: str = "Resource conflict",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
            error_code=error_code or "CONFLICT"
        )


class SlotConflictError(ConflictError):
    """The requested doctor/date/time slot is already booked"""

    def __init__(
        self,
        message: str = "This time slot is already booked",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            details=details,
            error_code=error_code or "SLOT_CONFLICT"
        )


class InvalidTransitionError(BaseCustomException):
    """Exception for appointment lifecycle rule violations"""

    def __init__(
        self,
        message: str = "Invalid appointment status transition",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
            error_code=error_code or "INVALID_TRANSITION"
        )


class OutOfWindowError(BaseCustomException):
    """Exception for dates outside the booking window"""

    def __init__(
        self,
        message: str = "Date is outside the booking window",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            error_code=error_code or "OUT_OF_WINDOW"
        )


class UnauthorizedError(BaseCustomException):
    """Exception for role or ownership mismatches"""

    def __init__(
        self,
        message: str = "Access denied",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details,
            error_code=error_code or "UNAUTHORIZED"
        )


class UnavailableError(BaseCustomException):
    """Storage is unreachable or under maintenance; safe to retry with backoff"""

    retryable = True

    def __init__(
        self,
        message: str = "Storage unavailable",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details,
            error_code=error_code or "UNAVAILABLE"
        )


class DeadlineExceededError(BaseCustomException):
    """The caller's deadline passed before the unit of work could commit"""

    def __init__(
        self,
        message: str = "Deadline exceeded",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            details=details,
            error_code=error_code or "DEADLINE_EXCEEDED"
        )


# Response models for errors
class ErrorResponse(BaseModel):
    """Standard error response model"""
    error: str
    message: str
    error_code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    retryable: bool = False
    timestamp: Optional[str] = None
    request_id: Optional[str] = None


def create_error_response(
    exception: BaseCustomException,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    """Create standardized error response"""
    response = {
        "error": exception.__class__.__name__.replace("Error", " Error"),
        "message": exception.message,
        "error_code": exception.error_code,
        "retryable": exception.retryable,
        "timestamp": datetime.utcnow().isoformat(),
        "request_id": request_id
    }

    if exception.details:
        response["details"] = exception.details

    return response


_TIMEOUT_MARKERS = ("statement timeout", "canceling statement", "timed out", "timeout")
_UNAVAILABLE_MARKERS = ("database is locked", "could not connect", "connection", "server closed", "unable to open")


def handle_database_error(error: Exception, operation: str = "database operation") -> BaseCustomException:
    """Map a driver-level failure to DeadlineExceededError or UnavailableError"""
    logger.error(f"Database error during {operation}: {error}")

    text = str(error).lower()
    details = {"operation": operation, "original_error": str(error)}

    if any(marker in text for marker in _TIMEOUT_MARKERS):
        return DeadlineExceededError(
            message="Database operation timed out",
            details=details
        )

    if isinstance(error, OperationalError) or (
        isinstance(error, DBAPIError) and error.connection_invalidated
    ) or any(marker in text for marker in _UNAVAILABLE_MARKERS):
        return UnavailableError(
            message="Database connection failed",
            details=details
        )

    return BaseCustomException(
        message="Database operation failed",
        details=details,
        error_code="DATABASE_ERROR"
    )
