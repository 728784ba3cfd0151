"""
Custom exceptions for the SportBoard engine.

This module defines a hierarchy of exceptions used by the storage layer,
the import path and the exporter. Each exception includes:
- A descriptive message
- An error code
- Optional details for debugging

Analyzers never raise these to their callers for missing or insufficient
data; they return explanatory empty results instead.
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for consistent error reporting."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Data/Database errors
    REPOSITORY_ERROR = "REPOSITORY_ERROR"
    ACTIVITY_NOT_FOUND = "ACTIVITY_NOT_FOUND"
    INVALID_RECORD = "INVALID_RECORD"

    # Export errors
    EXPORT_ERROR = "EXPORT_ERROR"


class SportBoardError(Exception):
    """
    Base exception for all SportBoard errors.

    Attributes:
        message: Human-readable error message
        code: Error code from ErrorCode enum
        details: Optional dictionary with additional error details
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured output."""
        result: Dict[str, Any] = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


# ============================================================================
# Validation Errors
# ============================================================================

class PayloadValidationError(SportBoardError):
    """Raised when an import payload cannot be parsed."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            details=error_details,
        )


class InvalidRecordError(SportBoardError):
    """Raised when a stored record breaks a data invariant (e.g. negative distance)."""

    def __init__(self, record_id: Any, reason: str) -> None:
        super().__init__(
            message=f"Invalid record {record_id}: {reason}",
            code=ErrorCode.INVALID_RECORD,
            details={"record_id": record_id, "reason": reason},
        )
        self.record_id = record_id
        self.reason = reason


# ============================================================================
# Repository Errors
# ============================================================================

class RepositoryError(SportBoardError):
    """Raised when the activity repository fails to read or write."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if operation:
            error_details["operation"] = operation
        super().__init__(
            message=message,
            code=ErrorCode.REPOSITORY_ERROR,
            details=error_details,
        )


class ActivityNotFoundError(RepositoryError):
    """Raised when an activity cannot be found."""

    def __init__(self, activity_id: int) -> None:
        super().__init__(
            message=f"Activity not found: {activity_id}",
            details={"activity_id": activity_id},
        )
        self.code = ErrorCode.ACTIVITY_NOT_FOUND


# ============================================================================
# Export Errors
# ============================================================================

class ExportError(SportBoardError):
    """Raised when an export document cannot be written."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
    ) -> None:
        details = {"path": path} if path else {}
        super().__init__(
            message=message,
            code=ErrorCode.EXPORT_ERROR,
            details=details,
        )
