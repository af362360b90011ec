"""Custom exceptions for the Notes MCP server.

Provides a structured exception hierarchy with error codes and
machine-readable error information for better error handling.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_VALIDATION_FAILED = 1002
    NOTE_ALREADY_EXISTS = 1003
    NOTE_TITLE_REQUIRED = 1004

    # Folder errors (2xxx)
    FOLDER_ALREADY_EXISTS = 2001
    FOLDER_NAME_REQUIRED = 2002

    # Tag errors (3xxx)
    TAG_INVALID = 3001

    # Storage errors (4xxx)
    CONSTRAINT_VIOLATION = 4001
    REFERENCE_VIOLATION = 4002

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001
    INVALID_PRIORITY = 7002
    INVALID_SORT_FIELD = 7003
    INVALID_SORT_ORDER = 7004
    INVALID_SEARCH_FIELD = 7005


class NotesError(Exception):
    """Base exception for all Notes errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class NoteNotFoundError(NotesError):
    """Raised by the service layer when a looked-up note is absent.

    Repositories never raise this; they return None or False and leave
    the interpretation to their caller.
    """

    def __init__(self, identifier: Any, message: Optional[str] = None):
        super().__init__(
            message or f"Note '{identifier}' not found",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"identifier": str(identifier)[:100]}
        )
        self.identifier = identifier


class ConstraintViolationError(NotesError):
    """Raised when a write breaks a uniqueness or integrity rule.

    Covers duplicate note titles, duplicate folder names and tags that
    reference a note which does not exist. The write is rolled back
    before this is raised.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.CONSTRAINT_VIOLATION,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]  # Truncate for safety
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value
        self.original_error = original_error


class ValidationError(NotesError):
    """Raised for general validation errors at the request boundary."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value
