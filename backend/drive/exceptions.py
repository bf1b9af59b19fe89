"""Domain errors raised by services and routes.

Every error carries a stable ``ErrorCode`` and the HTTP status it is reported
with; ``drive.error_handlers`` turns them into JSON responses.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    SERVER_ERROR = "SERVER_ERROR"


class DriveError(Exception):
    """Base class for errors that map to a structured JSON response."""

    error_code: ErrorCode = ErrorCode.SERVER_ERROR
    status_code: int = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[ErrorCode] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}


class ValidationError(DriveError):
    """Missing or malformed request fields."""
    error_code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class AuthenticationError(DriveError):
    """Bad credentials or an invalid bearer token."""
    error_code = ErrorCode.AUTHENTICATION_FAILED
    status_code = 401


class AuthorizationError(DriveError):
    error_code = ErrorCode.FORBIDDEN
    status_code = 403


class NotFoundError(DriveError):
    """Row is missing or owned by someone else. Reported as a bad request."""
    error_code = ErrorCode.NOT_FOUND
    status_code = 400

    def __init__(self, resource: str, identifier: Optional[str] = None, **kwargs):
        message = f"{resource} not found"
        if identifier:
            message += f": {identifier}"
        super().__init__(message, **kwargs)


class PersistenceError(DriveError):
    """Insert, update or delete against the database failed."""
    error_code = ErrorCode.PERSISTENCE_ERROR
    status_code = 400


class StorageError(DriveError):
    """Blob put or remove failed."""
    error_code = ErrorCode.STORAGE_ERROR
    status_code = 500


class UnexpectedError(DriveError):
    error_code = ErrorCode.SERVER_ERROR
    status_code = 500
