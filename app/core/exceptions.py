"""
Custom exception classes for Ledgerflow Backend.
"""
from typing import Any, Dict, Optional


class LedgerflowException(Exception):
    """Base exception class for Ledgerflow application."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class AuthenticationError(LedgerflowException):
    """Raised when authentication fails."""

    def __init__(
        self,
        message: str = "Authentication failed",
        code: str = "AUTHENTICATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=401, details=details)


class AuthorizationError(LedgerflowException):
    """Raised when a user doesn't have permission."""

    def __init__(
        self,
        message: str = "Not authorized",
        code: str = "AUTHORIZATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=403, details=details)


class BadRequestError(LedgerflowException):
    """Raised when a request is malformed (missing form fields, wrong content type)."""

    def __init__(
        self,
        message: str = "Bad request",
        code: str = "BAD_REQUEST",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=400, details=details)


class NotFoundError(LedgerflowException):
    """Raised when a resource is not found."""

    def __init__(
        self,
        message: str = "Resource not found",
        code: str = "NOT_FOUND",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=404, details=details)


class ConflictError(LedgerflowException):
    """Raised when a resource already exists."""

    def __init__(
        self,
        message: str = "Resource already exists",
        code: str = "CONFLICT",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=409, details=details)


class PayloadTooLargeError(LedgerflowException):
    """Raised when an uploaded file exceeds the configured size limit."""

    def __init__(
        self,
        message: str = "Uploaded file is too large",
        code: str = "PAYLOAD_TOO_LARGE",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=413, details=details)


class StagingError(LedgerflowException):
    """Raised when an uploaded file cannot be moved to its staged location."""

    def __init__(
        self,
        message: str = "Failed to stage uploaded file",
        code: str = "STAGING_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=500, details=details)


class InvalidTransitionError(LedgerflowException):
    """Raised when an import job is moved to a state it cannot reach."""

    def __init__(
        self,
        message: str = "Invalid import job status transition",
        code: str = "INVALID_TRANSITION",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=409, details=details)
