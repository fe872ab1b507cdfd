"""
Custom Exception Classes for DataManager

This module defines custom exceptions for better error handling and
consistent error responses across the application.

Rows hidden by authorization are reported exactly like missing rows,
so there is no separate "access denied" error for data.
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in the error envelope."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    AUTH_FAILED = "AUTH_FAILED"
    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_DATA_SET_NOT_FOUND = "RESOURCE_DATA_SET_NOT_FOUND"
    RESOURCE_TRANSLATION_NOT_FOUND = "RESOURCE_TRANSLATION_NOT_FOUND"
    RESOURCE_LOG_NOT_FOUND = "RESOURCE_LOG_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    VALIDATION_DUPLICATE_RESOURCE = "VALIDATION_DUPLICATE_RESOURCE"
    DATABASE_ERROR = "DATABASE_ERROR"


class DataManagerError(Exception):
    """Base exception class for all DataManager exceptions"""

    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)


# ============================================================================
# Authentication Exceptions
# ============================================================================


class AuthenticationError(DataManagerError):
    """Raised when the bearer token cannot be validated"""

    error_code = ErrorCode.AUTH_FAILED

    def __init__(self, message: str = "Authentication failed", details: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED, details=details or {})


class InvalidTokenError(AuthenticationError):
    """Raised when JWT token is invalid or expired"""

    error_code = ErrorCode.AUTH_INVALID_TOKEN

    def __init__(self, message: str = "Invalid or malformed token"):
        super().__init__(message=message)


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(DataManagerError):
    """Base class for resource not found errors"""

    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": str(resource_id) if resource_id else None},
        )


class DataSetNotFoundError(ResourceNotFoundError):
    error_code = ErrorCode.RESOURCE_DATA_SET_NOT_FOUND

    def __init__(self, data_set_id: Any | None = None):
        super().__init__(resource_type="DataSet", resource_id=data_set_id)


class TranslationNotFoundError(ResourceNotFoundError):
    error_code = ErrorCode.RESOURCE_TRANSLATION_NOT_FOUND

    def __init__(self, translation_id: Any | None = None):
        super().__init__(resource_type="Translation", resource_id=translation_id)


class LogNotFoundError(ResourceNotFoundError):
    error_code = ErrorCode.RESOURCE_LOG_NOT_FOUND

    def __init__(self, log_id: Any | None = None):
        super().__init__(resource_type="Log", resource_id=log_id)


# ============================================================================
# Validation & Conflict Exceptions
# ============================================================================


class ValidationError(DataManagerError):
    """Raised when input validation fails"""

    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=error_details)


class DuplicateResourceError(DataManagerError):
    """Raised when a write collides with an existing unique row"""

    error_code = ErrorCode.VALIDATION_DUPLICATE_RESOURCE

    def __init__(self, resource_type: str, field: str, value: Any):
        super().__init__(
            message=f"{resource_type} with {field} '{value}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource_type": resource_type, "field": field, "value": value},
        )


# ============================================================================
# Database Exceptions
# ============================================================================


class DatabaseError(DataManagerError):
    """Raised when a database operation fails"""

    error_code = ErrorCode.DATABASE_ERROR

    def __init__(self, message: str = "A database error occurred", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)
