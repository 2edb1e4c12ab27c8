"""
Custom Exceptions for the Review Dashboard

This module defines the exception taxonomy used across ingestion, moderation
and the public read path. Every exception carries an error code and an HTTP
status so the API layer can render it without inspecting its type.
"""

from typing import Any, Dict, List, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable codes carried in every error envelope"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # Authentication & Authorization
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    AUTHORIZATION_FAILED = "AUTHORIZATION_FAILED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_INVALID = "TOKEN_INVALID"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"

    # Review domain
    REVIEW_NOT_FOUND = "REVIEW_NOT_FOUND"
    LISTING_NOT_FOUND = "LISTING_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"

    # External service errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"

    # Throttling
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


class BaseAppException(Exception):
    """
    Root of every error the API renders itself.

    Carries the code, HTTP status and details that the exception handlers
    turn into the ``{success: false, ...}`` envelope.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the API error envelope"""
        return {
            "success": False,
            "message": self.message,
            "error": {
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# General Application Exceptions
# ========================================

class ValidationError(BaseAppException):
    """Bad input: filters, moderation bodies, a reject without reason"""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, List[str]]] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        status_code: int = 422
    ):
        details = {"field_errors": field_errors} if field_errors else {}
        super().__init__(message, error_code, details, status_code)


class ResourceNotFoundError(BaseAppException):
    """Unknown id for a stored entity"""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[Any] = None,
        message: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id is not None:
                message += f" (ID: {resource_id})"

        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, error_code, details, 404)


class ReviewNotFoundError(ResourceNotFoundError):
    """Exception raised when a review id is unknown"""

    def __init__(self, review_id: Any, message: Optional[str] = None):
        super().__init__("Review", review_id, message, ErrorCode.REVIEW_NOT_FOUND)


class ListingNotFoundError(ResourceNotFoundError):
    """Exception raised when a listing id is unknown"""

    def __init__(self, listing_id: Any, message: Optional[str] = None):
        super().__init__("Listing", listing_id, message, ErrorCode.LISTING_NOT_FOUND)


class InvalidTransitionError(BaseAppException):
    """Exception raised for a moderation change the current state forbids"""

    def __init__(
        self,
        review_id: Any,
        current_status: str,
        action: str,
        message: Optional[str] = None
    ):
        if not message:
            message = f"Cannot {action} a review that is {current_status}"
        details = {
            "review_id": review_id,
            "current_status": current_status,
            "action": action
        }
        super().__init__(message, ErrorCode.INVALID_TRANSITION, details, 409)


# ========================================
# Authentication & Authorization Exceptions
# ========================================

class AuthenticationError(BaseAppException):
    """Missing or unusable manager credentials"""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.AUTHENTICATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code, details, 401)


class AuthorizationError(BaseAppException):
    """Authenticated, but without the manager role"""

    def __init__(
        self,
        message: str = "Access denied",
        required_role: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.AUTHORIZATION_FAILED
    ):
        details = {"required_role": required_role} if required_role else {}
        super().__init__(message, error_code, details, 403)


class TokenExpiredError(AuthenticationError):
    """Bearer token past its expiry"""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message, ErrorCode.TOKEN_EXPIRED)


class InvalidTokenError(AuthenticationError):
    """Bearer token that does not decode or verify"""

    def __init__(self, message: str = "Invalid token", reason: Optional[str] = None):
        details = {"reason": reason} if reason else {}
        super().__init__(message, ErrorCode.TOKEN_INVALID, details)


# ========================================
# Database Exceptions
# ========================================

class DatabaseError(BaseAppException):
    """Store failure that retrying will not fix"""

    def __init__(
        self,
        message: str = "Database operation failed",
        operation: Optional[str] = None,
        table: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        status_code: int = 500
    ):
        details = {
            "operation": operation,
            "table": table
        }
        super().__init__(message, error_code, details, status_code)


class TransientStoreError(DatabaseError):
    """Connection or timeout failure talking to the store; safe to retry"""

    def __init__(
        self,
        message: str = "Database temporarily unavailable",
        operation: Optional[str] = None,
        attempts: Optional[int] = None
    ):
        super().__init__(
            message,
            operation=operation,
            error_code=ErrorCode.CONNECTION_ERROR,
            status_code=503
        )
        if attempts is not None:
            self.details["attempts"] = attempts


class DuplicateEntryError(DatabaseError):
    """Unique constraint hit, e.g. a second first-run manager"""

    def __init__(
        self,
        message: str = "Duplicate entry",
        field: Optional[str] = None,
        table: Optional[str] = None
    ):
        super().__init__(message, table=table, error_code=ErrorCode.DUPLICATE_ENTRY, status_code=409)
        if field:
            self.details["field"] = field


# ========================================
# External Service Exceptions
# ========================================

class ExternalServiceError(BaseAppException):
    """Exception raised when calls to a review source fail"""

    def __init__(
        self,
        message: str = "External service error",
        service_name: Optional[str] = None,
        endpoint: Optional[str] = None,
        status_code: int = 502
    ):
        details = {
            "service_name": service_name,
            "endpoint": endpoint
        }
        super().__init__(message, ErrorCode.EXTERNAL_SERVICE_ERROR, details, status_code)


# ========================================
# Rate Limiting Exceptions
# ========================================

class RateLimitExceededError(BaseAppException):
    """Request over its rate limit; rendered as 429 with Retry-After"""

    def __init__(
        self,
        message: str = "Too many requests, please try again later",
        limit: Optional[int] = None,
        retry_after: Optional[int] = None,
        identifier: Optional[str] = None
    ):
        details = {
            "limit": limit,
            "retry_after": retry_after,
            "identifier": identifier
        }
        self.retry_after = retry_after
        super().__init__(message, ErrorCode.RATE_LIMIT_EXCEEDED, details, 429)


# ========================================
# Utility Functions
# ========================================

def create_validation_error(field_errors: Dict[str, List[str]]) -> ValidationError:
    """Wrap per-field messages (e.g. from pydantic) in a ValidationError"""
    total_errors = sum(len(errors) for errors in field_errors.values())
    message = f"Validation failed with {total_errors} error(s)"
    return ValidationError(message, field_errors)


__all__ = [
    'ErrorCode',
    'BaseAppException',
    'ValidationError',
    'ResourceNotFoundError',
    'ReviewNotFoundError',
    'ListingNotFoundError',
    'InvalidTransitionError',
    'AuthenticationError',
    'AuthorizationError',
    'TokenExpiredError',
    'InvalidTokenError',
    'DatabaseError',
    'TransientStoreError',
    'DuplicateEntryError',
    'ExternalServiceError',
    'RateLimitExceededError',
    'create_validation_error',
]
