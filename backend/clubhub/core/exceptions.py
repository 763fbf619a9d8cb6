"""Custom exceptions for application-specific error handling."""

from __future__ import annotations

from typing import Optional, Dict, Any


class ClubHubException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class NotFoundError(ClubHubException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "not_found", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="NOT_FOUND", details=details, status_code=404)


class RateLimitExceeded(ClubHubException):
    """Raised when a client exceeds rate limits."""

    def __init__(self, *, retry_after: int, limit: int, window_seconds: int):
        headers = {
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Window": str(window_seconds),
        }
        super().__init__(
            "rate_limit_exceeded",
            error_code="RATE_LIMIT",
            details={"retry_after": retry_after, "limit": limit, "window_seconds": window_seconds},
            status_code=429,
            headers=headers,
        )


# ===== VALIDATION EXCEPTIONS =====


class ValidationException(ClubHubException):
    """Base exception for validation errors."""


class InvalidRequestError(ValidationException):
    """Raised when a compose or mailbox request fails validation."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, error_code="VALIDATION_ERROR", details=details, status_code=422)


# ===== DATABASE EXCEPTIONS =====


class DatabaseException(ClubHubException):
    """Base exception for database errors."""


class StoreUnavailableError(DatabaseException):
    """Raised when the notification store cannot complete an operation."""

    def __init__(self, message: str = "store_unavailable", *, operation: Optional[str] = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message, error_code="STORE_UNAVAILABLE", details=details, status_code=503)


# ===== AUTHENTICATION/AUTHORIZATION EXCEPTIONS =====


class AuthenticationException(ClubHubException):
    """Base exception for authentication errors."""


class NotAuthenticatedError(AuthenticationException):
    """Raised when no viewer identity accompanies the call."""

    def __init__(self, message: str = "not_authenticated"):
        super().__init__(message, error_code="NOT_AUTHENTICATED", status_code=401)


class ExpiredTokenError(AuthenticationException):
    """Raised when token has expired."""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message, error_code="EXPIRED_TOKEN", status_code=401)


class InsufficientPermissionsError(AuthenticationException):
    """Raised when user lacks required permissions."""

    def __init__(self, message: str = "forbidden", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="FORBIDDEN", details=details, status_code=403)
