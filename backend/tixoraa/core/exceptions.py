"""Custom exceptions for application-specific error handling."""

from __future__ import annotations

from typing import Optional, Dict, Any


class TixoraaException(Exception):
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


class NotFoundError(TixoraaException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "not_found", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="NOT_FOUND", details=details, status_code=404)


class RateLimitExceeded(TixoraaException):
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


class ValidationException(TixoraaException):
    """Base exception for input rejected before touching storage or network."""


class InvalidEmailError(ValidationException):
    """Raised when an email address is malformed."""

    def __init__(self, email: str):
        super().__init__(
            "invalid_email",
            error_code="INVALID_EMAIL",
            details={"email": email},
            status_code=422,
        )


class InvalidCodeFormatError(ValidationException):
    """Raised when a verification code is not six digits."""

    def __init__(self, message: str = "invalid_code_format"):
        super().__init__(message, error_code="INVALID_CODE_FORMAT", status_code=422)


class MissingLookupKeyError(ValidationException):
    """Raised when neither an email nor a user id identifies the code owner."""

    def __init__(self, message: str = "email_or_user_id_required"):
        super().__init__(message, error_code="MISSING_LOOKUP_KEY", status_code=422)


# ===== STORAGE EXCEPTIONS =====


class StorageError(TixoraaException):
    """Raised when the verification code store cannot be reached or queried."""

    def __init__(self, message: str = "storage_unavailable", *, operation: Optional[str] = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message, error_code="STORAGE_ERROR", details=details, status_code=503)


# ===== DELIVERY EXCEPTIONS =====


class DeliveryError(TixoraaException):
    """Raised inside the delivery layer when the email provider rejects a message.

    Never escapes the delivery adapter; it is converted into a failed
    delivery result so the stored code keeps existing.
    """

    def __init__(self, kind: str, message: str, *, status_code: Optional[int] = None, detail: str = ""):
        details: Dict[str, Any] = {"kind": kind}
        if status_code is not None:
            details["provider_status"] = status_code
        if detail:
            details["detail"] = detail
        super().__init__(message, error_code="DELIVERY_ERROR", details=details, status_code=502)
        self.kind = kind
        self.provider_status = status_code
        self.detail = detail


# ===== REDEMPTION EXCEPTIONS =====


class CodeRejectedError(TixoraaException):
    """Raised when a code cannot be redeemed.

    Wrong, expired and already-used codes all produce this same error.
    """

    def __init__(self, message: str = "invalid_or_expired_code"):
        super().__init__(message, error_code="INVALID_OR_EXPIRED_CODE", status_code=400)
