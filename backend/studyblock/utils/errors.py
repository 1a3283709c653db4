"""
Custom error classes for the application.
"""
from typing import Optional


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for response."""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class AuthError(AppError):
    """Authentication related errors."""

    def __init__(self, message: str, code: str = "AUTH_ERROR"):
        super().__init__(message, code, status_code=401)


class StoreError(AppError):
    """Supabase (PostgREST / GoTrue) request failed."""

    def __init__(self, message: str = "Couldn't reach the session store.", details: Optional[dict] = None):
        super().__init__(message, "STORE_ERROR", status_code=503, details=details)


class ContactResolutionError(AppError):
    """User or their email address could not be resolved."""

    def __init__(self, user_id: str, reason: str = "user not found"):
        super().__init__(
            f"Couldn't resolve contact for user '{user_id}': {reason}",
            "CONTACT_NOT_FOUND",
            status_code=404,
            details={"user_id": user_id},
        )


class EmailDeliveryError(AppError):
    """Email provider rejected or failed to accept a message."""

    def __init__(self, message: str = "Email delivery failed.", details: Optional[dict] = None):
        super().__init__(message, "EMAIL_DELIVERY_FAILED", status_code=502, details=details)


class RateLimitError(AppError):
    """Rate limit exceeded."""

    def __init__(self, message: str = "Too many requests. Please wait a moment."):
        super().__init__(message, "RATE_LIMITED", status_code=429)
