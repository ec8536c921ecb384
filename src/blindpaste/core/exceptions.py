"""
Custom exceptions for BlindPaste service.

Every handler failure is one of these. The dispatcher turns them into the
structured `{status: 1, message}` response; the HTTP status code and error
code are kept for logging and for the FastAPI exception handlers.
"""

from typing import Any, Dict, Optional

GENERIC_ERROR = "Paste does not exist, has expired or has been deleted."


class BlindPasteException(Exception):
    """Base exception for BlindPaste service."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ValidationError(BlindPasteException):
    """Raised when a submission is malformed or oversized."""

    def __init__(self, message: str = "Invalid data.", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="validation_error",
            details=details,
        )


class RateLimitError(BlindPasteException):
    """Raised when a client submits again within its cooldown window."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
    ) -> None:
        details = {}
        if retry_after:
            details["retry_after"] = retry_after

        super().__init__(
            message=message,
            status_code=429,
            error_code="rate_limit_exceeded",
            details=details,
        )


class NotFoundError(BlindPasteException):
    """
    Raised when a paste never existed, has expired or was deleted.

    The message is the same for all three causes.
    """

    def __init__(self) -> None:
        super().__init__(
            message=GENERIC_ERROR,
            status_code=404,
            error_code="not_found",
        )


class AuthorizationError(BlindPasteException):
    """Raised when a delete token does not match the paste."""

    def __init__(self, message: str = "Wrong deletion token. Paste was not deleted.") -> None:
        super().__init__(
            message=message,
            status_code=403,
            error_code="authorization_error",
        )


class StoreError(BlindPasteException):
    """Raised when the storage backend fails."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
        error_code: str = "store_error",
    ) -> None:
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class StoreConflictError(StoreError):
    """Raised when an identifier is already taken."""

    def __init__(self, message: str = "You are unlucky. Try again.") -> None:
        super().__init__(
            message=message,
            status_code=409,
            error_code="store_conflict",
        )


class ProxyError(BlindPasteException):
    """Raised when the URL shortener cannot produce a short link."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=502,
            error_code="proxy_error",
            details=details,
        )


class ConfigurationError(BlindPasteException):
    """Raised at startup when configuration cannot be used."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="configuration_error",
            details=details,
        )
