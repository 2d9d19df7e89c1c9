"""Custom exceptions for RecoCache.

Defines the error kinds the orchestrator distinguishes in its logs. They all
collapse into one generic failure for API callers.
"""

from typing import Any, Dict, Optional

GENERIC_FAILURE_MESSAGE = "Failed to fetch recommended products"


class RecoCacheException(Exception):
    """Base exception for RecoCache errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class AuthError(RecoCacheException):
    """Raised when the caller cannot be authenticated."""

    def __init__(self, reason: str = "Unauthorized"):
        super().__init__(
            message="Unauthorized",
            status_code=401,
            details={"reason": reason},
        )


class UpstreamFetchError(RecoCacheException):
    """Raised when the catalog or analytics read fails."""

    def __init__(self, source: str, error: Exception):
        message = f"Failed to fetch {source}: {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "source": source,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
        self.source = source


class TrainingError(RecoCacheException):
    """Raised when the trainer fails for a user."""

    def __init__(self, user_id: str, error: Exception):
        message = f"Failed to train recommendations for user {user_id}: {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "user_id": user_id,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class UpsertError(RecoCacheException):
    """Raised when persisting freshly trained recommendations fails."""

    def __init__(self, user_id: str, error: Exception):
        message = f"Failed to store recommendations for user {user_id}: {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "user_id": user_id,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class ForbiddenError(RecoCacheException):
    """Raised when a caller asks for another user's recommendations."""

    def __init__(self, caller_id: str, user_id: str):
        super().__init__(
            message="Forbidden",
            status_code=403,
            details={"caller_id": caller_id, "user_id": user_id},
        )


class UnexpectedError(RecoCacheException):
    """Wraps any other failure raised while serving a request."""

    def __init__(self, user_id: str, error: Exception):
        message = f"Unexpected error for user {user_id}: {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "user_id": user_id,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
