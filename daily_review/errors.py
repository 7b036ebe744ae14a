"""Shared error types for daily_review.

Source failures are raised as typed errors so the deck layer can pick a
user-facing message category without parsing transport text. Storage
problems never leave the cache layer.
"""

from enum import Enum


class DailyReviewError(Exception):
    """Base error for daily_review."""


class TransientNetworkError(DailyReviewError):
    """Timeout or connectivity loss talking to the memo source."""


class SourceUnavailable(TransientNetworkError):
    """Memo source answered with a 5xx status."""

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(message or f"memo source returned {status_code}")


class SourceRejectedRequest(DailyReviewError):
    """Memo source rejected the request (4xx other than 401)."""

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(message or f"memo source rejected request with {status_code}")


class AuthExpired(DailyReviewError):
    """Still unauthenticated after one token refresh."""


class InvalidSourceResponse(DailyReviewError):
    """Memo source returned a body that is not a JSON object."""


class StorageQuotaExceeded(DailyReviewError):
    """Storage medium is out of capacity."""


class MalformedStoredState(DailyReviewError):
    """A persisted blob could not be decoded."""


class ErrorCategory(str, Enum):
    """User-facing message category for surfaced errors."""
    NETWORK = "network"
    SERVER = "server"
    PERMISSION = "permission"
    NOT_FOUND = "not_found"
    GENERIC = "generic"


_MESSAGES = {
    ErrorCategory.NETWORK: "Network error, please check your connection.",
    ErrorCategory.SERVER: "Server error, please try again later.",
    ErrorCategory.PERMISSION: "Permission denied, please sign in again.",
    ErrorCategory.NOT_FOUND: "The requested memos could not be found.",
    ErrorCategory.GENERIC: "Failed to load the review deck.",
}


def error_category(exc: BaseException) -> ErrorCategory:
    """Map an exception to the category used for its user-facing message."""
    if isinstance(exc, SourceUnavailable):
        return ErrorCategory.SERVER
    if isinstance(exc, TransientNetworkError):
        return ErrorCategory.NETWORK
    if isinstance(exc, AuthExpired):
        return ErrorCategory.PERMISSION
    if isinstance(exc, SourceRejectedRequest):
        if exc.status_code == 403:
            return ErrorCategory.PERMISSION
        if exc.status_code == 404:
            return ErrorCategory.NOT_FOUND
    return ErrorCategory.GENERIC


def user_message(category: ErrorCategory) -> str:
    """Fixed user-facing text for a category."""
    return _MESSAGES[category]
