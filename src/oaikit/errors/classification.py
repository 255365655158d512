"""
Error classification for API responses.

Maps HTTP status codes and the API error envelope to a small set of
classes, and decides which of them are transient (worth retrying).
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from oaikit.errors.base import ApiErrorBody


INSUFFICIENT_QUOTA = "insufficient_quota"


class ErrorClass(str, Enum):
    """Standard error classification."""

    INVALID_REQUEST = "invalid_request"
    """Malformed request body, invalid parameters, or unsupported operation."""

    AUTHENTICATION = "authentication"
    """Missing/invalid credentials (API key/token)."""

    PERMISSION_DENIED = "permission_denied"
    """Caller is authenticated but not permitted to access the resource."""

    NOT_FOUND = "not_found"
    """Requested resource not found."""

    CONFLICT = "conflict"
    """Request conflicts with the current state of the resource."""

    QUOTA_EXHAUSTED = "quota_exhausted"
    """Account quota/billing limit exceeded. Retrying will not help."""

    RATE_LIMITED = "rate_limited"
    """Throttled due to request/token limits; retryable with backoff."""

    SERVER_ERROR = "server_error"
    """Server-side failure (5xx)."""

    OTHER = "other"
    """Unknown classification."""


_DEFAULT_STATUS_MAPPING: dict[int, ErrorClass] = {
    400: ErrorClass.INVALID_REQUEST,
    401: ErrorClass.AUTHENTICATION,
    403: ErrorClass.PERMISSION_DENIED,
    404: ErrorClass.NOT_FOUND,
    409: ErrorClass.CONFLICT,
    422: ErrorClass.INVALID_REQUEST,
    429: ErrorClass.RATE_LIMITED,
}

# Only rate limiting is retried; server errors surface immediately.
_TRANSIENT_CLASSES: frozenset[ErrorClass] = frozenset({ErrorClass.RATE_LIMITED})


def classify_http_error(
    status_code: int,
    error: ApiErrorBody | None = None,
) -> ErrorClass:
    """Classify an HTTP error into a standard error class.

    A 429 whose error ``type`` is ``insufficient_quota`` is quota exhaustion,
    not rate limiting.

    Args:
        status_code: HTTP status code
        error: Parsed API error envelope

    Returns:
        ErrorClass representing the error type
    """
    if status_code == 429:
        if error is not None and error.type == INSUFFICIENT_QUOTA:
            return ErrorClass.QUOTA_EXHAUSTED
        return ErrorClass.RATE_LIMITED

    if status_code in _DEFAULT_STATUS_MAPPING:
        return _DEFAULT_STATUS_MAPPING[status_code]

    if 400 <= status_code < 500:
        return ErrorClass.INVALID_REQUEST
    if 500 <= status_code < 600:
        return ErrorClass.SERVER_ERROR

    return ErrorClass.OTHER


def is_transient(error_class: ErrorClass) -> bool:
    """Check if an error class may succeed when retried.

    Args:
        error_class: The error class to check

    Returns:
        True if the executor should consult the backoff policy
    """
    return error_class in _TRANSIENT_CLASSES


def extract_error_message(error: ApiErrorBody | None, status_code: int) -> str:
    """Human-readable message for an error response."""
    if error is None or not error.message:
        return f"HTTP {status_code}"
    return str(error)
