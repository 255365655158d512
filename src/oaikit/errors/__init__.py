"""
Error hierarchy for oaikit.

Provides structured error types and the transient/permanent classification
used by the request executor.
"""

from oaikit.errors.base import (
    ApiError,
    ApiErrorBody,
    DeserializationError,
    ErrorContext,
    InvalidArgumentError,
    InvalidSignatureError,
    OaiKitError,
    RateLimitedError,
    StreamDecodeError,
    TransportError,
    WebhookDeserializationError,
    WebhookError,
)
from oaikit.errors.classification import (
    INSUFFICIENT_QUOTA,
    ErrorClass,
    classify_http_error,
    extract_error_message,
    is_transient,
)

__all__ = [
    "INSUFFICIENT_QUOTA",
    "ApiError",
    "ApiErrorBody",
    "DeserializationError",
    "ErrorClass",
    "ErrorContext",
    "InvalidArgumentError",
    "InvalidSignatureError",
    "OaiKitError",
    "RateLimitedError",
    "StreamDecodeError",
    "TransportError",
    "WebhookDeserializationError",
    "WebhookError",
    "classify_http_error",
    "extract_error_message",
    "is_transient",
]
