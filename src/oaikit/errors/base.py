"""
Base error classes for oaikit.

Provides a layered error hierarchy:
- OaiKitError: Base class for all library errors
- TransportError: Connectivity errors (DNS, TLS, connect, reset, timeout)
- ApiError: Non-2xx responses carrying the API error envelope
- RateLimitedError: 429 responses that may succeed after backing off
- DeserializationError: Payloads that do not match the expected schema
- StreamDecodeError: A single SSE frame that could not be decoded
- InvalidArgumentError: Invalid request options
- WebhookError: Webhook verification and decoding errors
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from oaikit.errors.classification import ErrorClass


@dataclass
class ErrorContext:
    """Structured error context for diagnostics.

    Provides actionable information for debugging and error handling.
    """

    field_path: str | None = None
    """Path to the problematic field (e.g., 'error.type')"""

    details: dict[str, Any] = field(default_factory=dict)
    """Additional details about the error"""

    source: str | None = None
    """Error source (e.g., 'transport', 'remote', 'stream', 'webhook')"""

    hint: str | None = None
    """Actionable hint for resolving the error"""

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(f"[{self.source}]")
        if self.field_path:
            parts.append(f"at '{self.field_path}'")
        if self.hint:
            parts.append(f"(hint: {self.hint})")
        return " ".join(parts)


class OaiKitError(Exception):
    """Base class for all oaikit errors.

    All errors from this library inherit from this class, making it easy
    to catch all library errors with a single except clause.

    Attributes:
        message: Human-readable error message
        context: Optional structured error context
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
    ) -> None:
        self.message = message
        self.context = context or ErrorContext()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message."""
        ctx_str = str(self.context)
        if ctx_str:
            return f"{self.message} {ctx_str}"
        return self.message

    def with_hint(self, hint: str) -> OaiKitError:
        """Add a hint to this error."""
        self.context.hint = hint
        return self


class ApiErrorBody(BaseModel):
    """Error object returned by the API on failure.

    The wire form is usually wrapped: ``{"error": {"message": ..., "type": ...}}``.
    """

    model_config = ConfigDict(extra="allow")

    message: str
    type: str | None = None
    param: str | None = None
    code: str | None = None

    @classmethod
    def parse(cls, content: bytes | str) -> ApiErrorBody:
        """Parse an error envelope, wrapped or bare.

        Raises:
            ValueError: If the content is not a recognizable error object
                (pydantic's ValidationError is a ValueError)
        """
        data = json.loads(content)
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            data = data["error"]
        return cls.model_validate(data)

    def __str__(self) -> str:
        parts = []
        if self.type:
            parts.append(f"{self.type}:")
        parts.append(self.message)
        if self.param:
            parts.append(f"(param: {self.param})")
        if self.code:
            parts.append(f"(code: {self.code})")
        return " ".join(parts)


class TransportError(OaiKitError):
    """Error during HTTP transport.

    Raised when:
    - Network connection failure
    - DNS resolution failure
    - SSL/TLS errors
    - Timeout
    - The connection drops while a streaming body is being read

    Transport errors are never retried by the executor.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="transport")
        if url:
            ctx.details["url"] = url
        super().__init__(message, ctx)
        self.url = url
        self.__cause__ = cause


def _parse_delay(value: str | None, *, scale: float = 1.0) -> float | None:
    """Parse a retry delay header; malformed, negative and non-finite values are ignored."""
    if not value:
        return None
    try:
        delay = float(value)
    except ValueError:
        return None
    if not math.isfinite(delay) or delay < 0:
        return None
    return delay / scale


class ApiError(OaiKitError):
    """Non-2xx response from the API.

    Attributes:
        status_code: HTTP status code
        error: Parsed API error object
        error_class: Standardized error classification
        retry_after: Suggested retry delay in seconds (from header)
        request_id: Request identifier echoed by the server
        headers: Response headers
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        error_class: ErrorClass,
        error: ApiErrorBody | None = None,
        retry_after: float | None = None,
        request_id: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        ctx = ErrorContext(source="remote")
        ctx.details["status_code"] = status_code
        ctx.details["error_class"] = error_class.value
        if request_id:
            ctx.details["request_id"] = request_id

        super().__init__(message, ctx)

        self.status_code = status_code
        self.error_class = error_class
        self.error = error
        self.retry_after = retry_after
        self.request_id = request_id
        self.headers = headers or {}

    @property
    def error_type(self) -> str | None:
        """The ``type`` field of the error envelope."""
        return self.error.type if self.error else None

    @property
    def transient(self) -> bool:
        """Whether retrying the same request may succeed."""
        return False

    @classmethod
    def from_response(
        cls,
        status_code: int,
        error: ApiErrorBody,
        headers: dict[str, str] | None = None,
    ) -> ApiError:
        """Create the matching ApiError subclass for a decoded error response.

        Args:
            status_code: HTTP status code
            error: Decoded API error envelope
            headers: Response headers

        Returns:
            RateLimitedError for transient rate limiting, ApiError otherwise
        """
        from oaikit.errors.classification import (
            ErrorClass,
            classify_http_error,
            extract_error_message,
        )

        error_class = classify_http_error(status_code, error)
        headers = {k.lower(): v for k, v in (headers or {}).items()}

        retry_after = _parse_delay(headers.get("retry-after-ms"), scale=1000.0)
        if retry_after is None:
            retry_after = _parse_delay(headers.get("retry-after"))

        request_id = headers.get("x-request-id") or headers.get("request-id")

        error_cls = RateLimitedError if error_class == ErrorClass.RATE_LIMITED else cls
        return error_cls(
            extract_error_message(error, status_code),
            status_code=status_code,
            error_class=error_class,
            error=error,
            retry_after=retry_after,
            request_id=request_id,
            headers=headers,
        )


class RateLimitedError(ApiError):
    """429 response that is not a quota exhaustion.

    The executor resolves these internally by backing off; callers only see
    one when the backoff budget is exhausted.
    """

    @property
    def transient(self) -> bool:
        return True


class DeserializationError(OaiKitError):
    """A payload could not be decoded into the expected type.

    Attributes:
        content: The raw content that failed to decode
    """

    def __init__(
        self,
        message: str,
        content: bytes | str,
        context: ErrorContext | None = None,
        *,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="deserialize")
        super().__init__(message, ctx)
        self.content = content
        self.__cause__ = cause

    @property
    def text(self) -> str:
        """Content as text, with undecodable bytes replaced."""
        if isinstance(self.content, bytes):
            return self.content.decode("utf-8", errors="replace")
        return self.content


class StreamDecodeError(DeserializationError):
    """A single SSE frame could not be decoded.

    Never fatal to the stream: later frames are still processed.
    """

    def __init__(
        self,
        message: str,
        content: bytes | str,
        *,
        event: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = ErrorContext(source="stream")
        if event:
            ctx.details["event"] = event
        super().__init__(message, content, ctx, cause=cause)
        self.event = event


class InvalidArgumentError(OaiKitError):
    """Invalid request arguments, detected before anything is sent."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        field: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="validation")
        if field:
            ctx.field_path = field
        super().__init__(message, ctx)
        self.field = field


class WebhookError(OaiKitError):
    """Base class for webhook processing errors."""


class InvalidSignatureError(WebhookError):
    """The webhook delivery could not be authenticated.

    Covers bad signatures, undecodable secrets and (when a tolerance is
    configured) stale or malformed timestamps. The message never reveals
    which check failed beyond a coarse reason.
    """

    def __init__(self, message: str = "invalid webhook signature") -> None:
        super().__init__(message, ErrorContext(source="webhook"))


class WebhookDeserializationError(WebhookError, DeserializationError):
    """A verified webhook payload did not match the event schema."""

    def __init__(
        self,
        message: str,
        content: bytes | str,
        *,
        cause: Exception | None = None,
    ) -> None:
        DeserializationError.__init__(
            self, message, content, ErrorContext(source="webhook"), cause=cause
        )
