"""Tests for errors module."""

import pytest

from oaikit.errors import (
    ApiError,
    ApiErrorBody,
    DeserializationError,
    ErrorClass,
    ErrorContext,
    InvalidArgumentError,
    InvalidSignatureError,
    OaiKitError,
    RateLimitedError,
    StreamDecodeError,
    TransportError,
    WebhookDeserializationError,
    WebhookError,
    classify_http_error,
    extract_error_message,
    is_transient,
)


def _body(message: str = "boom", type: str | None = None, **kwargs) -> ApiErrorBody:
    return ApiErrorBody(message=message, type=type, **kwargs)


class TestErrorContext:
    """Tests for ErrorContext."""

    def test_str_with_all_parts(self) -> None:
        """Test full rendering."""
        ctx = ErrorContext(field_path="error.type", source="remote", hint="check key")
        assert str(ctx) == "[remote] at 'error.type' (hint: check key)"

    def test_empty(self) -> None:
        """Test empty context renders as empty string."""
        assert str(ErrorContext()) == ""

    def test_with_hint(self) -> None:
        """Test adding a hint after creation."""
        error = OaiKitError("failed").with_hint("retry later")
        assert error.context.hint == "retry later"


class TestApiErrorBody:
    """Tests for the API error envelope."""

    def test_parse_wrapped(self) -> None:
        """Test parsing {"error": {...}}."""
        body = ApiErrorBody.parse(
            b'{"error": {"message": "Bad key", "type": "invalid_request_error", "code": "invalid_api_key"}}'
        )
        assert body.message == "Bad key"
        assert body.type == "invalid_request_error"
        assert body.code == "invalid_api_key"
        assert body.param is None

    def test_parse_bare(self) -> None:
        """Test parsing a bare error object."""
        body = ApiErrorBody.parse('{"message": "Nope", "type": "server_error"}')
        assert body.message == "Nope"

    def test_parse_keeps_extra_fields(self) -> None:
        """Test unknown fields survive."""
        body = ApiErrorBody.parse('{"error": {"message": "x", "debug_id": "abc"}}')
        assert body.model_extra == {"debug_id": "abc"}

    def test_parse_invalid_json(self) -> None:
        """Test non-JSON content raises ValueError."""
        with pytest.raises(ValueError):
            ApiErrorBody.parse(b"<html>Bad Gateway</html>")

    def test_parse_missing_message(self) -> None:
        """Test an object without message is rejected."""
        with pytest.raises(ValueError):
            ApiErrorBody.parse('{"error": {"type": "x"}}')

    def test_str(self) -> None:
        """Test display format."""
        body = _body("Bad value", type="invalid_request_error", param="model", code="bad")
        assert str(body) == "invalid_request_error: Bad value (param: model) (code: bad)"

    def test_str_message_only(self) -> None:
        """Test display format omits missing parts."""
        assert str(_body("Just this")) == "Just this"


class TestClassifyHttpError:
    """Tests for HTTP error classification."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (400, ErrorClass.INVALID_REQUEST),
            (401, ErrorClass.AUTHENTICATION),
            (403, ErrorClass.PERMISSION_DENIED),
            (404, ErrorClass.NOT_FOUND),
            (409, ErrorClass.CONFLICT),
            (418, ErrorClass.INVALID_REQUEST),
            (429, ErrorClass.RATE_LIMITED),
            (500, ErrorClass.SERVER_ERROR),
            (503, ErrorClass.SERVER_ERROR),
            (302, ErrorClass.OTHER),
        ],
    )
    def test_status_mapping(self, status: int, expected: ErrorClass) -> None:
        """Test status code mapping."""
        assert classify_http_error(status) == expected

    def test_insufficient_quota_is_not_rate_limit(self) -> None:
        """Test quota exhaustion is told apart from throttling."""
        body = _body("You exceeded your current quota", type="insufficient_quota")
        assert classify_http_error(429, body) == ErrorClass.QUOTA_EXHAUSTED

    def test_other_429_types_are_rate_limits(self) -> None:
        """Test any other 429 error type is throttling."""
        body = _body("Rate limit reached", type="requests")
        assert classify_http_error(429, body) == ErrorClass.RATE_LIMITED

    def test_only_rate_limit_is_transient(self) -> None:
        """Test transient classes."""
        assert is_transient(ErrorClass.RATE_LIMITED)
        assert not is_transient(ErrorClass.QUOTA_EXHAUSTED)
        assert not is_transient(ErrorClass.SERVER_ERROR)

    def test_extract_message(self) -> None:
        """Test message extraction falls back to the status."""
        assert extract_error_message(None, 502) == "HTTP 502"
        assert extract_error_message(_body("x", type="t"), 400) == "t: x"


class TestApiError:
    """Tests for ApiError construction from responses."""

    def test_rate_limited_subclass(self) -> None:
        """Test a throttling 429 becomes RateLimitedError."""
        error = ApiError.from_response(429, _body("slow down", type="requests"))
        assert isinstance(error, RateLimitedError)
        assert error.transient
        assert error.error_class == ErrorClass.RATE_LIMITED

    def test_quota_is_permanent(self) -> None:
        """Test quota exhaustion is a plain ApiError."""
        error = ApiError.from_response(429, _body("quota", type="insufficient_quota"))
        assert not isinstance(error, RateLimitedError)
        assert not error.transient
        assert error.error_type == "insufficient_quota"

    def test_retry_after_seconds(self) -> None:
        """Test Retry-After header parsing."""
        error = ApiError.from_response(429, _body(), {"Retry-After": "2.5"})
        assert error.retry_after == 2.5

    def test_retry_after_ms_wins(self) -> None:
        """Test retry-after-ms takes precedence."""
        error = ApiError.from_response(
            429, _body(), {"retry-after-ms": "1500", "retry-after": "9"}
        )
        assert error.retry_after == 1.5

    def test_unparseable_retry_after(self) -> None:
        """Test HTTP-date Retry-After is ignored."""
        error = ApiError.from_response(
            429, _body(), {"retry-after": "Wed, 21 Oct 2015 07:28:00 GMT"}
        )
        assert error.retry_after is None

    @pytest.mark.parametrize("value", ["inf", "-inf", "nan", "-3", "Infinity"])
    def test_non_finite_retry_after_ignored(self, value: str) -> None:
        """Test infinite, NaN and negative delays are ignored."""
        error = ApiError.from_response(429, _body(), {"retry-after": value})
        assert error.retry_after is None

    def test_non_finite_retry_after_ms_falls_back(self) -> None:
        """Test a bad retry-after-ms does not hide a usable retry-after."""
        error = ApiError.from_response(
            429, _body(), {"retry-after-ms": "inf", "retry-after": "3"}
        )
        assert error.retry_after == 3.0

    def test_request_id(self) -> None:
        """Test request id extraction."""
        error = ApiError.from_response(500, _body(), {"X-Request-Id": "req_123"})
        assert error.request_id == "req_123"
        assert error.context.details["request_id"] == "req_123"

    def test_message_and_status(self) -> None:
        """Test message rendering."""
        error = ApiError.from_response(404, _body("No such model", type="invalid_request_error"))
        assert error.status_code == 404
        assert error.message == "invalid_request_error: No such model"
        assert "[remote]" in str(error)


class TestHierarchy:
    """Tests for the exception hierarchy."""

    def test_all_inherit_base(self) -> None:
        """Test every error is catchable as OaiKitError."""
        for error in (
            TransportError("down"),
            DeserializationError("bad", b"x"),
            StreamDecodeError("bad frame", "x"),
            InvalidArgumentError("bad header"),
            InvalidSignatureError(),
            WebhookDeserializationError("bad payload", "{}"),
        ):
            assert isinstance(error, OaiKitError)

    def test_stream_decode_is_deserialization(self) -> None:
        """Test stream decode errors carry content and event."""
        error = StreamDecodeError("bad frame", "{oops", event="thread.run.created")
        assert isinstance(error, DeserializationError)
        assert error.text == "{oops"
        assert error.event == "thread.run.created"

    def test_webhook_deserialization_is_distinct_from_signature(self) -> None:
        """Test the two webhook failure kinds can be told apart."""
        error = WebhookDeserializationError("bad payload", b"{}")
        assert isinstance(error, WebhookError)
        assert isinstance(error, DeserializationError)
        assert not isinstance(error, InvalidSignatureError)
        assert error.text == "{}"

    def test_transport_error_cause(self) -> None:
        """Test the underlying exception is chained."""
        cause = ConnectionResetError("reset")
        error = TransportError("failed", url="https://api.test", cause=cause)
        assert error.__cause__ is cause
        assert error.context.details["url"] == "https://api.test"

    def test_invalid_argument_field(self) -> None:
        """Test field path is recorded."""
        error = InvalidArgumentError("bad", field="headers")
        assert error.context.field_path == "headers"
