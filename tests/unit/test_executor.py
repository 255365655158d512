"""Tests for the request executor."""

from __future__ import annotations

import logging

import httpx
import pytest
from pydantic import BaseModel

from oaikit.errors import (
    ApiError,
    DeserializationError,
    ErrorClass,
    RateLimitedError,
    TransportError,
)
from oaikit.resilience import (
    BackoffConfig,
    PermanentFailure,
    RequestExecutor,
    Success,
    TransientFailure,
    classify_response,
)
from oaikit.transport import HttpTransport, RawResponse, RequestDescriptor

MODELS_URL = "https://api.test/v1/models/gpt-4o"

RATE_LIMITED = {"error": {"message": "Rate limit reached", "type": "requests"}}
QUOTA = {"error": {"message": "You exceeded your current quota", "type": "insufficient_quota"}}


class Model(BaseModel):
    id: str
    owned_by: str


MODEL_JSON = {"id": "gpt-4o", "owned_by": "openai"}


class CountingFactory:
    """Request factory that records how often it was called."""

    def __init__(self, descriptor: RequestDescriptor) -> None:
        self.descriptor = descriptor
        self.calls = 0

    def __call__(self) -> RequestDescriptor:
        self.calls += 1
        return self.descriptor


class TestClassifyResponse:
    """Tests for response classification."""

    def test_success(self) -> None:
        """Test 2xx decodes into the target."""
        raw = RawResponse(200, b'{"id": "gpt-4o", "owned_by": "openai"}')
        outcome = classify_response(raw, Model)
        assert isinstance(outcome, Success)
        assert outcome.value == Model(**MODEL_JSON)

    def test_bytes_target(self) -> None:
        """Test bytes target returns the body untouched."""
        outcome = classify_response(RawResponse(200, b"\x00\x01"), bytes)
        assert isinstance(outcome, Success)
        assert outcome.value == b"\x00\x01"

    def test_rate_limit_is_transient(self) -> None:
        """Test throttling 429 is transient and carries retry-after."""
        raw = RawResponse(
            429,
            b'{"error": {"message": "slow down", "type": "tokens"}}',
            {"retry-after": "3"},
        )
        outcome = classify_response(raw, Model)
        assert isinstance(outcome, TransientFailure)
        assert outcome.retry_after == 3.0

    def test_quota_is_permanent(self) -> None:
        """Test insufficient_quota 429 is permanent."""
        raw = RawResponse(429, b'{"error": {"message": "quota", "type": "insufficient_quota"}}')
        outcome = classify_response(raw, Model)
        assert isinstance(outcome, PermanentFailure)
        assert outcome.error.error_class == ErrorClass.QUOTA_EXHAUSTED

    def test_undecodable_error_body(self) -> None:
        """Test an error body that is not the envelope is a deserialization error."""
        outcome = classify_response(RawResponse(502, b"<html>Bad Gateway</html>"), Model)
        assert isinstance(outcome, PermanentFailure)
        assert isinstance(outcome.error, DeserializationError)
        assert outcome.error.content == b"<html>Bad Gateway</html>"

    def test_undecodable_success_body(self) -> None:
        """Test a 2xx body that does not match the target."""
        outcome = classify_response(RawResponse(200, b'{"id": 1}'), Model)
        assert isinstance(outcome, PermanentFailure)
        assert isinstance(outcome.error, DeserializationError)


class TestRequestExecutor:
    """Tests for RequestExecutor."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, httpx_mock, config, clock) -> None:
        """Test a 200 returns the decoded value without sleeping."""
        httpx_mock.add_response(url=MODELS_URL, json=MODEL_JSON)
        factory = CountingFactory(RequestDescriptor.get("/models/gpt-4o"))

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, sleep=clock.sleep, clock=clock)
            model = await executor.execute(factory, Model)

        assert model.id == "gpt-4o"
        assert factory.calls == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_retries_rate_limit_then_succeeds(self, httpx_mock, config, clock) -> None:
        """Test 429s are retried with growing delays and the factory is rerun."""
        httpx_mock.add_response(url=MODELS_URL, status_code=429, json=RATE_LIMITED)
        httpx_mock.add_response(url=MODELS_URL, status_code=429, json=RATE_LIMITED)
        httpx_mock.add_response(url=MODELS_URL, json=MODEL_JSON)
        factory = CountingFactory(RequestDescriptor.get("/models/gpt-4o"))

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, sleep=clock.sleep, clock=clock)
            model = await executor.execute(factory, Model)

        assert model == Model(**MODEL_JSON)
        assert factory.calls == 3
        assert clock.sleeps == pytest.approx([0.01, 0.02])
        assert len(httpx_mock.get_requests()) == 3

    @pytest.mark.asyncio
    async def test_retry_after_header_sets_delay(self, httpx_mock, config, clock) -> None:
        """Test the server's retry-after replaces the computed delay."""
        httpx_mock.add_response(
            url=MODELS_URL, status_code=429, json=RATE_LIMITED, headers={"retry-after": "2"}
        )
        httpx_mock.add_response(url=MODELS_URL, json=MODEL_JSON)

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, sleep=clock.sleep, clock=clock)
            await executor.execute(lambda: RequestDescriptor.get("/models/gpt-4o"), Model)

        assert clock.sleeps == [2.0]

    @pytest.mark.asyncio
    async def test_infinite_retry_after_uses_computed_delay(
        self, httpx_mock, config, clock
    ) -> None:
        """Test an infinite retry-after does not stall an unbounded backoff."""
        backoff = BackoffConfig(
            initial_interval=0.01,
            multiplier=2.0,
            max_elapsed_time=None,
            randomization_factor=0.0,
        )
        httpx_mock.add_response(
            url=MODELS_URL, status_code=429, json=RATE_LIMITED, headers={"retry-after": "inf"}
        )
        httpx_mock.add_response(url=MODELS_URL, json=MODEL_JSON)

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, backoff, sleep=clock.sleep, clock=clock)
            model = await executor.execute(lambda: RequestDescriptor.get("/models/gpt-4o"), Model)

        assert model == Model(**MODEL_JSON)
        assert clock.sleeps == pytest.approx([0.01])

    @pytest.mark.asyncio
    async def test_backoff_exhausted_raises_last_rate_limit(self, httpx_mock, config, clock) -> None:
        """Test the last RateLimitedError surfaces once the budget is spent."""
        backoff = BackoffConfig(
            initial_interval=0.02,
            multiplier=2.0,
            max_elapsed_time=0.05,
            randomization_factor=0.0,
        )
        httpx_mock.add_response(url=MODELS_URL, status_code=429, json=RATE_LIMITED)
        httpx_mock.add_response(
            url=MODELS_URL,
            status_code=429,
            json={"error": {"message": "still limited", "type": "requests"}},
        )

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, backoff, sleep=clock.sleep, clock=clock)
            with pytest.raises(RateLimitedError) as exc_info:
                await executor.execute(lambda: RequestDescriptor.get("/models/gpt-4o"), Model)

        assert exc_info.value.message == "requests: still limited"
        assert clock.sleeps == [0.02]

    @pytest.mark.asyncio
    async def test_no_retry_budget(self, httpx_mock, config, clock) -> None:
        """Test a zero budget fails on the first 429."""
        httpx_mock.add_response(url=MODELS_URL, status_code=429, json=RATE_LIMITED)

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(
                transport, BackoffConfig.no_retry(), sleep=clock.sleep, clock=clock
            )
            with pytest.raises(RateLimitedError):
                await executor.execute(lambda: RequestDescriptor.get("/models/gpt-4o"), Model)

        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_quota_exhaustion_fails_immediately(self, httpx_mock, config, clock) -> None:
        """Test insufficient_quota is never retried."""
        httpx_mock.add_response(url=MODELS_URL, status_code=429, json=QUOTA)
        factory = CountingFactory(RequestDescriptor.get("/models/gpt-4o"))

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, sleep=clock.sleep, clock=clock)
            with pytest.raises(ApiError) as exc_info:
                await executor.execute(factory, Model)

        assert not isinstance(exc_info.value, RateLimitedError)
        assert exc_info.value.error_class == ErrorClass.QUOTA_EXHAUSTED
        assert factory.calls == 1

    @pytest.mark.asyncio
    async def test_server_error_not_retried(self, httpx_mock, config, clock) -> None:
        """Test 5xx errors surface immediately."""
        httpx_mock.add_response(
            url=MODELS_URL,
            status_code=500,
            json={"error": {"message": "internal", "type": "server_error"}},
            headers={"x-request-id": "req_abc"},
        )

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, sleep=clock.sleep, clock=clock)
            with pytest.raises(ApiError) as exc_info:
                await executor.execute(lambda: RequestDescriptor.get("/models/gpt-4o"), Model)

        assert exc_info.value.status_code == 500
        assert exc_info.value.request_id == "req_abc"
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_transport_error_not_retried(self, httpx_mock, config, clock) -> None:
        """Test connectivity failures surface as TransportError."""
        httpx_mock.add_exception(httpx.ConnectError("connection refused"), url=MODELS_URL)
        factory = CountingFactory(RequestDescriptor.get("/models/gpt-4o"))

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, sleep=clock.sleep, clock=clock)
            with pytest.raises(TransportError) as exc_info:
                await executor.execute(factory, Model)

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert factory.calls == 1

    @pytest.mark.asyncio
    async def test_bad_error_body_is_deserialization_error(self, httpx_mock, config, clock) -> None:
        """Test a non-envelope error body fails with DeserializationError."""
        httpx_mock.add_response(url=MODELS_URL, status_code=429, content=b"too many")

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, sleep=clock.sleep, clock=clock)
            with pytest.raises(DeserializationError) as exc_info:
                await executor.execute(lambda: RequestDescriptor.get("/models/gpt-4o"), Model)

        assert exc_info.value.text == "too many"
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_async_factory(self, httpx_mock, config, clock) -> None:
        """Test async request factories are awaited each attempt."""
        httpx_mock.add_response(url=MODELS_URL, status_code=429, json=RATE_LIMITED)
        httpx_mock.add_response(url=MODELS_URL, json=MODEL_JSON)
        calls = []

        async def factory() -> RequestDescriptor:
            calls.append(1)
            return RequestDescriptor.get("/models/gpt-4o")

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, sleep=clock.sleep, clock=clock)
            await executor.execute(factory, Model)

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_execute_raw(self, httpx_mock, config, clock) -> None:
        """Test the raw response is returned undecoded."""
        httpx_mock.add_response(
            url=MODELS_URL, content=b"not json", headers={"x-request-id": "req_1"}
        )

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, sleep=clock.sleep, clock=clock)
            raw = await executor.execute_raw(lambda: RequestDescriptor.get("/models/gpt-4o"))

        assert raw.status_code == 200
        assert raw.content == b"not json"
        assert raw.header("X-Request-Id") == "req_1"

    @pytest.mark.asyncio
    async def test_open_stream_retries_rate_limit(self, httpx_mock, config, clock) -> None:
        """Test stream establishment backs off on 429."""
        url = "https://api.test/v1/chat/completions"
        httpx_mock.add_response(url=url, method="POST", status_code=429, json=RATE_LIMITED)
        httpx_mock.add_response(url=url, method="POST", content=b"data: {}\n\n")

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, sleep=clock.sleep, clock=clock)
            response = await executor.open_stream(
                lambda: RequestDescriptor.post("/chat/completions", {"stream": True})
            )
            body = await response.aread()
            await response.aclose()

        assert body == b"data: {}\n\n"
        assert clock.sleeps == [0.01]
        assert httpx_mock.get_requests()[0].headers["accept"] == "text/event-stream"

    @pytest.mark.asyncio
    async def test_logs_retry_and_exhaustion(self, httpx_mock, config, clock, caplog) -> None:
        """Test retries log a warning and exhaustion logs an error."""
        httpx_mock.add_response(url=MODELS_URL, status_code=429, json=RATE_LIMITED)
        httpx_mock.add_response(url=MODELS_URL, status_code=429, json=RATE_LIMITED)
        backoff = BackoffConfig(
            initial_interval=0.01, max_elapsed_time=0.015, randomization_factor=0.0
        )
        caplog.set_level(logging.WARNING, logger="oaikit")

        async with HttpTransport(config) as transport:
            executor = RequestExecutor(transport, backoff, sleep=clock.sleep, clock=clock)
            with pytest.raises(RateLimitedError):
                await executor.execute(lambda: RequestDescriptor.get("/models/gpt-4o"), Model)

        messages = [(r.levelno, r.getMessage()) for r in caplog.records]
        assert (logging.WARNING, "Rate limited, retrying") in messages
        assert (logging.ERROR, "Rate limited, backoff exhausted") in messages
