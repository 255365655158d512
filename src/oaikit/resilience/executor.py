"""
Request executor with rate-limit-aware retry.

Each attempt rebuilds its request from the caller's factory, sends it,
classifies the result as success, permanent failure or transient failure,
and lets the backoff policy decide whether (and when) to try again.
Callers only ever see the final value or one terminal error.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar, Union

from oaikit.codec import decode_json
from oaikit.errors import (
    ApiError,
    ApiErrorBody,
    DeserializationError,
    OaiKitError,
    TransportError,
)
from oaikit.resilience.backoff import BackoffConfig, BackoffPolicy, BackoffState
from oaikit.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    import httpx

    from oaikit.transport.http import HttpTransport
    from oaikit.transport.request import RequestDescriptor, RequestFactory
    from oaikit.transport.response import RawResponse

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass(frozen=True)
class Success(Generic[T]):
    """The call produced a value."""

    value: T
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PermanentFailure:
    """Retrying will not change the result."""

    error: OaiKitError


@dataclass(frozen=True)
class TransientFailure:
    """Retrying after a delay may succeed."""

    error: ApiError
    retry_after: float | None = None


Outcome = Union[Success[Any], PermanentFailure, TransientFailure]


def classify_error_response(raw: RawResponse) -> PermanentFailure | TransientFailure:
    """Classify a non-2xx response.

    The body must decode into the API error envelope; if it does not, the
    failure is a permanent deserialization error.
    """
    try:
        body = ApiErrorBody.parse(raw.content)
    except ValueError as e:
        logger.error(
            "Failed to deserialize error response",
            status_code=raw.status_code,
            content=raw.text,
        )
        return PermanentFailure(
            DeserializationError(
                f"failed to deserialize api error response (status {raw.status_code}): {e}",
                raw.content,
                cause=e,
            )
        )

    error = ApiError.from_response(raw.status_code, body, raw.headers)
    if error.transient:
        return TransientFailure(error, error.retry_after)
    return PermanentFailure(error)


def classify_response(raw: RawResponse, target: Any) -> Outcome:
    """Classify a fully-read response, decoding 2xx bodies into ``target``."""
    if not raw.is_success:
        return classify_error_response(raw)

    try:
        value = decode_json(target, raw.content)
    except ValueError as e:
        logger.error("Failed to deserialize api response", content=raw.text)
        return PermanentFailure(
            DeserializationError(
                f"failed to deserialize api response: {e}",
                raw.content,
                cause=e,
            )
        )
    return Success(value, raw.status_code, raw.headers)


async def build_request(request_factory: RequestFactory) -> RequestDescriptor:
    """Call a sync or async request factory."""
    descriptor = request_factory()
    if inspect.isawaitable(descriptor):
        descriptor = await descriptor
    return descriptor


class RequestExecutor:
    """Runs requests to completion, backing off on rate limits.

    Transport errors, undecodable bodies, quota exhaustion and every
    non-429 error status fail immediately. A 429 that is not quota
    exhaustion is retried until the backoff budget runs out, at which
    point the last rate-limit error is raised.

    Example:
        >>> executor = RequestExecutor(transport, BackoffConfig(max_elapsed_time=60))
        >>> model = await executor.execute(lambda: RequestDescriptor.get("/models/gpt-4o"), Model)
    """

    def __init__(
        self,
        transport: HttpTransport,
        backoff: BackoffConfig | BackoffPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the executor.

        Args:
            transport: Transport used to send requests
            backoff: Backoff configuration or a ready policy
            sleep: Async sleep used between attempts
            clock: Monotonic clock used to measure elapsed time
        """
        self._transport = transport
        if isinstance(backoff, BackoffPolicy):
            self._policy = backoff
        else:
            self._policy = BackoffPolicy(backoff or transport.config.backoff)
        self._sleep = sleep
        self._clock = clock

    @property
    def policy(self) -> BackoffPolicy:
        return self._policy

    async def execute(self, request_factory: RequestFactory, target: type[T] | Any) -> T:
        """Send a request and decode the response into ``target``.

        Args:
            request_factory: Zero-argument producer of a fresh request, called per attempt
            target: Type to decode a 2xx body into (``bytes`` for the raw body)

        Returns:
            Decoded value

        Raises:
            TransportError: Connectivity failure
            DeserializationError: A body did not match the expected shape
            ApiError: Non-2xx response (RateLimitedError once backoff is exhausted)
        """

        async def attempt(descriptor: RequestDescriptor) -> Outcome:
            raw = await self._transport.send(descriptor)
            return classify_response(raw, target)

        return await self._run(request_factory, attempt)

    async def execute_raw(self, request_factory: RequestFactory) -> RawResponse:
        """Like ``execute`` but returns the undecoded 2xx response."""

        async def attempt(descriptor: RequestDescriptor) -> Outcome:
            raw = await self._transport.send(descriptor)
            if raw.is_success:
                return Success(raw, raw.status_code, raw.headers)
            return classify_error_response(raw)

        return await self._run(request_factory, attempt)

    async def open_stream(self, request_factory: RequestFactory) -> httpx.Response:
        """Open a streaming response, backing off on rate limits while connecting.

        Returns:
            A 2xx response whose body has not been read; the caller owns it
        """

        async def attempt(descriptor: RequestDescriptor) -> Outcome:
            response = await self._transport.open_stream(descriptor)
            if response.is_success:
                return Success(response, response.status_code)
            raw = await self._transport.read_body(response)
            return classify_error_response(raw)

        return await self._run(request_factory, attempt)

    async def _run(
        self,
        request_factory: RequestFactory,
        attempt: Callable[[RequestDescriptor], Awaitable[Outcome]],
    ) -> Any:
        state = BackoffState()
        started = self._clock()

        while True:
            descriptor = await build_request(request_factory)
            logger.debug(
                "Sending request",
                method=descriptor.method,
                url=descriptor.url,
                attempt=state.attempt + 1,
            )

            try:
                outcome = await attempt(descriptor)
            except TransportError as e:
                outcome = PermanentFailure(e)

            if isinstance(outcome, Success):
                return outcome.value

            if isinstance(outcome, PermanentFailure):
                logger.error(
                    "Request failed",
                    method=descriptor.method,
                    url=descriptor.url,
                    error=outcome.error.message,
                    attempts=state.attempt + 1,
                )
                raise outcome.error

            state, decision = self._policy.next(
                state.with_elapsed(self._clock() - started),
                retry_after=outcome.retry_after,
            )
            if not decision.should_retry:
                logger.error(
                    "Rate limited, backoff exhausted",
                    method=descriptor.method,
                    url=descriptor.url,
                    error=outcome.error.message,
                    attempts=state.attempt + 1,
                    elapsed=round(state.elapsed, 3),
                )
                raise outcome.error

            logger.warning(
                "Rate limited, retrying",
                method=descriptor.method,
                url=descriptor.url,
                status_code=outcome.error.status_code,
                attempt=state.attempt,
                delay=round(decision.delay, 3),
            )
            await self._sleep(decision.delay)
