"""
Core Client implementation.

The client ties a transport, an executor with rate-limit backoff and the
streaming adapter together. Resource-specific code builds descriptors and
hands them over as zero-argument factories.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, Any, TypeVar

from oaikit.client.builder import ClientBuilder
from oaikit.config import ClientConfig
from oaikit.resilience import RequestExecutor
from oaikit.streaming import EventStream, JsonEventDecoder, TaggedEventDecoder
from oaikit.transport import HttpTransport, RequestDescriptor

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from oaikit.streaming import EventDecoder
    from oaikit.transport import MultipartForm, RawResponse, RequestFactory, RequestOptions
    from oaikit.types import StreamEvent

T = TypeVar("T")


class Client:
    """Async client for the OpenAI HTTP API.

    Example:
        >>> async with Client() as client:
        ...     model = await client.get("/models/gpt-4o", Model)
        ...     stream = await client.post_stream(
        ...         "/chat/completions",
        ...         {"model": "gpt-4o", "messages": msgs, "stream": True},
        ...         ChatCompletionChunk,
        ...     )
        ...     async with stream:
        ...         async for chunk in stream.events():
        ...             print(chunk)

        >>> client = Client.builder().api_key("sk-...").project("proj_1").build()
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: HttpTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            config: Configuration (default: the transport's, else from environment)
            transport: Transport to send requests through
            sleep: Async sleep used between retry attempts
        """
        if config is None:
            config = transport.config if transport is not None else ClientConfig.from_env()
        self._config = config
        self._transport = transport or HttpTransport(config)
        self._executor = RequestExecutor(self._transport, config.backoff, sleep=sleep)

    @classmethod
    def builder(cls) -> ClientBuilder:
        """Get a builder for fluent configuration."""
        return ClientBuilder()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def executor(self) -> RequestExecutor:
        return self._executor

    async def execute(self, request_factory: RequestFactory, target: type[T] | Any) -> T:
        """Run a request built by ``request_factory`` and decode the 2xx body.

        Args:
            request_factory: Zero-argument producer of a fresh descriptor
            target: Type the body decodes into (``bytes`` for the raw body)

        Returns:
            Decoded value

        Raises:
            TransportError: Connectivity failure
            DeserializationError: Body did not match ``target``
            ApiError: Non-2xx response
        """
        return await self._executor.execute(request_factory, target)

    async def execute_raw(self, request_factory: RequestFactory) -> RawResponse:
        """Run a request and return the undecoded 2xx response."""
        return await self._executor.execute_raw(request_factory)

    async def get(
        self,
        path: str,
        target: type[T] | Any,
        *,
        query: Mapping[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> T:
        descriptor = RequestDescriptor.get(path, query=query).with_options(options)
        return await self.execute(lambda: descriptor, target)

    async def post(
        self,
        path: str,
        body: Any,
        target: type[T] | Any,
        *,
        options: RequestOptions | None = None,
    ) -> T:
        descriptor = RequestDescriptor.post(path, body).with_options(options)
        return await self.execute(lambda: descriptor, target)

    async def delete(
        self,
        path: str,
        target: type[T] | Any,
        *,
        options: RequestOptions | None = None,
    ) -> T:
        descriptor = RequestDescriptor.delete(path).with_options(options)
        return await self.execute(lambda: descriptor, target)

    async def post_form(
        self,
        path: str,
        form_factory: Callable[[], MultipartForm | Awaitable[MultipartForm]],
        target: type[T] | Any,
        *,
        options: RequestOptions | None = None,
    ) -> T:
        """POST a multipart form.

        The form factory is called once per attempt, so file contents are
        read again when a rate-limited upload is retried.
        """

        async def request_factory() -> RequestDescriptor:
            form = form_factory()
            if inspect.isawaitable(form):
                form = await form
            return RequestDescriptor("POST", path, form=form).with_options(options)

        return await self.execute(request_factory, target)

    async def post_bytes(
        self,
        path: str,
        body: Any,
        *,
        options: RequestOptions | None = None,
    ) -> bytes:
        """POST a JSON body and return the raw response bytes (audio, files)."""
        return await self.post(path, body, bytes, options=options)

    async def stream(
        self,
        request_factory: RequestFactory,
        decoder: EventDecoder[T],
    ) -> EventStream[T]:
        """Open a server-sent event stream.

        Rate limits while connecting are retried like any other call; once
        the stream is open, frames are decoded by ``decoder``.

        Raises:
            TransportError: Connectivity failure while connecting
            ApiError: Non-2xx response to the streaming request
        """
        response = await self._executor.open_stream(request_factory)
        return EventStream.from_response(
            response,
            decoder,
            buffer_size=self._config.stream_buffer_size,
        )

    async def post_stream(
        self,
        path: str,
        body: Any,
        target: type[T] | Any,
        *,
        options: RequestOptions | None = None,
    ) -> EventStream[T]:
        """POST and stream events whose data all decode into ``target``."""
        descriptor = RequestDescriptor.post(path, body).with_options(options)
        return await self.stream(lambda: descriptor, JsonEventDecoder(target))

    async def post_stream_tagged(
        self,
        path: str,
        body: Any,
        variants: Mapping[str, Any],
        *,
        strict: bool = False,
        options: RequestOptions | None = None,
    ) -> EventStream[StreamEvent]:
        """POST and stream events whose type depends on the event name.

        Args:
            path: Request path
            body: JSON body
            variants: Event name -> data type
            strict: Unregistered event names become decode errors
            options: Per-call headers and query parameters
        """
        descriptor = RequestDescriptor.post(path, body).with_options(options)
        decoder = TaggedEventDecoder(variants, strict=strict)
        return await self.stream(lambda: descriptor, decoder)

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
