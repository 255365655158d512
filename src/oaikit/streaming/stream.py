"""
Event stream - async iteration over decoded SSE frames.

A background task reads the response body, splits it into frames, decodes
each frame and pushes the result onto a bounded queue. The consumer pulls
from the queue. Frames that fail to decode arrive as failed results and do
not end the stream; the ``[DONE]`` sentinel ends it normally; a connection
failure ends it with a TransportError.
"""

from __future__ import annotations

import asyncio
import contextlib
import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar, Union

import httpx

from oaikit.errors import StreamDecodeError, TransportError
from oaikit.streaming.sse import iter_frames
from oaikit.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from oaikit.streaming.decoders import EventDecoder

T = TypeVar("T")

DEFAULT_BUFFER_SIZE = 64

logger = get_logger(__name__)


@dataclass(frozen=True)
class StreamResult(Generic[T]):
    """One item of an event stream.

    Attributes:
        success: Whether the frame decoded
        value: Decoded value (None on failure)
        error: Decode error (None on success)
    """

    success: bool
    value: T | None = None
    error: StreamDecodeError | None = None

    @classmethod
    def ok(cls, value: T) -> StreamResult[T]:
        return cls(success=True, value=value)

    @classmethod
    def failed(cls, error: StreamDecodeError) -> StreamResult[T]:
        return cls(success=False, error=error)

    def unwrap(self) -> T:
        """Return the value or raise the decode error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


@dataclass(frozen=True)
class _Closed:
    """End-of-stream marker; carries the terminal error, if any."""

    error: BaseException | None = None


_Item = Union[StreamResult[Any], _Closed]


async def _pump(
    source: AsyncIterator[bytes],
    close: Callable[[], Awaitable[Any]] | None,
    decoder: EventDecoder[Any],
    queue: asyncio.Queue[_Item],
    url: str | None,
) -> None:
    # Holds no reference to the EventStream so a dropped consumer can be collected
    terminal = _Closed()
    frames = 0
    try:
        async with contextlib.aclosing(iter_frames(source)) as frame_iter:
            async for frame in frame_iter:
                if frame.is_done:
                    break
                frames += 1
                try:
                    item: StreamResult[Any] = StreamResult.ok(decoder.decode(frame))
                except StreamDecodeError as e:
                    logger.warning(
                        "Failed to decode stream event",
                        event=frame.event_type,
                        error=e.message,
                        data=frame.data,
                    )
                    item = StreamResult.failed(e)
                await queue.put(item)
    except httpx.HTTPError as e:
        logger.error("Stream connection failed", url=url, error=str(e), frames=frames)
        terminal = _Closed(TransportError(f"stream connection failed: {e}", url=url, cause=e))
    except Exception as e:
        logger.exception("Stream producer failed", url=url)
        terminal = _Closed(e)
    finally:
        if close is not None:
            try:
                await close()
            except Exception as e:
                # End marker is queued even when closing fails
                logger.warning("Failed to close stream connection", url=url, error=str(e))

    logger.debug("Stream finished", url=url, frames=frames)
    await queue.put(terminal)


class EventStream(Generic[T]):
    """Async iterator of decoded stream events.

    Yields a StreamResult per frame. Iteration ends after the ``[DONE]``
    sentinel or the end of the body; a dropped connection is raised as
    TransportError. Closing the stream (or leaving ``async with``) cancels
    the producer and releases the connection; so does dropping the last
    reference to it.

    Example:
        >>> async with await client.stream(request, ChatCompletionChunk) as stream:
        ...     async for result in stream:
        ...         if result.success:
        ...             print(result.value)
        ...         else:
        ...             print("bad frame:", result.error)
    """

    def __init__(
        self,
        source: AsyncIterator[bytes],
        decoder: EventDecoder[T],
        *,
        close: Callable[[], Awaitable[Any]] | None = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        url: str | None = None,
    ) -> None:
        """Start reading ``source`` in the background.

        Must be called from a running event loop.

        Args:
            source: Raw body bytes
            decoder: Frame decoder
            close: Releases the underlying connection once reading stops
            buffer_size: Maximum decoded items held ahead of the consumer (0 = unbounded)
            url: Request URL, used in errors and logs
        """
        self._queue: asyncio.Queue[_Item] = asyncio.Queue(maxsize=buffer_size)
        self._task = asyncio.get_running_loop().create_task(
            _pump(source, close, decoder, self._queue, url),
            name=f"oaikit-stream:{url or 'anonymous'}",
        )
        self._finalizer = weakref.finalize(self, self._task.cancel)
        self._finished = False
        self._url = url

    @classmethod
    def from_response(
        cls,
        response: httpx.Response,
        decoder: EventDecoder[T],
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> EventStream[T]:
        """Wrap an open streaming httpx response; the stream takes ownership of it."""
        return cls(
            response.aiter_bytes(),
            decoder,
            close=response.aclose,
            buffer_size=buffer_size,
            url=str(response.request.url),
        )

    @property
    def closed(self) -> bool:
        return self._finished

    def __aiter__(self) -> EventStream[T]:
        return self

    async def __anext__(self) -> StreamResult[T]:
        if self._finished:
            raise StopAsyncIteration

        item = await self._queue.get()
        if isinstance(item, _Closed):
            self._finished = True
            if item.error is not None:
                raise item.error
            raise StopAsyncIteration
        return item

    async def events(self, *, skip_errors: bool = False) -> AsyncIterator[T]:
        """Iterate over decoded values only.

        Args:
            skip_errors: Drop frames that failed to decode instead of raising

        Raises:
            StreamDecodeError: On the first bad frame, unless skip_errors is set
            TransportError: If the connection drops
        """
        async for result in self:
            if result.success:
                yield result.value  # type: ignore[misc]
            elif not skip_errors:
                raise result.error  # type: ignore[misc]

    async def collect(self) -> list[StreamResult[T]]:
        """Read the stream to the end."""
        return [result async for result in self]

    async def aclose(self) -> None:
        """Stop the producer and release the connection. Safe to call twice."""
        self._finished = True
        self._finalizer.detach()
        if not self._task.done():
            self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task

    async def __aenter__(self) -> EventStream[T]:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
