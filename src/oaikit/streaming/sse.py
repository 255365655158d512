"""
Server-Sent Events framing.

Parses a raw byte stream into frames:
```
event: thread.run.created
data: {"id": "run_1"}

data: {"key": "value"}

data: [DONE]
```

Lines may end in ``\\n``, ``\\r\\n`` or ``\\r``, and a chunk boundary may fall
anywhere, including inside a multi-byte UTF-8 character or between the
``\\r`` and ``\\n`` of one line ending.
"""

from __future__ import annotations

import codecs
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

DONE_SIGNAL = "[DONE]"
DEFAULT_EVENT = "message"

_LINE_END = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class SSEFrame:
    """One dispatched server-sent event.

    Attributes:
        data: Data lines joined with newlines
        event: Event name (None when the frame has no ``event:`` field)
        id: Last event id field of the frame
        retry: Reconnection time in milliseconds
    """

    data: str
    event: str | None = None
    id: str | None = None
    retry: int | None = None

    @property
    def event_type(self) -> str:
        """Event name, defaulting to ``message``."""
        return self.event or DEFAULT_EVENT

    @property
    def is_done(self) -> bool:
        """Whether this is the in-band end-of-stream sentinel."""
        return self.event_type == DEFAULT_EVENT and self.data == DONE_SIGNAL


class SSEParser:
    """Incremental SSE parser.

    Feed it byte chunks as they arrive; it returns the frames completed by
    each chunk.

    Example:
        >>> parser = SSEParser()
        >>> parser.feed(b'data: {"a"')
        []
        >>> parser.feed(b': 1}\\n\\n')
        [SSEFrame(data='{"a": 1}', event=None, id=None, retry=None)]
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._data: list[str] = []
        self._event: str | None = None
        self._id: str | None = None
        self._retry: int | None = None

    def feed(self, chunk: bytes) -> list[SSEFrame]:
        """Consume a chunk and return the frames it completed."""
        self._buffer += self._decoder.decode(chunk)
        return self._drain(final=False)

    def flush(self) -> list[SSEFrame]:
        """Finish the stream; a trailing frame without a blank line is still dispatched."""
        self._buffer += self._decoder.decode(b"", final=True)
        frames = self._drain(final=True)
        if self._buffer:
            frames.extend(self._process_line(self._buffer))
            self._buffer = ""
        frame = self._dispatch()
        if frame is not None:
            frames.append(frame)
        return frames

    def _drain(self, *, final: bool) -> list[SSEFrame]:
        frames: list[SSEFrame] = []
        pos = 0
        for match in _LINE_END.finditer(self._buffer):
            # A trailing lone CR may be the first half of CRLF
            if not final and match.group() == "\r" and match.end() == len(self._buffer):
                break
            frames.extend(self._process_line(self._buffer[pos : match.start()]))
            pos = match.end()
        self._buffer = self._buffer[pos:]
        return frames

    def _process_line(self, line: str) -> list[SSEFrame]:
        if not line:
            frame = self._dispatch()
            return [frame] if frame is not None else []

        if line.startswith(":"):
            return []

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "data":
            self._data.append(value)
        elif name == "event":
            self._event = value or None
        elif name == "id":
            if "\0" not in value:
                self._id = value
        elif name == "retry":
            if value.isdigit():
                self._retry = int(value)
        return []

    def _dispatch(self) -> SSEFrame | None:
        if not self._data:
            self._event = None
            return None

        frame = SSEFrame(
            data="\n".join(self._data),
            event=self._event,
            id=self._id,
            retry=self._retry,
        )
        self._data = []
        self._event = None
        self._retry = None
        return frame


async def iter_frames(byte_stream: AsyncIterator[bytes]) -> AsyncIterator[SSEFrame]:
    """Decode an async byte stream into SSE frames.

    Args:
        byte_stream: Async iterator of raw bytes

    Yields:
        Frames in wire order
    """
    parser = SSEParser()
    async for chunk in byte_stream:
        for frame in parser.feed(chunk):
            yield frame
    for frame in parser.flush():
        yield frame
