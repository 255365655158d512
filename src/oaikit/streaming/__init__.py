"""
Streaming layer - Server-Sent Events adaptation.

- SSEParser / iter_frames: Byte stream -> SSE frames
- JsonEventDecoder / TaggedEventDecoder: Frame -> typed value
- EventStream: Background reader yielding per-frame results
"""

from oaikit.streaming.decoders import EventDecoder, JsonEventDecoder, TaggedEventDecoder
from oaikit.streaming.sse import DONE_SIGNAL, SSEFrame, SSEParser, iter_frames
from oaikit.streaming.stream import DEFAULT_BUFFER_SIZE, EventStream, StreamResult

__all__ = [
    "DEFAULT_BUFFER_SIZE",
    "DONE_SIGNAL",
    "EventDecoder",
    "EventStream",
    "JsonEventDecoder",
    "SSEFrame",
    "SSEParser",
    "StreamResult",
    "TaggedEventDecoder",
    "iter_frames",
]
