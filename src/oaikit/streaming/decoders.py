"""
Frame decoders - turn SSE frames into typed values.

- JsonEventDecoder: every frame's data is one JSON value of a single type
- TaggedEventDecoder: the frame's event name selects the type of its data
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from oaikit.codec import decode_json
from oaikit.errors import ApiErrorBody, StreamDecodeError
from oaikit.types.events import DoneEvent, ErrorEvent, StreamEvent, UnknownEvent

if TYPE_CHECKING:
    from collections.abc import Mapping

    from oaikit.streaming.sse import SSEFrame

T = TypeVar("T")


class EventDecoder(ABC, Generic[T]):
    """Decodes one SSE frame into a value."""

    @abstractmethod
    def decode(self, frame: SSEFrame) -> T:
        """Decode a frame.

        Raises:
            StreamDecodeError: If the frame cannot be decoded
        """
        raise NotImplementedError


class JsonEventDecoder(EventDecoder[T]):
    """Single-kind decoder: each frame's data is JSON of ``target``.

    Example:
        >>> decoder = JsonEventDecoder(ChatCompletionChunk)
    """

    def __init__(self, target: type[T] | Any) -> None:
        self._target = target

    @property
    def target(self) -> Any:
        return self._target

    def decode(self, frame: SSEFrame) -> T:
        try:
            return decode_json(self._target, frame.data)
        except ValueError as e:
            raise StreamDecodeError(
                f"failed to decode stream frame: {e}",
                frame.data,
                event=frame.event,
                cause=e,
            ) from e


class TaggedEventDecoder(EventDecoder[StreamEvent]):
    """Multi-kind decoder keyed by the frame's event name.

    Each registered name maps to the type its data decodes into. The names
    ``error`` and ``done`` decode into ErrorEvent and DoneEvent unless they
    are registered explicitly. Frames with an unregistered name become an
    UnknownEvent, or a decode error when ``strict`` is set.

    Args:
        variants: Event name -> data type
        strict: Treat unregistered event names as decode errors

    Example:
        >>> decoder = TaggedEventDecoder({
        ...     "thread.run.created": Run,
        ...     "thread.message.delta": MessageDelta,
        ... })
    """

    def __init__(self, variants: Mapping[str, Any], *, strict: bool = False) -> None:
        self._variants = dict(variants)
        self._strict = strict

    @property
    def variants(self) -> dict[str, Any]:
        return dict(self._variants)

    def decode(self, frame: SSEFrame) -> StreamEvent:
        name = frame.event_type
        target = self._variants.get(name)

        try:
            if target is not None:
                return StreamEvent(event=name, data=decode_json(target, frame.data))
            if name == "error":
                return ErrorEvent(data=ApiErrorBody.parse(frame.data))
            if name == "done":
                return DoneEvent(data=frame.data)
        except ValueError as e:
            raise StreamDecodeError(
                f"failed to decode '{name}' event: {e}",
                frame.data,
                event=name,
                cause=e,
            ) from e

        if self._strict:
            raise StreamDecodeError(f"unknown event: {name}", frame.data, event=name)
        return UnknownEvent(event=name, data=frame.data)
