"""
Streaming event models for multi-kind streams.

Streams whose frames carry an ``event:`` name (assistants, responses) decode
into a StreamEvent whose ``event`` field names the kind and whose ``data``
holds the decoded payload.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from oaikit.errors import ApiErrorBody


class StreamEvent(BaseModel):
    """Named streaming event.

    Example:
        >>> async for result in stream:
        ...     event = result.unwrap()
        ...     match event.event:
        ...         case "thread.message.delta":
        ...             print(event.data.delta)
        ...         case "error":
        ...             print(event.as_error)
    """

    model_config = ConfigDict(extra="allow")

    event: str = Field(description="Event name from the SSE frame")
    data: Any = Field(default=None, description="Decoded payload")

    @property
    def is_error(self) -> bool:
        """Check if this is a server-sent error event."""
        return isinstance(self, ErrorEvent)

    @property
    def is_done(self) -> bool:
        """Check if this is a named ``done`` event."""
        return isinstance(self, DoneEvent)

    @property
    def is_unknown(self) -> bool:
        """Check if the event name had no registered variant."""
        return isinstance(self, UnknownEvent)

    @property
    def as_error(self) -> ApiErrorBody:
        """Get the error body. Raises if wrong type."""
        if not isinstance(self, ErrorEvent):
            raise TypeError(f"Event is {self.event}, not error")
        return self.data


class ErrorEvent(StreamEvent):
    """Error reported in-band by the server."""

    event: str = "error"
    data: ApiErrorBody = Field(description="Error envelope")


class DoneEvent(StreamEvent):
    """Named end-of-stream event (``event: done``)."""

    event: str = "done"
    data: str = Field(default="[DONE]", description="Raw frame data")


class UnknownEvent(StreamEvent):
    """Event whose name has no registered variant; data is kept as text."""

    data: str = Field(description="Raw frame data")
