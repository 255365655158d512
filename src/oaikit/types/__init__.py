"""
Types layer - Event models for streams and webhooks.
"""

from oaikit.types.events import DoneEvent, ErrorEvent, StreamEvent, UnknownEvent
from oaikit.types.webhooks import WebhookEvent

__all__ = [
    "DoneEvent",
    "ErrorEvent",
    "StreamEvent",
    "UnknownEvent",
    "WebhookEvent",
]
