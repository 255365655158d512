"""oaikit: async transport and streaming engine for the OpenAI HTTP API.

Executes requests with rate-limit-aware backoff, adapts server-sent event
streams into typed async iterators and verifies inbound webhook deliveries.
Endpoint-specific code plugs in by supplying request factories and target
types.
"""
from __future__ import annotations

from oaikit._features import HAS_HTTP2, HAS_KEYRING, require_extra
from oaikit.client import Client, ClientBuilder
from oaikit.config import ClientConfig
from oaikit.errors import (
    ApiError,
    ApiErrorBody,
    DeserializationError,
    InvalidArgumentError,
    InvalidSignatureError,
    OaiKitError,
    RateLimitedError,
    StreamDecodeError,
    TransportError,
    WebhookDeserializationError,
    WebhookError,
)
from oaikit.resilience import BackoffConfig, BackoffPolicy, RequestExecutor
from oaikit.streaming import EventStream, JsonEventDecoder, StreamResult, TaggedEventDecoder
from oaikit.transport import (
    FilePart,
    MultipartForm,
    RawResponse,
    RequestDescriptor,
    RequestOptions,
)
from oaikit.types import DoneEvent, ErrorEvent, StreamEvent, UnknownEvent, WebhookEvent

__version__ = "0.1.0"

__all__ = [
    # Client
    "Client",
    "ClientBuilder",
    "ClientConfig",
    # Feature flags
    "HAS_HTTP2",
    "HAS_KEYRING",
    "require_extra",
    # Errors
    "ApiError",
    "ApiErrorBody",
    "DeserializationError",
    "InvalidArgumentError",
    "InvalidSignatureError",
    "OaiKitError",
    "RateLimitedError",
    "StreamDecodeError",
    "TransportError",
    "WebhookDeserializationError",
    "WebhookError",
    # Resilience
    "BackoffConfig",
    "BackoffPolicy",
    "RequestExecutor",
    # Streaming
    "EventStream",
    "JsonEventDecoder",
    "StreamResult",
    "TaggedEventDecoder",
    # Transport
    "FilePart",
    "MultipartForm",
    "RawResponse",
    "RequestDescriptor",
    "RequestOptions",
    # Types
    "DoneEvent",
    "ErrorEvent",
    "StreamEvent",
    "UnknownEvent",
    "WebhookEvent",
    # Version
    "__version__",
]
