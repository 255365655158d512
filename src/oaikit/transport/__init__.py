"""
Transport layer - HTTP client for API communication.

Provides httpx-based transport with:
- Async streaming support
- Proxy configuration
- Timeout management
- API key resolution
- Immutable request descriptors rebuilt per attempt
"""

from oaikit.transport.auth import resolve_api_key
from oaikit.transport.http import HttpTransport
from oaikit.transport.request import (
    FilePart,
    MultipartForm,
    RequestDescriptor,
    RequestFactory,
    RequestOptions,
)
from oaikit.transport.response import RawResponse

__all__ = [
    "FilePart",
    "HttpTransport",
    "MultipartForm",
    "RawResponse",
    "RequestDescriptor",
    "RequestFactory",
    "RequestOptions",
    "resolve_api_key",
]
