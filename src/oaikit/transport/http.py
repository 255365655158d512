"""
HTTP transport using httpx for async requests.

Provides:
- Full-body requests for JSON, raw byte and multipart bodies
- Streaming responses for server-sent events
- Configurable timeouts and proxy
- Automatic header management
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING, Any

import httpx

from oaikit._features import HAS_HTTP2
from oaikit.errors import TransportError
from oaikit.telemetry import get_logger
from oaikit.transport.response import RawResponse

if TYPE_CHECKING:
    from oaikit.config import ClientConfig
    from oaikit.transport.request import RequestDescriptor

logger = get_logger(__name__)

_UA_VERSION: str | None = None


def _get_ua_version() -> str:
    """Get package version for User-Agent (cached)."""
    global _UA_VERSION
    if _UA_VERSION is None:
        try:
            _UA_VERSION = version("oaikit")
        except PackageNotFoundError:
            _UA_VERSION = "0.1.0"
    return _UA_VERSION


def _transport_error(e: httpx.HTTPError, url: str) -> TransportError:
    if isinstance(e, httpx.ConnectError):
        message = f"Connection failed: {e}"
    elif isinstance(e, httpx.TimeoutException):
        message = f"Request timed out: {e}"
    else:
        message = f"HTTP error: {e}"
    return TransportError(message, url=url, cause=e)


class HttpTransport:
    """HTTP transport for API communication.

    Uses httpx for async HTTP requests with streaming support.

    Example:
        >>> transport = HttpTransport(ClientConfig.from_env())
        >>> raw = await transport.send(RequestDescriptor.get("/models"))
        >>> raw.status_code
        200
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize HTTP transport.

        Args:
            config: Client configuration (default: resolved from environment)
            client: Pre-built httpx client; the transport will not close it
        """
        if config is None:
            from oaikit.config import ClientConfig

            config = ClientConfig.from_env()

        self._config = config
        self._client = client
        self._owns_client = client is None

    @property
    def config(self) -> ClientConfig:
        return self._config

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            from oaikit.config import trust_env_enabled

            timeout = httpx.Timeout(
                self._config.timeout,
                connect=self._config.connect_timeout,
            )
            self._client = httpx.AsyncClient(
                timeout=timeout,
                proxy=self._config.proxy,
                http2=HAS_HTTP2,
                trust_env=trust_env_enabled(),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _build_headers(self, descriptor: RequestDescriptor, accept: str) -> dict[str, str]:
        headers = {
            "Accept": accept,
            "User-Agent": f"oaikit/{_get_ua_version()}",
        }
        if descriptor.has_json:
            headers["Content-Type"] = "application/json"
        headers.update(self._config.request_headers())
        headers.update(descriptor.headers)
        return headers

    def build_request(
        self,
        descriptor: RequestDescriptor,
        *,
        accept: str = "application/json",
    ) -> httpx.Request:
        """Turn a descriptor into an httpx request.

        Args:
            descriptor: Request descriptor
            accept: Accept header value

        Returns:
            Request ready to send
        """
        kwargs: dict[str, Any] = {}
        if descriptor.has_json:
            kwargs["content"] = descriptor.encode_json()
        elif descriptor.content is not None:
            kwargs["content"] = descriptor.content
        elif descriptor.form is not None:
            data, files = descriptor.form.to_httpx()
            kwargs["data"] = data
            kwargs["files"] = files

        return self._get_client().build_request(
            descriptor.method,
            self._config.url(descriptor.url),
            params=list(self._config.query) + list(descriptor.query),
            headers=self._build_headers(descriptor, accept),
            **kwargs,
        )

    async def send(self, descriptor: RequestDescriptor) -> RawResponse:
        """Send a request and read the full response body.

        Args:
            descriptor: Request descriptor

        Returns:
            Response with status, headers and body, whatever the status

        Raises:
            TransportError: On network/connection errors
        """
        request = self.build_request(descriptor)
        try:
            response = await self._get_client().send(request)
        except httpx.HTTPError as e:
            raise _transport_error(e, str(request.url)) from e

        return RawResponse(
            status_code=response.status_code,
            content=response.content,
            headers={k.lower(): v for k, v in response.headers.items()},
            url=str(request.url),
        )

    async def open_stream(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Send a request and return the response with its body unread.

        The caller owns the response and must ``aclose()`` it.

        Args:
            descriptor: Request descriptor

        Returns:
            Open streaming response

        Raises:
            TransportError: On network/connection errors
        """
        request = self.build_request(descriptor, accept="text/event-stream")
        try:
            response = await self._get_client().send(request, stream=True)
        except httpx.HTTPError as e:
            raise _transport_error(e, str(request.url)) from e

        logger.debug("Stream opened", url=str(request.url), status_code=response.status_code)
        return response

    async def read_body(self, response: httpx.Response) -> RawResponse:
        """Read and close a streaming response that will not be streamed.

        Raises:
            TransportError: If the body cannot be read
        """
        url = str(response.request.url)
        try:
            content = await response.aread()
        except httpx.HTTPError as e:
            raise _transport_error(e, url) from e
        finally:
            await response.aclose()

        return RawResponse(
            status_code=response.status_code,
            content=content,
            headers={k.lower(): v for k, v in response.headers.items()},
            url=url,
        )

    async def __aenter__(self) -> HttpTransport:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
