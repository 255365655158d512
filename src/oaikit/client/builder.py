"""
Builder for fluent client construction.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from oaikit._features import require_extra
from oaikit.config import ClientConfig
from oaikit.resilience.backoff import BackoffConfig

if TYPE_CHECKING:
    import httpx

    from oaikit.client.core import Client


class ClientBuilder:
    """Builder for creating Client instances with custom configuration.

    Values not set on the builder are resolved from the environment (or from
    the base config, when one is given).

    Example:
        >>> client = (
        ...     ClientBuilder()
        ...     .api_key("sk-...")
        ...     .organization("org-123")
        ...     .backoff(BackoffConfig(max_elapsed_time=60))
        ...     .build()
        ... )
    """

    def __init__(self, base: ClientConfig | None = None) -> None:
        """Initialize the builder.

        Args:
            base: Config to start from instead of the environment
        """
        self._base = base
        self._overrides: dict[str, Any] = {}
        self._headers: dict[str, str] = {}
        self._query: list[tuple[str, str]] = []
        self._http_client: httpx.AsyncClient | None = None

    @classmethod
    def from_file(cls, path: str | Path) -> ClientBuilder:
        """Start from a YAML or JSON config file."""
        return cls(ClientConfig.from_file(path))

    def api_key(self, key: str) -> ClientBuilder:
        """Set explicit API key.

        Args:
            key: API key

        Returns:
            Self for chaining
        """
        self._overrides["api_key"] = key
        return self

    def api_key_from_keyring(self, user: str = "openai") -> ClientBuilder:
        """Read the API key from the system keyring (service ``oaikit``).

        Raises:
            ImportError: If the keyring extra is not installed
            ValueError: If the keyring holds no key for ``user``
        """
        require_extra("keyring", "keyring")
        from oaikit.transport.auth import keyring_api_key

        key = keyring_api_key(user)
        if not key:
            raise ValueError(f"no API key in keyring for user '{user}'")
        return self.api_key(key)

    def api_base(self, url: str) -> ClientBuilder:
        """Override base URL.

        Args:
            url: Base URL for API requests

        Returns:
            Self for chaining
        """
        self._overrides["api_base"] = url
        return self

    def organization(self, org_id: str) -> ClientBuilder:
        self._overrides["organization"] = org_id
        return self

    def project(self, project_id: str) -> ClientBuilder:
        self._overrides["project"] = project_id
        return self

    def header(self, name: str, value: str) -> ClientBuilder:
        """Add a header sent with every request."""
        self._headers[name] = value
        return self

    def query(self, name: str, value: str) -> ClientBuilder:
        """Add a query parameter sent with every request."""
        self._query.append((name, value))
        return self

    def timeout(self, seconds: float, *, connect: float | None = None) -> ClientBuilder:
        """Set request timeout.

        Args:
            seconds: Read/write timeout in seconds
            connect: Connect timeout in seconds

        Returns:
            Self for chaining
        """
        self._overrides["timeout"] = seconds
        if connect is not None:
            self._overrides["connect_timeout"] = connect
        return self

    def proxy(self, url: str) -> ClientBuilder:
        self._overrides["proxy"] = url
        return self

    def backoff(self, config: BackoffConfig) -> ClientBuilder:
        """Set the backoff used for rate-limited calls."""
        self._overrides["backoff"] = config
        return self

    def no_retry(self) -> ClientBuilder:
        """Fail rate-limited calls immediately."""
        return self.backoff(BackoffConfig.no_retry())

    def stream_buffer_size(self, size: int) -> ClientBuilder:
        """Set how many decoded events a stream buffers (0 = unbounded)."""
        self._overrides["stream_buffer_size"] = size
        return self

    def http_client(self, client: httpx.AsyncClient) -> ClientBuilder:
        """Use a pre-built httpx client; the Client will not close it."""
        self._http_client = client
        return self

    def build_config(self) -> ClientConfig:
        """Resolve the configuration without creating a client."""
        base = self._base or ClientConfig.from_env(api_key=self._overrides.get("api_key"))
        overrides = dict(self._overrides)
        if self._headers:
            overrides["headers"] = {**base.headers, **self._headers}
        if self._query:
            overrides["query"] = base.query + tuple(self._query)
        return base.with_overrides(**overrides)

    def build(self) -> Client:
        """Build the Client instance.

        Returns:
            Configured Client
        """
        from oaikit.client.core import Client
        from oaikit.transport import HttpTransport

        config = self.build_config()
        transport = HttpTransport(config, client=self._http_client)
        return Client(config, transport=transport)
