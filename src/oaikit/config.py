"""
Client configuration.

Settings resolve in the order explicit value > environment > default.
A configuration can also be loaded from a YAML or JSON file.
"""

from __future__ import annotations

import json
import os
from contextlib import suppress
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from oaikit.resilience.backoff import BackoffConfig
from oaikit.transport.auth import bearer_header, resolve_api_key

DEFAULT_API_BASE = "https://api.openai.com/v1"
ORGANIZATION_HEADER = "OpenAI-Organization"
PROJECT_HEADER = "OpenAI-Project"

_DEFAULT_TIMEOUT = 600.0
_DEFAULT_CONNECT_TIMEOUT = 10.0
_DEFAULT_STREAM_BUFFER = 64


def _env_float(name: str) -> float | None:
    value = os.getenv(name)
    if value:
        with suppress(ValueError):
            return float(value)
    return None


def trust_env_enabled() -> bool:
    """Use env proxy settings only when explicitly enabled."""
    return os.getenv("OAIKIT_HTTP_TRUST_ENV", "0") == "1"


@dataclass(frozen=True)
class ClientConfig:
    """Configuration shared by every call made through a client.

    Attributes:
        api_base: Base URL that request paths are joined to
        api_key: API key sent as a bearer token
        organization: Value for the organization header
        project: Value for the project header
        headers: Extra headers added to every request
        query: Query pairs added to every request
        timeout: Read/write timeout in seconds
        connect_timeout: Connect timeout in seconds
        proxy: Proxy URL
        backoff: Retry backoff for rate-limited calls
        stream_buffer_size: Max decoded events buffered per stream (0 = unbounded)
    """

    api_base: str = DEFAULT_API_BASE
    api_key: str | None = None
    organization: str | None = None
    project: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    query: tuple[tuple[str, str], ...] = ()
    timeout: float = _DEFAULT_TIMEOUT
    connect_timeout: float = _DEFAULT_CONNECT_TIMEOUT
    proxy: str | None = None
    backoff: BackoffConfig = field(default_factory=BackoffConfig)
    stream_buffer_size: int = _DEFAULT_STREAM_BUFFER

    def __post_init__(self) -> None:
        if self.stream_buffer_size < 0:
            raise ValueError("stream_buffer_size must be >= 0")

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientConfig:
        """Build a config from the environment, with explicit overrides.

        Environment variables:
            OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_ORG_ID, OPENAI_PROJECT_ID,
            OAIKIT_HTTP_TIMEOUT_SECS, OAIKIT_PROXY_URL (only when
            OAIKIT_HTTP_TRUST_ENV=1)
        """
        values: dict[str, Any] = {
            "api_base": os.getenv("OPENAI_BASE_URL") or DEFAULT_API_BASE,
            "api_key": resolve_api_key(overrides.pop("api_key", None)),
            "organization": os.getenv("OPENAI_ORG_ID"),
            "project": os.getenv("OPENAI_PROJECT_ID"),
        }

        timeout = _env_float("OAIKIT_HTTP_TIMEOUT_SECS")
        if timeout is not None:
            values["timeout"] = timeout

        if trust_env_enabled():
            values["proxy"] = os.getenv("OAIKIT_PROXY_URL")

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientConfig:
        """Build a config from a mapping; missing values fall back to the environment.

        Unknown keys are ignored.
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}

        if "backoff" in values and not isinstance(values["backoff"], BackoffConfig):
            values["backoff"] = BackoffConfig.from_dict(values["backoff"])
        if "query" in values:
            query = values["query"]
            items = query.items() if isinstance(query, dict) else query
            values["query"] = tuple((str(k), str(v)) for k, v in items)
        if "headers" in values:
            values["headers"] = {str(k): str(v) for k, v in values["headers"].items()}

        return cls.from_env(**values)

    @classmethod
    def from_file(cls, path: str | Path) -> ClientConfig:
        """Load a config from a YAML or JSON file.

        Args:
            path: File path; ``.json`` files are parsed as JSON, anything else as YAML

        Returns:
            ClientConfig instance
        """
        path = Path(path)
        content = path.read_text(encoding="utf-8")
        data = json.loads(content) if path.suffix == ".json" else yaml.safe_load(content)
        if not isinstance(data, dict):
            raise ValueError(f"config file {path} must contain a mapping")
        return cls.from_dict(data)

    def with_overrides(self, **changes: Any) -> ClientConfig:
        """Copy of this config with some fields replaced."""
        return replace(self, **changes)

    def url(self, path: str) -> str:
        """Full URL for a request path; absolute URLs are returned unchanged."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.api_base.rstrip('/')}/{path.lstrip('/')}"

    def request_headers(self) -> dict[str, str]:
        """Headers sent with every request: auth, organization, project, extras."""
        headers = bearer_header(self.api_key)
        if self.organization:
            headers[ORGANIZATION_HEADER] = self.organization
        if self.project:
            headers[PROJECT_HEADER] = self.project
        headers.update(self.headers)
        return headers
