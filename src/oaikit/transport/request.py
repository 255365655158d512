"""
Request descriptors and per-call request options.

A RequestDescriptor is immutable. Callers hand the executor a zero-argument
factory instead of a descriptor, so bodies that cannot be replayed (file
streams, forms read from disk) are rebuilt for every attempt.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Union
from urllib.parse import urlencode

from oaikit.errors import InvalidArgumentError

_NO_BODY = object()


@dataclass(frozen=True)
class FilePart:
    """One file in a multipart form."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True)
class MultipartForm:
    """Opaque multipart body: plain fields plus file parts."""

    fields: Mapping[str, str] = field(default_factory=dict)
    files: Mapping[str, FilePart] = field(default_factory=dict)

    def to_httpx(self) -> tuple[dict[str, str], dict[str, tuple[str, bytes, str]]]:
        """Split into the ``data`` and ``files`` arguments httpx expects."""
        files = {
            name: (part.filename, part.content, part.content_type)
            for name, part in self.files.items()
        }
        return dict(self.fields), files


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything needed to send one HTTP request.

    Attributes:
        method: HTTP method
        url: Path relative to the configured base URL, or an absolute URL
        query: Query pairs, in order
        headers: Request-specific headers
        json_body: JSON-serializable body
        content: Raw byte body
        form: Multipart form body
        escape_non_ascii: Serialize JSON with non-ASCII characters escaped
    """

    method: str
    url: str
    query: tuple[tuple[str, str], ...] = ()
    headers: Mapping[str, str] = field(default_factory=dict)
    json_body: Any = _NO_BODY
    content: bytes | None = None
    form: MultipartForm | None = None
    escape_non_ascii: bool = False

    def __post_init__(self) -> None:
        bodies = [self.has_json, self.content is not None, self.form is not None]
        if sum(bodies) > 1:
            raise InvalidArgumentError(
                "a request carries at most one of json_body, content or form",
                field="body",
            )

    @property
    def has_json(self) -> bool:
        return self.json_body is not _NO_BODY

    def encode_json(self) -> bytes:
        """Serialize the JSON body to UTF-8 bytes."""
        try:
            text = json.dumps(
                self.json_body,
                ensure_ascii=self.escape_non_ascii,
                separators=(",", ":"),
            )
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"body is not JSON serializable: {e}", field="body") from e
        return text.encode("utf-8")

    def with_options(self, options: RequestOptions | None) -> RequestDescriptor:
        """Merge per-call options into a copy of this descriptor."""
        if options is None:
            return self
        return replace(
            self,
            query=self.query + options.query,
            headers={**self.headers, **options.headers},
        )

    @classmethod
    def get(cls, url: str, *, query: Mapping[str, Any] | None = None) -> RequestDescriptor:
        return cls("GET", url, query=_query_pairs(query))

    @classmethod
    def delete(cls, url: str) -> RequestDescriptor:
        return cls("DELETE", url)

    @classmethod
    def post(cls, url: str, body: Any = _NO_BODY) -> RequestDescriptor:
        return cls("POST", url, json_body=body)


RequestFactory = Callable[[], Union[RequestDescriptor, Awaitable[RequestDescriptor]]]
"""Zero-argument producer of a fresh descriptor, sync or async."""


def _query_pairs(query: Mapping[str, Any] | None) -> tuple[tuple[str, str], ...]:
    if not query:
        return ()
    pairs = []
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        pairs.append((key, str(value)))
    return tuple(pairs)


def _validate_header(name: str, value: str) -> None:
    if not name or any(c in name for c in " :\r\n\t"):
        raise InvalidArgumentError(f"invalid header name: {name!r}", field="headers")
    if "\r" in value or "\n" in value:
        raise InvalidArgumentError(f"invalid header value for {name}", field="headers")


class RequestOptions:
    """Extra query parameters and headers for a single call.

    Example:
        >>> options = RequestOptions().with_header("X-Trace", "abc").with_query({"limit": 10})
        >>> options.query_string()
        'limit=10'
    """

    def __init__(self) -> None:
        self._query: list[tuple[str, str]] = []
        self._headers: dict[str, str] = {}

    def with_header(self, name: str, value: str) -> RequestOptions:
        """Add or replace one header.

        Raises:
            InvalidArgumentError: If the name or value is not a valid header
        """
        _validate_header(name, value)
        self._headers[name] = value
        return self

    def with_headers(self, headers: Mapping[str, str]) -> RequestOptions:
        """Merge headers; later values replace earlier ones."""
        for name, value in headers.items():
            self.with_header(name, value)
        return self

    def with_query(self, query: Mapping[str, Any]) -> RequestOptions:
        """Append query parameters; existing ones are kept."""
        self._query.extend(_query_pairs(query))
        return self

    @property
    def query(self) -> tuple[tuple[str, str], ...]:
        return tuple(self._query)

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def query_string(self) -> str:
        return urlencode(self._query)
