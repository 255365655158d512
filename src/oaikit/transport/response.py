"""
Fully-read HTTP response.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from oaikit.telemetry import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RawResponse:
    """Status, headers and complete body of a response.

    Header names are stored lower-cased.
    """

    status_code: int
    content: bytes
    headers: dict[str, str] = field(default_factory=dict)
    url: str | None = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def header(self, name: str) -> str | None:
        """Value of an expected response header.

        A missing header is not an error: it is logged and ``None`` is returned.
        """
        value = self.headers.get(name.lower())
        if value is None:
            logger.warning(
                "Expected response header is missing",
                header=name,
                status_code=self.status_code,
                url=self.url,
            )
        return value
