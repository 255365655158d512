"""Root pytest fixtures for oaikit tests."""

from __future__ import annotations

import base64
import logging

import pytest

from oaikit.config import ClientConfig
from oaikit.resilience import BackoffConfig
from oaikit.telemetry import LogLevel, OaiKitLogger, clear_log_context

API_BASE = "https://api.test/v1"
API_KEY = "sk-test-0123456789abcdefghij"
WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"super-secret-signing-key-32bytes").decode()

_ENV_VARS = (
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "OPENAI_ORG_ID",
    "OPENAI_PROJECT_ID",
    "OAIKIT_HTTP_TIMEOUT_SECS",
    "OAIKIT_HTTP_TRUST_ENV",
    "OAIKIT_PROXY_URL",
)


class FakeClock:
    """Monotonic clock that only advances when the executor sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment and keyring out of tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("oaikit.transport.auth.HAS_KEYRING", False)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo OaiKitLogger.configure() between tests."""
    yield
    for logger in OaiKitLogger._loggers.values():
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
    OaiKitLogger._handler = None
    OaiKitLogger._level = LogLevel.WARNING
    clear_log_context()


@pytest.fixture
def fast_backoff() -> BackoffConfig:
    """Deterministic backoff: 10ms doubling, no jitter, 5s budget."""
    return BackoffConfig(
        initial_interval=0.01,
        multiplier=2.0,
        max_interval=1.0,
        max_elapsed_time=5.0,
        randomization_factor=0.0,
    )


@pytest.fixture
def config(fast_backoff: BackoffConfig) -> ClientConfig:
    """Client config pointing at a fake API host."""
    return ClientConfig(api_base=API_BASE, api_key=API_KEY, backoff=fast_backoff)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def webhook_secret() -> str:
    return WEBHOOK_SECRET
