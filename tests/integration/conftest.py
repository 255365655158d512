"""
Integration test helper utilities.

Shared fixtures and payload builders for client tests against a mocked API.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest_asyncio

from oaikit.client import Client

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from oaikit.config import ClientConfig


def mock_chat_completion(content: str = "Hello!", model: str = "gpt-4o") -> dict:
    """Create a mock chat completion response."""
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1699012345,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


def mock_chat_chunks(content: str, model: str = "gpt-4o") -> list[dict]:
    """One chat.completion.chunk per character of ``content``."""
    return [
        {
            "id": "chatcmpl-123",
            "object": "chat.completion.chunk",
            "created": 1699012345,
            "model": model,
            "choices": [{"index": 0, "delta": {"content": char}, "finish_reason": None}],
        }
        for char in content
    ]


def sse_body(payloads: list[Any], *, done: bool = True) -> bytes:
    """Encode payloads as unnamed SSE frames, optionally ending with [DONE]."""
    lines = [f"data: {json.dumps(p)}\n\n" for p in payloads]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


def sse_named(events: list[tuple[str, Any]]) -> bytes:
    """Encode (event name, payload) pairs as named SSE frames."""
    frames = []
    for name, payload in events:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        frames.append(f"event: {name}\ndata: {data}\n\n")
    return "".join(frames).encode()


def rate_limited(message: str = "Rate limit reached for requests", code: str | None = None) -> dict:
    """429 error envelope."""
    return {"error": {"message": message, "type": "requests", "param": None, "code": code}}


@pytest_asyncio.fixture
async def client(config: ClientConfig, clock) -> AsyncIterator[Client]:
    """Client against the fake API host; retries sleep on the fake clock."""
    async with Client(config, sleep=clock.sleep) as client:
        yield client
