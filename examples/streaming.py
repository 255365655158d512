#!/usr/bin/env python3
"""
Streaming response example.

This example streams a chat completion chunk by chunk, then streams an
assistant run whose events are decoded by event name.

Usage:
    export OPENAI_API_KEY="your-api-key"
    python examples/streaming.py
"""

import asyncio
from typing import Any

from pydantic import BaseModel

from oaikit import Client, RequestOptions
from oaikit.telemetry import LogLevel, OaiKitLogger


class ChatChunk(BaseModel):
    id: str
    choices: list[dict[str, Any]]


class Run(BaseModel):
    id: str
    status: str


class MessageDelta(BaseModel):
    id: str
    delta: dict[str, Any]


async def main() -> None:
    """Run streaming example."""
    OaiKitLogger.configure(level=LogLevel.WARNING, format="text")

    async with Client.builder().header("X-Example", "streaming").build() as client:
        print("Streaming response:\n")
        print("-" * 50)

        stream = await client.post_stream(
            "/chat/completions",
            {
                "model": "gpt-4o-mini",
                "messages": [{"role": "user", "content": "Write a haiku about rivers."}],
                "stream": True,
            },
            ChatChunk,
        )
        async with stream:
            async for result in stream:
                if not result.success:
                    # A bad frame does not end the stream
                    print(f"\n[skipped frame: {result.error}]")
                    continue
                for choice in result.value.choices:
                    print(choice["delta"].get("content") or "", end="", flush=True)

        print("\n" + "-" * 50)

        # Assistants runs emit several event kinds on one stream
        thread_id = "thread_abc123"
        stream = await client.post_stream_tagged(
            f"/threads/{thread_id}/runs",
            {"assistant_id": "asst_abc123", "stream": True},
            {
                "thread.run.created": Run,
                "thread.run.completed": Run,
                "thread.message.delta": MessageDelta,
            },
            options=RequestOptions().with_header("OpenAI-Beta", "assistants=v2"),
        )
        async with stream:
            async for event in stream.events(skip_errors=True):
                if event.is_error:
                    print(f"\n[Error: {event.as_error.message}]")
                elif event.is_unknown:
                    print(f"[{event.event}]")
                elif event.event == "thread.message.delta":
                    for part in event.data.delta.get("content", []):
                        print(part.get("text", {}).get("value", ""), end="", flush=True)
                elif isinstance(event.data, Run):
                    print(f"\n[{event.event}: {event.data.status}]")


if __name__ == "__main__":
    asyncio.run(main())
