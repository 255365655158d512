#!/usr/bin/env python3
"""
Webhook verification example.

Verifies a webhook delivery and decodes it into a typed event. Hook
``handle_delivery`` into any web framework: it needs the raw body and the
``webhook-id``, ``webhook-timestamp`` and ``webhook-signature`` headers.

Usage:
    export OPENAI_WEBHOOK_SECRET="whsec_..."
    python examples/webhooks.py
"""

import base64
import json
import os
import time
from typing import Any

from oaikit import InvalidSignatureError, WebhookDeserializationError, WebhookEvent
from oaikit.webhooks import DEFAULT_TOLERANCE_SECONDS, build_event, compute_signature


class ResponseCompleted(WebhookEvent):
    data: dict[str, Any]


def handle_delivery(body: str, headers: dict[str, str], secret: str) -> int:
    """Return the HTTP status to answer the delivery with."""
    try:
        event = build_event(
            body,
            headers["webhook-signature"],
            headers["webhook-timestamp"],
            headers["webhook-id"],
            secret,
            variants={"response.completed": ResponseCompleted},
            tolerance=DEFAULT_TOLERANCE_SECONDS,
        )
    except InvalidSignatureError as e:
        print(f"rejected: {e}")
        return 400
    except WebhookDeserializationError as e:
        # Authentic but not understood; acknowledge so it is not redelivered
        print(f"unreadable payload: {e}")
        return 200

    if isinstance(event, ResponseCompleted):
        print(f"response {event.data['id']} completed")
    else:
        print(f"ignoring {event.type}")
    return 200


def main() -> None:
    """Sign a sample delivery locally and run it through the handler."""
    secret = os.getenv(
        "OPENAI_WEBHOOK_SECRET",
        "whsec_" + base64.b64encode(b"example-signing-key").decode(),
    )
    body = json.dumps(
        {
            "id": "evt_abc123",
            "type": "response.completed",
            "created_at": int(time.time()),
            "object": "event",
            "data": {"id": "resp_abc123"},
        }
    )
    timestamp = str(int(time.time()))
    headers = {
        "webhook-id": "wh_abc123",
        "webhook-timestamp": timestamp,
        "webhook-signature": "v1," + compute_signature(body, timestamp, "wh_abc123", secret),
    }

    print("valid delivery ->", handle_delivery(body, headers, secret))
    print("tampered delivery ->", handle_delivery(body.replace("abc", "xyz"), headers, secret))


if __name__ == "__main__":
    main()
