"""
Webhooks - Signature verification and event decoding for inbound deliveries.
"""

from oaikit.types.webhooks import WebhookEvent
from oaikit.webhooks.verifier import (
    DEFAULT_TOLERANCE_SECONDS,
    build_event,
    compute_signature,
    constant_time_eq,
    decode_secret,
    parse_signature_header,
    verify_signature,
)

__all__ = [
    "DEFAULT_TOLERANCE_SECONDS",
    "WebhookEvent",
    "build_event",
    "compute_signature",
    "constant_time_eq",
    "decode_secret",
    "parse_signature_header",
    "verify_signature",
]
