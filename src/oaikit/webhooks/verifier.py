"""Webhook signature verification.

Deliveries are signed Standard-Webhooks style: the signed payload is
``{webhook_id}.{timestamp}.{body}``, the key is the base64-decoded secret
(an optional ``whsec_`` prefix is dropped), and the signature header holds
one or more ``v1,<base64 HMAC-SHA256>`` entries separated by spaces.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import time
from typing import TYPE_CHECKING, Any, TypeVar

from oaikit.codec import decode_json, decode_tagged
from oaikit.errors import InvalidSignatureError, WebhookDeserializationError
from oaikit.telemetry import get_logger
from oaikit.types.webhooks import WebhookEvent

if TYPE_CHECKING:
    from collections.abc import Mapping

T = TypeVar("T")

DEFAULT_TOLERANCE_SECONDS = 300
SECRET_PREFIX = "whsec_"
SIGNATURE_VERSION = "v1"

logger = get_logger(__name__)


def decode_secret(secret: str) -> bytes:
    """Decode a webhook secret into HMAC key bytes.

    Raises:
        InvalidSignatureError: If the secret is not valid base64
    """
    key = secret.removeprefix(SECRET_PREFIX)
    try:
        return base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.debug("Webhook secret is not valid base64")
        raise InvalidSignatureError("failed to decode webhook secret from base64") from e


def compute_signature(body: str | bytes, timestamp: str, webhook_id: str, secret: str) -> str:
    """Compute the base64 HMAC-SHA256 signature of a delivery.

    Args:
        body: Raw request body; text is signed as UTF-8
        timestamp: Value of the ``webhook-timestamp`` header
        webhook_id: Value of the ``webhook-id`` header
        secret: Webhook secret, with or without the ``whsec_`` prefix

    Returns:
        Base64 signature (without the ``v1,`` version prefix)
    """
    raw_body = body if isinstance(body, bytes) else body.encode("utf-8")
    signed_payload = f"{webhook_id}.{timestamp}.".encode() + raw_body
    digest = hmac.new(
        key=decode_secret(secret),
        msg=signed_payload,
        digestmod=hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def constant_time_eq(a: str | bytes, b: str | bytes) -> bool:
    """Compare two values in time independent of where they differ."""
    left = a.encode("utf-8") if isinstance(a, str) else a
    right = b.encode("utf-8") if isinstance(b, str) else b
    if len(left) != len(right):
        return False
    result = 0
    for x, y in zip(left, right):
        result |= x ^ y
    return result == 0


def parse_signature_header(signature: str) -> list[str]:
    """Extract candidate signatures from a signature header.

    ``"v1,abc v1,def v2,xyz"`` yields ``["abc", "def"]``; a header without a
    comma is taken as one bare signature.
    """
    if "," not in signature:
        return [signature]

    candidates = []
    for entry in signature.split():
        parts = entry.split(",")
        if len(parts) == 2 and parts[0] == SIGNATURE_VERSION:
            candidates.append(parts[1])
    return candidates


def _check_timestamp(timestamp: str, tolerance: float, now: float | None) -> None:
    try:
        sent_at = int(timestamp)
    except ValueError as e:
        logger.debug("Webhook timestamp is not an integer")
        raise InvalidSignatureError("invalid webhook timestamp format") from e

    current = int(now if now is not None else time.time())
    if current - sent_at > tolerance:
        logger.debug("Webhook timestamp is too old", age=current - sent_at)
        raise InvalidSignatureError("webhook timestamp is too old")
    if sent_at > current + tolerance:
        logger.debug("Webhook timestamp is too new", skew=sent_at - current)
        raise InvalidSignatureError("webhook timestamp is too new")


def verify_signature(
    body: str | bytes,
    signature: str,
    timestamp: str,
    webhook_id: str,
    secret: str,
    *,
    tolerance: float | None = None,
    now: float | None = None,
) -> None:
    """Verify a webhook delivery.

    Args:
        body: Raw request body, exactly as received (bytes or text)
        signature: Value of the ``webhook-signature`` header
        timestamp: Value of the ``webhook-timestamp`` header
        webhook_id: Value of the ``webhook-id`` header
        secret: Webhook secret, with or without the ``whsec_`` prefix
        tolerance: Maximum clock skew in seconds (None = timestamp not checked)
        now: Current unix time, for testing

    Raises:
        InvalidSignatureError: If no signature matches, the secret cannot be
            decoded, or the timestamp is outside the tolerance
    """
    if tolerance is not None:
        _check_timestamp(timestamp, tolerance, now)

    expected = compute_signature(body, timestamp, webhook_id, secret)
    candidates = parse_signature_header(signature)

    matched = False
    for candidate in candidates:
        if constant_time_eq(expected, candidate):
            matched = True

    if not matched:
        logger.debug(
            "Webhook signature mismatch",
            webhook_id=webhook_id,
            candidates=len(candidates),
        )
        raise InvalidSignatureError()


def build_event(
    body: str | bytes,
    signature: str,
    timestamp: str,
    webhook_id: str,
    secret: str,
    *,
    target: type[T] | Any = WebhookEvent,
    variants: Mapping[str, Any] | None = None,
    tolerance: float | None = None,
    now: float | None = None,
) -> T:
    """Verify a webhook delivery and decode its body.

    Args:
        body: Raw request body
        signature: Value of the ``webhook-signature`` header
        timestamp: Value of the ``webhook-timestamp`` header
        webhook_id: Value of the ``webhook-id`` header
        secret: Webhook secret
        target: Type to decode into (also the fallback for unknown variants)
        variants: Event ``type`` -> model, for typed events
        tolerance: Maximum clock skew in seconds (None = timestamp not checked)
        now: Current unix time, for testing

    Returns:
        Decoded event

    Raises:
        InvalidSignatureError: If verification fails
        WebhookDeserializationError: If the verified body does not decode
    """
    verify_signature(
        body, signature, timestamp, webhook_id, secret, tolerance=tolerance, now=now
    )

    try:
        if variants:
            return decode_tagged(body, variants, default=target)
        return decode_json(target, body)
    except ValueError as e:
        logger.warning("Failed to deserialize webhook payload", webhook_id=webhook_id)
        raise WebhookDeserializationError(
            f"failed to deserialize webhook payload: {e}", body, cause=e
        ) from e
