"""Webhook signature verification for identity provider callbacks."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import time
from collections.abc import Mapping

SECRET_PREFIX = "whsec_"


class WebhookVerificationError(Exception):
    """Raised when a webhook payload cannot be authenticated."""


def _decode_secret(secret: str) -> bytes:
    raw = secret[len(SECRET_PREFIX):] if secret.startswith(SECRET_PREFIX) else secret
    try:
        return base64.b64decode(raw)
    except (binascii.Error, ValueError) as exc:
        raise WebhookVerificationError("Webhook signing secret is not valid base64.") from exc


def sign_payload(*, secret: str, message_id: str, timestamp: str, body: bytes) -> str:
    """Return the ``v1,<base64>`` signature for one delivery."""

    signed = f"{message_id}.{timestamp}.".encode("utf-8") + body
    digest = hmac.new(_decode_secret(secret), signed, hashlib.sha256).digest()
    return "v1," + base64.b64encode(digest).decode("ascii")


def verify_webhook_signature(
    *,
    headers: Mapping[str, str],
    body: bytes,
    secret: str,
    tolerance_seconds: int = 300,
    now: float | None = None,
) -> None:
    """Check ``svix-*`` headers against ``body``.

    Verification is skipped when no secret is configured.
    """

    if not secret:
        return

    message_id = headers.get("svix-id")
    timestamp = headers.get("svix-timestamp")
    signature_header = headers.get("svix-signature")
    if not message_id or not timestamp or not signature_header:
        raise WebhookVerificationError("Missing webhook signature headers.")

    try:
        sent_at = int(timestamp)
    except ValueError as exc:
        raise WebhookVerificationError("Invalid webhook timestamp.") from exc

    current = time.time() if now is None else now
    if abs(current - sent_at) > tolerance_seconds:
        raise WebhookVerificationError("Webhook timestamp outside tolerance.")

    expected = sign_payload(secret=secret, message_id=message_id, timestamp=timestamp, body=body)
    for candidate in signature_header.split():
        version, _, _ = candidate.partition(",")
        if version == "v1" and hmac.compare_digest(candidate, expected):
            return

    raise WebhookVerificationError("Webhook signature mismatch.")
