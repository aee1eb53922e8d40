"""
Webhook verification for payment provider events.

The provider signs each delivery with the endpoint secret:

    Stripe-Signature: t=<unix ts>,v1=<hex hmac-sha256(secret, "<t>.<payload>")>

Verification FAILS CLOSED when no secret is configured.
"""
import hashlib
import hmac
import logging
import time
from typing import Optional

from config import settings

logger = logging.getLogger(__name__)


def parse_signature_header(header: str) -> tuple[Optional[int], list[str]]:
    """Split the signature header into its timestamp and v1 signatures."""
    timestamp = None
    signatures = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return None, []
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def compute_signature(payload: bytes, timestamp: int, secret: str) -> str:
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def verify_webhook_signature(payload: bytes, header: str, now: Optional[float] = None) -> bool:
    """Check the signature header against the configured webhook secret."""
    if not settings.stripe_webhook_secret:
        logger.error(
            "STRIPE_WEBHOOK_SECRET not configured — rejecting webhook. "
            "Set STRIPE_WEBHOOK_SECRET in .env to accept provider webhooks."
        )
        return False

    if not header:
        logger.warning("Webhook received without signature header")
        return False

    timestamp, signatures = parse_signature_header(header)
    if timestamp is None or not signatures:
        logger.warning("Webhook signature header is malformed")
        return False

    now = time.time() if now is None else now
    if abs(now - timestamp) > settings.webhook_tolerance_seconds:
        logger.warning(f"Webhook timestamp outside tolerance ({int(now - timestamp)}s)")
        return False

    expected = compute_signature(payload, timestamp, settings.stripe_webhook_secret)
    return any(hmac.compare_digest(expected, sig) for sig in signatures)
