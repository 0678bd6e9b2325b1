"""
Webhook signature verification for payment processor events.

The processor signs each delivery with the endpoint secret and sends
`Stripe-Signature: t=<unix ts>,v1=<hex hmac>`; the signed message is
`<ts>.<raw body>`. Comparison is constant-time and stale timestamps are
rejected to stop replays.
"""
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
DEFAULT_TOLERANCE_SECONDS = 300


class WebhookSignatureError(Exception):
    """Raised when webhook signature verification fails"""
    pass


def compute_signature(secret: str, timestamp: int, payload: bytes) -> str:
    """Hex HMAC-SHA256 over `<timestamp>.<payload>`."""
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def build_signature_header(secret: str, payload: bytes, timestamp: Optional[int] = None) -> str:
    """Signature header as the processor would send it."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    return f"t={timestamp},v1={compute_signature(secret, timestamp, payload)}"


def parse_signature_header(header: str) -> Tuple[int, List[str]]:
    """
    Split a signature header into its timestamp and v1 signatures.

    Raises:
        WebhookSignatureError: If the header is malformed
    """
    timestamp = None
    signatures: List[str] = []
    for item in header.split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise WebhookSignatureError("Invalid timestamp in signature header")
        elif key == "v1" and value:
            signatures.append(value)

    if timestamp is None:
        raise WebhookSignatureError("No timestamp found in signature header")
    if not signatures:
        raise WebhookSignatureError("No v1 signature found in signature header")
    return timestamp, signatures


def verify_signature(
    payload: bytes,
    header: str,
    secret: str,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
    now: Optional[int] = None,
) -> None:
    """
    Check a delivery's signature and timestamp.

    Raises:
        WebhookSignatureError: If any check fails
    """
    if not header:
        raise WebhookSignatureError("Missing signature header")

    timestamp, signatures = parse_signature_header(header)
    expected = compute_signature(secret, timestamp, payload)
    if not any(hmac.compare_digest(expected, signature) for signature in signatures):
        raise WebhookSignatureError("No signatures found matching the expected signature for payload")

    current_time = int(time.time()) if now is None else now
    age = abs(current_time - timestamp)
    if tolerance and age > tolerance:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {tolerance}s)")
        raise WebhookSignatureError("Timestamp outside the tolerance zone")


def construct_event(
    payload: bytes,
    header: str,
    secret: str,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
) -> Dict[str, Any]:
    """
    Verify a delivery and parse its JSON event.

    Returns:
        The event as a dict

    Raises:
        WebhookSignatureError: On a bad signature, stale timestamp or non-JSON body
    """
    verify_signature(payload, header, secret, tolerance=tolerance)
    try:
        event = json.loads(payload)
    except ValueError:
        raise WebhookSignatureError("Webhook payload is not valid JSON")
    if not isinstance(event, dict) or "id" not in event or "type" not in event:
        raise WebhookSignatureError("Webhook payload is not an event")
    return event
