"""HMAC signature checks for inbound webhooks."""

import hashlib
import hmac
import time

SLACK_SIGNATURE_VERSION = "v0"
SLACK_MAX_AGE_SECONDS = 60 * 5


def sign_hmac_sha256(secret: str, payload: bytes | str) -> str:
    """Hex HMAC-SHA256 of ``payload``."""
    data = payload.encode() if isinstance(payload, str) else payload
    return hmac.new(secret.encode(), data, hashlib.sha256).hexdigest()


def verify_form_signature(secret: str, body: bytes, signature: str | None) -> bool:
    """Check a form-provider webhook signature (hex HMAC of the raw body).

    An absent signature header is accepted; a present one must match.
    """
    if not secret or not signature:
        return True
    expected = sign_hmac_sha256(secret, body)
    return hmac.compare_digest(expected.encode(), signature.strip().lower().encode())


def slack_signature(secret: str, timestamp: str, body: bytes | str) -> str:
    """Compute ``v0=<hex>`` over the raw bytes ``v0:<timestamp>:<body>``."""
    data = body.encode() if isinstance(body, str) else body
    base = f"{SLACK_SIGNATURE_VERSION}:{timestamp}:".encode() + data
    return f"{SLACK_SIGNATURE_VERSION}={sign_hmac_sha256(secret, base)}"


def verify_slack_signature(
    secret: str,
    timestamp: str | None,
    signature: str | None,
    body: bytes,
    now: float | None = None,
) -> bool:
    """Check a Slack request signature.

    Requests older than five minutes are rejected to prevent replay.
    """
    if not secret:
        return True
    if not timestamp or not signature:
        return False
    try:
        sent_at = int(timestamp)
    except ValueError:
        return False
    current = time.time() if now is None else now
    if abs(current - sent_at) > SLACK_MAX_AGE_SECONDS:
        return False
    expected = slack_signature(secret, timestamp, body)
    return hmac.compare_digest(expected.encode(), signature.encode())
