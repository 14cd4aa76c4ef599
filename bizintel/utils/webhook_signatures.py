"""
Webhook signature validation - verify incoming Clay callbacks are authentic.

Clay's pull-in webhook tables can send a static header on every HTTP action;
we expect an HMAC-SHA256 of the raw body in X-Webhook-Signature when
WEBHOOK_SIGNING_KEY is configured. Without a key, callbacks are accepted.
"""
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"


def validate_hmac_sha256(
    secret: str,
    signature: str,
    body: bytes,
    header_prefix: str = "sha256=",
) -> bool:
    """
    Validate generic HMAC-SHA256 webhook signature.
    Handles signatures with optional prefix (e.g., "sha256=...").
    Returns True if valid, False if invalid.
    """
    if not secret or not signature:
        return False

    sig = signature
    if sig.startswith(header_prefix):
        sig = sig[len(header_prefix):]

    expected = hmac.new(
        secret.encode("utf-8"),
        body,
        hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(expected, sig.strip().lower())


def compute_payload_hash(body: bytes) -> str:
    """Compute SHA-256 hash of raw payload for dedup and logging."""
    return hashlib.sha256(body).hexdigest()


def validate_webhook_request(headers, body: bytes) -> bool:
    """
    Validate the signature on an inbound webhook.
    Returns True if valid or if no signing key is configured (soft enforcement).
    """
    from bizintel.config import get_settings
    settings = get_settings()

    if not settings.webhook_signing_key:
        return True

    signature = headers.get(SIGNATURE_HEADER, "")
    if not signature:
        logger.warning("Missing %s header on signed webhook endpoint", SIGNATURE_HEADER)
        return False
    return validate_hmac_sha256(settings.webhook_signing_key, signature, body)
