"""
Webhook redelivery deduplication - Redis-based with a configurable window.
Clay retries callbacks it considers failed; an identical body seen again inside
the window is acknowledged without touching the store.
"""
import hashlib
import logging

logger = logging.getLogger(__name__)

# Redis client (lazily initialized)
_redis_client = None


async def get_redis():
    """Get or create Redis connection."""
    global _redis_client
    if _redis_client is None:
        import redis.asyncio as aioredis
        from bizintel.config import get_settings
        _redis_client = aioredis.from_url(
            get_settings().redis_url,
            decode_responses=True,
        )
    return _redis_client


async def close_redis() -> None:
    """Close the shared Redis connection if one was opened."""
    global _redis_client
    if _redis_client is not None:
        try:
            await _redis_client.aclose()
        except Exception as e:
            logger.debug("Redis close failed: %s", str(e))
        _redis_client = None


def make_dedup_key(source: str, payload_hash: str) -> str:
    """
    Create a deduplication key from the webhook source + body hash.
    Uses SHA-256 for consistent key length.
    """
    raw = f"{source}:{payload_hash}"
    hash_val = hashlib.sha256(raw.encode()).hexdigest()[:16]
    return f"bizintel:dedup:{hash_val}"


async def is_duplicate_delivery(
    source: str,
    payload_hash: str,
    window_seconds: int,
) -> bool:
    """
    Check if this webhook body was already received within the window.
    If not, marks it in Redis so a redelivery is recognised.

    Returns True if duplicate, False if new. A window of 0 disables the check.
    """
    if window_seconds <= 0:
        return False

    key = make_dedup_key(source, payload_hash)

    try:
        redis = await get_redis()
        # SET NX = only set if not exists. Returns True if set (new), None if exists (dupe).
        was_set = await redis.set(key, "1", nx=True, ex=window_seconds)
        if was_set:
            return False
        logger.info("Duplicate webhook delivery detected: source=%s hash=%s", source, payload_hash[:12])
        return True
    except Exception as e:
        # Redis failure should NOT block ingestion - assume not duplicate
        logger.warning("Redis dedup check failed: %s. Assuming not duplicate.", str(e))
        return False


async def release_delivery(source: str, payload_hash: str, window_seconds: int) -> None:
    """
    Forget a delivery whose processing failed so Clay's retry is stored.
    Errors are logged only; the key expires with the window anyway.
    """
    if window_seconds <= 0:
        return

    try:
        redis = await get_redis()
        await redis.delete(make_dedup_key(source, payload_hash))
    except Exception as e:
        logger.warning("Redis dedup release failed: %s", str(e))
