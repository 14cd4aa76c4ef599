"""
Sliding-window limit for the Clay callback endpoints, kept in Redis sorted sets.

Each callback source gets its own window per client IP, so a burst of lead
rows from the search table cannot use up the allowance of the enrichment
callbacks. Only accepted requests are recorded: a throttled caller gets its
capacity back as soon as its oldest accepted request leaves the window.
"""
import logging
import math
import time
import uuid
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_LIMIT_PER_MINUTE = 120
WINDOW_SECONDS = 60


def rate_limit_key(source: str, client_ip: str) -> str:
    return f"bizintel:ratelimit:{source}:{client_ip}"


async def check_callback_rate_limit(
    source: str,
    client_ip: str,
    limit: int = DEFAULT_LIMIT_PER_MINUTE,
    window: int = WINDOW_SECONDS,
) -> tuple[bool, Optional[int]]:
    """
    Record one callback from client_ip to source if the window has room.

    Returns (allowed, retry_after_seconds). Redis errors let the request through.
    """
    if limit <= 0:
        return True, None

    key = rate_limit_key(source, client_ip)
    now = time.time()
    try:
        from bizintel.utils.dedup import get_redis
        redis = await get_redis()

        pipe = redis.pipeline()
        pipe.zremrangebyscore(key, 0, now - window)
        pipe.zcard(key)
        pipe.zrange(key, 0, 0, withscores=True)
        _, in_window, oldest = await pipe.execute()

        if in_window >= limit:
            retry_after = window
            if oldest:
                retry_after = math.ceil(oldest[0][1] + window - now)
            logger.warning(
                "Callback rate limit exceeded: source=%s ip=%s count=%d limit=%d",
                source, client_ip, in_window, limit,
            )
            return False, max(retry_after, 1)

        # Unique member so two callbacks in the same microsecond both count
        pipe = redis.pipeline()
        pipe.zadd(key, {f"{now:.6f}:{uuid.uuid4().hex[:8]}": now})
        pipe.expire(key, window + 1)
        await pipe.execute()
        return True, None
    except Exception as e:
        logger.warning("Rate limiter Redis error: %s. Allowing request.", str(e))
        return True, None
