"""Redis-backed fixed-window rate limiter for gateway sends.

One window per salon (``rate:{salon_id}:send``) so a busy salon cannot
starve the WhatsApp session of another. Redis being down never blocks
reminders: the limiter fails open.

Usage:
    from src.security.rate_limiter import rate_limiter

    allowed, retry_after = await rate_limiter.check(send_key(salon_id), limit=30, window=60)
"""

from __future__ import annotations

import logging
import uuid

from src.db.engine import redis_client

logger = logging.getLogger(__name__)


def send_key(salon_id: uuid.UUID) -> str:
    return f"rate:{salon_id}:send"


class RateLimiter:
    """Fixed-window counter using INCR + EXPIRE."""

    def __init__(self, redis: object) -> None:
        self._redis = redis

    async def check(self, key: str, limit: int, window: int) -> tuple[bool, int]:
        """Count one request against ``key``.

        Returns:
            (allowed, retry_after) — retry_after is the number of seconds
            until the window resets, 0 when allowed.
        """
        try:
            count = await self._redis.incr(key)  # type: ignore[attr-defined]
            if count == 1:
                await self._redis.expire(key, window)  # type: ignore[attr-defined]

            if count > limit:
                ttl = await self._redis.ttl(key)  # type: ignore[attr-defined]
                return False, max(ttl, 1)

            return True, 0
        except Exception:
            logger.exception("Rate limiter Redis error for key %s", key)
            return True, 0


# Module-level singleton
rate_limiter = RateLimiter(redis_client)
