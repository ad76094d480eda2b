"""
Redis-backed WindowStore, shared by every process that points at the same
Redis.

Each key is one counter: INCR counts the attempt and the first attempt of a
window sets the expiry, so Redis itself ends the window.  Window length is
therefore measured by the Redis server's clock; ``now`` from the caller is
only used to express ``reset_at`` as a datetime.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import redis

from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.utils.rate_limit import WindowDecision

logger = get_logger("utils.redis_window_store")

DEFAULT_PREFIX = "marketplace:rate_limit:"


class RedisWindowStore:

    def __init__(self, client: redis.Redis, prefix: str = DEFAULT_PREFIX):
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = DEFAULT_PREFIX, **kwargs: Any) -> RedisWindowStore:
        client = redis.from_url(url, decode_responses=True, **kwargs)
        logger.info("rate_limit_store_connected", extra={"backend": "redis", "prefix": prefix})
        return cls(client, prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def hit(
        self,
        key: str,
        limit: int,
        window: timedelta,
        now: datetime,
    ) -> WindowDecision:
        redis_key = self._key(key)
        window_ms = int(window.total_seconds() * 1000)

        pipe = self._client.pipeline()
        pipe.incr(redis_key)
        pipe.pttl(redis_key)
        count, ttl_ms = pipe.execute()

        # -1: the counter was just created and has no expiry yet
        if ttl_ms < 0:
            self._client.pexpire(redis_key, window_ms)
            ttl_ms = window_ms
        reset_at = now + timedelta(milliseconds=ttl_ms)

        if count > limit:
            # blocked attempts are not counted
            self._client.decr(redis_key)
            return WindowDecision(allowed=False, remaining=0, reset_at=reset_at)
        return WindowDecision(allowed=True, remaining=limit - count, reset_at=reset_at)

    def reset(self, key: str) -> None:
        self._client.delete(self._key(key))
