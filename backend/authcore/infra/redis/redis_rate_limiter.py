from __future__ import annotations

from dataclasses import dataclass

import redis  # type: ignore[import-untyped]

from authcore.infra.redis._common import guarded, to_str
from authcore.services._shared.ports import RateLimiter


@dataclass(slots=True)
class RedisRateLimiter(RateLimiter):
    """
    Fixed-window counters on plain Redis strings.

    Keys are supplied by the caller (``login_attempts:{email}:{ip}``,
    ``register_attempts:{ip}`` ...).

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    def count(self, key: str) -> int:
        with guarded("rate limit read"):
            raw = to_str(self.r.get(key))
        return int(raw) if raw else 0

    def hit(self, key: str, *, window_seconds: int) -> int:
        with guarded("rate limit hit"):
            with self.r.pipeline(transaction=True) as p:
                p.incr(key)
                p.ttl(key)
                count, ttl = p.execute()
            if int(ttl) < 0:
                # First hit of the window, or a counter that lost its expiry
                self.r.expire(key, max(1, int(window_seconds)))
        return int(count)

    def reset(self, key: str) -> None:
        with guarded("rate limit reset"):
            self.r.delete(key)
