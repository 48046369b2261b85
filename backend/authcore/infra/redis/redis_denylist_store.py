from typing import cast

import redis  # type: ignore[import-untyped]

from authcore.infra.redis._common import guarded


class RedisTokenDenylistStore:
    """
    Minimal denylist for **access tokens** by SHA-256 digest.
    """

    def __init__(self, r: redis.Redis):
        self.r = r

    @staticmethod
    def _k(token_hash: str) -> str:
        return f"blacklist:{token_hash}"

    def is_denied(self, token_hash: str) -> bool:
        with guarded("denylist lookup"):
            return cast(int, self.r.exists(self._k(token_hash))) == 1

    def deny(self, token_hash: str, *, ttl_seconds: int) -> None:
        # store a small marker with TTL; idempotent
        with guarded("denylist write"):
            self.r.set(self._k(token_hash), "1", ex=max(1, int(ttl_seconds)))
