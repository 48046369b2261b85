from __future__ import annotations

from dataclasses import dataclass

import redis  # type: ignore[import-untyped]

from authcore.infra.redis._common import guarded, to_str
from authcore.services._shared.ports import OneTimeTokenStore


@dataclass(slots=True)
class RedisOneTimeTokenStore(OneTimeTokenStore):
    """
    Single-use token digests, ``otp:{purpose}:{token_hash}`` → user id.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    @staticmethod
    def _k(purpose: str, token_hash: str) -> str:
        return f"otp:{purpose}:{token_hash}"

    def put(self, purpose: str, token_hash: str, user_id: str, *, ttl_seconds: int) -> None:
        with guarded("one-time token write"):
            self.r.set(self._k(purpose, token_hash), user_id, ex=max(1, int(ttl_seconds)))

    def consume(self, purpose: str, token_hash: str) -> str | None:
        key = self._k(purpose, token_hash)
        with guarded("one-time token consume"):
            # GET + DEL inside MULTI so two redemptions cannot both succeed
            with self.r.pipeline(transaction=True) as p:
                p.get(key)
                p.delete(key)
                value, _deleted = p.execute()
        return to_str(value)
