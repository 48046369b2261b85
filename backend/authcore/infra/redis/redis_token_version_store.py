from __future__ import annotations

from dataclasses import dataclass

import redis  # type: ignore[import-untyped]

from authcore.infra.redis._common import guarded, to_str
from authcore.services._shared.ports import TokenVersionStore


@dataclass(slots=True)
class RedisTokenVersionStore(TokenVersionStore):
    """
    Global invalidation counters, ``token_version:{user_id}``.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    @staticmethod
    def _k(user_id: str) -> str:
        return f"token_version:{user_id}"

    def get(self, user_id: str) -> int:
        with guarded("get token version"):
            raw = to_str(self.r.get(self._k(user_id)))
        return int(raw) if raw else 0

    def bump(self, user_id: str) -> int:
        # INCR is atomic across every instance sharing the store
        with guarded("bump token version"):
            return int(self.r.incr(self._k(user_id)))
