from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import redis  # type: ignore[import-untyped]

from authcore.infra.redis._common import guarded, to_str
from authcore.services._shared.ports import UserCache


@dataclass(slots=True)
class RedisUserCache(UserCache):
    """
    JSON snapshots of user credentials, ``user_cache:email:{email}``.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    @staticmethod
    def _k(email: str) -> str:
        return f"user_cache:email:{email.strip().lower()}"

    def get(self, email: str) -> dict[str, Any] | None:
        with guarded("user cache read"):
            raw = to_str(self.r.get(self._k(email)))
        return json.loads(raw) if raw else None

    def put(self, email: str, snapshot: dict[str, Any], *, ttl_seconds: int) -> None:
        payload = json.dumps(snapshot, default=str)
        with guarded("user cache write"):
            self.r.set(self._k(email), payload, ex=max(1, int(ttl_seconds)))

    def invalidate(self, email: str) -> None:
        with guarded("user cache invalidate"):
            self.r.delete(self._k(email))
