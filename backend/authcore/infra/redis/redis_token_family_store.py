from __future__ import annotations

from dataclasses import dataclass

import redis  # type: ignore[import-untyped]

from authcore.infra.redis._common import guarded, to_str
from authcore.services._shared.ports import RotationResult, TokenFamilyStore


@dataclass(slots=True)
class RedisTokenFamilyStore(TokenFamilyStore):
    """
    Redis-backed refresh family pointers with atomic rotation.

    One string key per session, ``token_family:{session_id}``, expiring
    together with the refresh token it describes.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(session_id: str) -> str:
        return f"token_family:{session_id}"

    # -------------------- API ------------------------

    def get(self, session_id: str) -> str | None:
        with guarded("get family"):
            return to_str(self.r.get(self._k(session_id)))

    def set(self, session_id: str, family: str, *, ttl_seconds: int) -> None:
        with guarded("set family"):
            self.r.set(self._k(session_id), family, ex=max(1, int(ttl_seconds)))

    def rotate(
        self, session_id: str, *, expected: str, new: str, ttl_seconds: int
    ) -> RotationResult:
        """
        Replace the pointer with ``new`` only if it still equals ``expected``.

        Uses WATCH/MULTI/EXEC (optimistic locking). When a concurrent rotation
        commits first, EXEC aborts, the loop re-reads the pointer, finds the
        winner's family and reports :attr:`RotationResult.REUSED`.
        """
        key = self._k(session_id)
        ttl = max(1, int(ttl_seconds))

        with guarded("rotate family"):
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        current = to_str(p.get(key))
                        if current is None:
                            p.unwatch()
                            return RotationResult.NOT_FOUND
                        if current != expected:
                            p.unwatch()
                            return RotationResult.REUSED

                        p.multi()
                        p.set(key, new, ex=ttl)
                        p.execute()
                    return RotationResult.OK

                except redis.WatchError:
                    # Concurrent modification detected; re-evaluate
                    continue

    def clear(self, *session_ids: str) -> int:
        if not session_ids:
            return 0
        with guarded("clear family"):
            return int(self.r.delete(*(self._k(s) for s in session_ids)))
