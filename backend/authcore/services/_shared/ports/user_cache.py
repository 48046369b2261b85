from __future__ import annotations

from typing import Any, Protocol


class UserCache(Protocol):
    """
    Short-lived read-through cache of user credential snapshots by email.

    Snapshots are plain JSON-serializable dicts. Every write to a user must
    be followed by ``invalidate``.
    """

    def get(self, email: str) -> dict[str, Any] | None: ...
    def put(self, email: str, snapshot: dict[str, Any], *, ttl_seconds: int) -> None: ...
    def invalidate(self, email: str) -> None: ...
