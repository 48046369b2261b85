from __future__ import annotations

from typing import Protocol


class OneTimeTokenStore(Protocol):
    """
    Single-use tokens (email verification, password reset).

    Only digests are stored. ``consume`` returns the bound user id and
    deletes the entry in the same step, so a token redeems at most once.
    """

    def put(self, purpose: str, token_hash: str, user_id: str, *, ttl_seconds: int) -> None: ...
    def consume(self, purpose: str, token_hash: str) -> str | None: ...
