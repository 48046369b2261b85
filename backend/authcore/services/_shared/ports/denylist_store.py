from __future__ import annotations

from typing import Protocol


class TokenDenylistStore(Protocol):
    """
    Abstraction for a short-lived denylist of **access tokens**.

    Entries are keyed by the token's SHA-256 digest and must never outlive
    the token itself. Methods are expected to be idempotent.
    """

    def is_denied(self, token_hash: str) -> bool: ...
    def deny(self, token_hash: str, *, ttl_seconds: int) -> None: ...
