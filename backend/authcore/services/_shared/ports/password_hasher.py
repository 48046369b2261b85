from __future__ import annotations

from typing import Protocol


class PasswordHasher(Protocol):
    """One-way adaptive password hash with a configurable cost."""

    def hash(self, plaintext: str, cost: int | None = None) -> str: ...
    def verify(self, plaintext: str, digest: str) -> bool: ...
