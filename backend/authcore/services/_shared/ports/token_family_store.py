from __future__ import annotations

from enum import Enum, auto
from typing import Protocol


class RotationResult(Enum):
    """Outcome of an atomic refresh-family rotation attempt."""

    OK = auto()
    NOT_FOUND = auto()
    REUSED = auto()


class TokenFamilyStore(Protocol):
    """
    Session → current refresh family pointer.

    The pointer names the family of the single refresh token that may still
    be redeemed for a session. ``rotate`` MUST be an atomic compare-and-set.
    """

    def get(self, session_id: str) -> str | None: ...

    def set(self, session_id: str, family: str, *, ttl_seconds: int) -> None: ...

    def rotate(
        self, session_id: str, *, expected: str, new: str, ttl_seconds: int
    ) -> RotationResult: ...

    def clear(self, *session_ids: str) -> int: ...
