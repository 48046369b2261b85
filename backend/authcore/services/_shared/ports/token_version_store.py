from __future__ import annotations

from typing import Protocol


class TokenVersionStore(Protocol):
    """
    Per-user monotonic token version.

    A missing counter reads as ``0``. ``bump`` is an atomic increment and
    returns the new value.
    """

    def get(self, user_id: str) -> int: ...
    def bump(self, user_id: str) -> int: ...
