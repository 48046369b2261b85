from __future__ import annotations

from typing import Protocol


class RateLimiter(Protocol):
    """
    Fixed-window counters keyed by an opaque string.

    The window starts with the first ``hit`` and the counter disappears when
    it closes.
    """

    def count(self, key: str) -> int: ...
    def hit(self, key: str, *, window_seconds: int) -> int: ...
    def reset(self, key: str) -> None: ...
