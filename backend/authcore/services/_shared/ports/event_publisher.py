from __future__ import annotations

from typing import Any, Protocol


class EventPublisher(Protocol):
    """
    Fire-and-forget domain event sink.

    Implementations MUST NOT raise: a failed publish never fails the
    operation that produced the event.
    """

    def publish(self, event_type: str, data: dict[str, Any]) -> None: ...


class NullEventPublisher(EventPublisher):
    """Publisher used when no event channel is configured."""

    def publish(self, event_type: str, data: dict[str, Any]) -> None:
        return None
