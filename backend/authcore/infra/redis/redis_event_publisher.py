from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from authcore.services._shared.ports import EventPublisher

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RedisEventPublisher(EventPublisher):
    """
    Publish domain events as JSON on a Redis pub/sub channel.

    Envelope: ``{"type", "data", "metadata": {"eventId", "timestamp", "source"}}``.
    Delivery failures are logged and dropped.

    :param r: A Redis client (already connected).
    :param channel: Pub/sub channel name.
    :param source: Value stamped in ``metadata.source``.
    """

    r: redis.Redis
    channel: str = "auth:events"
    source: str = "authcore"

    def publish(self, event_type: str, data: dict[str, Any]) -> None:
        envelope = {
            "type": event_type,
            "data": data,
            "metadata": {
                "eventId": str(uuid4()),
                "timestamp": datetime.now(UTC).isoformat(),
                "source": self.source,
            },
        }
        try:
            self.r.publish(self.channel, json.dumps(envelope, default=str))
        except RedisError:
            log.warning(
                "event.publish_failed",
                extra={"event": event_type},
                exc_info=True,
            )
            return
        log.debug("event.published", extra={"event": event_type})
