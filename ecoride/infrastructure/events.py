"""
Marketplace event publishing over Redis pub/sub.

Routes publish after their unit of work commits; the notifier worker
(``ecoride.workers.notifier``) subscribes to the same channel and pushes
each event to the WebSocket clients of the users / trip it names.

Event shape::

    {"type": "booking_created", "user_ids": [3, 7], "trip_id": 12,
     "data": {...}}
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


def build_event(
    event_type: str,
    *,
    user_ids: Iterable[int] = (),
    trip_id: int | None = None,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "type": event_type,
        "user_ids": sorted(set(user_ids)),
        "trip_id": trip_id,
        "data": data or {},
    }


class EventPublisher:
    def __init__(self, client: aioredis.Redis, channel: str):
        self.redis = client
        self.channel = channel

    async def publish(self, event: dict[str, Any]) -> None:
        """Publish *event*; a Redis outage is logged, never raised."""
        try:
            receivers = await self.redis.publish(
                self.channel, json.dumps(event, default=str)
            )
        except aioredis.RedisError:
            logger.warning(
                "Could not publish %s event to %s", event.get("type"), self.channel
            )
            return
        logger.debug("Published %s to %d subscriber(s)", event["type"], receivers)
