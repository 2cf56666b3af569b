"""
Background Notifier Worker
==========================

Subscribes to the Redis events channel and fans each marketplace event out
to the WebSocket clients connected to *this* process.  Every API process
runs one notifier, so a booking handled by process A still reaches a
driver whose socket is held by process B.

On a Redis outage the subscription is retried every
``NOTIFIER_RECONNECT_SECONDS`` (default 5 s).
"""

from __future__ import annotations

import asyncio
import json
import logging

import redis.asyncio as aioredis

from ecoride.api.websocket import ConnectionManager, manager
from ecoride.config import settings
from ecoride.infrastructure.redis_client import get_redis

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_notifier() -> None:
    global _task
    if not settings.notifier_enabled:
        logger.info("Notifier disabled")
        return
    client = await get_redis()
    _task = asyncio.create_task(run_notifier(client, manager))
    logger.info("Notifier started (channel=%s)", settings.events_channel)


async def stop_notifier() -> None:
    global _task
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Notifier task had already failed")
        _task = None
    logger.info("Notifier stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def handle_raw_message(raw: str, connections: ConnectionManager) -> int:
    """Decode one pub/sub payload and dispatch it.  Returns deliveries."""
    try:
        event = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Invalid JSON on %s: %r", settings.events_channel, raw)
        return 0
    if not isinstance(event, dict) or "type" not in event:
        logger.warning("Ignoring malformed event: %r", event)
        return 0
    return await connections.dispatch(event)


async def run_notifier(
    client: aioredis.Redis, connections: ConnectionManager
) -> None:
    while True:
        try:
            pubsub = client.pubsub()
            await pubsub.subscribe(settings.events_channel)
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    await handle_raw_message(message["data"], connections)
                except Exception:
                    logger.exception("Error dispatching event")
        except aioredis.ConnectionError:
            logger.error(
                "Redis disconnected, reconnecting in %ds...",
                settings.notifier_reconnect_seconds,
            )
            await asyncio.sleep(settings.notifier_reconnect_seconds)
        except Exception:
            logger.exception(
                "Notifier subscription failed, retrying in %ds...",
                settings.notifier_reconnect_seconds,
            )
            await asyncio.sleep(settings.notifier_reconnect_seconds)
