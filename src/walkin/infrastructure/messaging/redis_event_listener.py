from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

from redis import asyncio as redis_asyncio

from walkin.infrastructure.cache.redis_client import EVENTS_CHANNEL_PREFIX, new_fanout_client

logger = logging.getLogger(__name__)

EVENTS_PATTERN = f"{EVENTS_CHANNEL_PREFIX}:*"


def _decode_value(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def location_id_from_channel(channel: str) -> str | None:
    prefix, _, location_id = channel.partition(":")
    if prefix != EVENTS_CHANNEL_PREFIX or not location_id:
        return None
    return location_id


async def start_redis_fanout(app_state: Any) -> None:
    """Relay order events published on Redis to the staff screens of each location."""
    if not os.getenv("REDIS_URL"):
        logger.warning("redis_fanout_not_started", extra={"reason": "REDIS_URL missing"})
        return

    backoff_seconds = 1.0
    while True:
        client: redis_asyncio.Redis | None = None
        pubsub: redis_asyncio.client.PubSub | None = None
        try:
            client = new_fanout_client()
            pubsub = client.pubsub()
            await pubsub.psubscribe(EVENTS_PATTERN)
            logger.info("redis_fanout_subscribed", extra={"pattern": EVENTS_PATTERN})
            backoff_seconds = 1.0

            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None:
                    await asyncio.sleep(0.05)
                    continue

                channel = _decode_value(message.get("channel"))
                payload = _decode_value(message.get("data"))
                if not channel or not payload:
                    continue

                location_id = location_id_from_channel(channel)
                if location_id is None:
                    logger.warning("redis_fanout_invalid_channel", extra={"channel": channel})
                    continue

                await app_state.ws_manager.broadcast(
                    location_id=location_id,
                    message_json_str=payload,
                )
        except asyncio.CancelledError:
            logger.info("redis_fanout_cancelled")
            raise
        except Exception:
            logger.exception(
                "redis_fanout_error",
                extra={"backoff_seconds": backoff_seconds},
            )
            await asyncio.sleep(backoff_seconds)
            backoff_seconds = min(backoff_seconds * 2, 5.0)
        finally:
            if pubsub is not None:
                await pubsub.aclose()
            if client is not None:
                await client.aclose()
