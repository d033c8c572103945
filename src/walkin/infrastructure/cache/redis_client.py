from __future__ import annotations

import os
from functools import lru_cache

import redis
from redis import asyncio as redis_asyncio

EVENTS_CHANNEL_PREFIX = "events"


def redis_url() -> str:
    url = os.getenv("REDIS_URL")
    if not url:
        raise RuntimeError("REDIS_URL is not set")
    return url


def events_channel(location_id: str) -> str:
    """Pub/sub channel carrying order events for one location."""
    return f"{EVENTS_CHANNEL_PREFIX}:{location_id}"


@lru_cache(maxsize=8)
def _build_client(url: str, timeout_seconds: float) -> redis.Redis:
    return redis.Redis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=timeout_seconds,
        socket_timeout=timeout_seconds,
        health_check_interval=30,
    )


def get_redis_client(timeout_seconds: float = 1.0) -> redis.Redis:
    """Short-timeout client for menu cache reads and event publishing."""
    return _build_client(redis_url(), timeout_seconds)


def new_fanout_client(connect_timeout_seconds: float = 2.0) -> redis_asyncio.Redis:
    """Dedicated asyncio connection for the long-lived staff screen subscriber.

    Reads block until the next order event, so no socket read timeout is set.
    """
    return redis_asyncio.from_url(
        redis_url(),
        socket_connect_timeout=connect_timeout_seconds,
        health_check_interval=30,
    )


def ping_redis(timeout_seconds: float = 1.0) -> bool:
    try:
        return bool(get_redis_client(timeout_seconds).ping())
    except Exception:
        return False
