from __future__ import annotations

from walkin.application.ports.cache import CacheStore
from walkin.infrastructure.cache.redis_client import get_redis_client


class RedisCacheStore(CacheStore):
    """Menu cache on Redis. Values are JSON strings; the client decodes responses."""

    def __init__(self, timeout_seconds: float = 1.0) -> None:
        self._timeout_seconds = timeout_seconds

    def get(self, key: str) -> str | None:
        value = get_redis_client(timeout_seconds=self._timeout_seconds).get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        get_redis_client(timeout_seconds=self._timeout_seconds).set(
            name=key,
            value=value,
            ex=ttl_seconds,
        )

    def delete(self, *keys: str) -> None:
        if keys:
            get_redis_client(timeout_seconds=self._timeout_seconds).delete(*keys)
