from __future__ import annotations

from typing import Protocol


class CacheStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def delete(self, *keys: str) -> None: ...
