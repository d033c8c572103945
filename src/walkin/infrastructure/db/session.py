"""Engine factory shared by the SQL repositories, the health check and the tools.

Order placement holds a row lock on the daily sequence counter until its
transaction commits, so a lunch rush queues writers on that row. The pool is
sized from the environment and Postgres connections carry a lock timeout, so
a stuck writer surfaces as an error rather than a hung checkout.
"""

from __future__ import annotations

import os
from functools import lru_cache

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

DEFAULT_POOL_SIZE = 10
DEFAULT_MAX_OVERFLOW = 20
DEFAULT_LOCK_TIMEOUT_MS = 5000


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set")
    return url


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return max(0, int(raw))
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


@lru_cache(maxsize=8)
def _build_engine(
    database_url: str,
    connect_timeout: int,
    pool_size: int,
    max_overflow: int,
    lock_timeout_ms: int,
) -> Engine:
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"timeout": connect_timeout})
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=pool_size,
        max_overflow=max_overflow,
        connect_args={
            "connect_timeout": connect_timeout,
            "options": f"-c lock_timeout={lock_timeout_ms}",
        },
    )


def get_engine(timeout_seconds: float = 1.0) -> Engine:
    return _build_engine(
        _database_url(),
        max(1, int(timeout_seconds)),
        _int_env("DB_POOL_SIZE", DEFAULT_POOL_SIZE),
        _int_env("DB_MAX_OVERFLOW", DEFAULT_MAX_OVERFLOW),
        _int_env("DB_LOCK_TIMEOUT_MS", DEFAULT_LOCK_TIMEOUT_MS),
    )


def ping_database(timeout_seconds: float = 1.0) -> bool:
    try:
        with get_engine(timeout_seconds).connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
