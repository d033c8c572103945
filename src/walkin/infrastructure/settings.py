from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    platform_fee_percentage: Decimal
    geofence_default_radius_meters: int
    geofence_max_radius_meters: int
    geo_token_ttl_minutes: int
    default_currency: str
    stripe_secret_key: str | None
    stripe_webhook_secret: str | None
    stripe_statement_descriptor: str
    menu_cache_ttl_seconds: int


def _int_env(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}")
    return value


def _percentage_env(name: str, default: str) -> Decimal:
    raw = os.getenv(name) or default
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc
    if not value.is_finite() or value < 0 or value > 100:
        raise RuntimeError(f"{name} must be between 0 and 100")
    return value


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    currency = os.getenv("DEFAULT_CURRENCY", "USD").strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise RuntimeError("DEFAULT_CURRENCY must be a 3-letter code")

    return Settings(
        platform_fee_percentage=_percentage_env("PLATFORM_FEE_PERCENTAGE", "3"),
        geofence_default_radius_meters=_int_env("GEOFENCE_DEFAULT_RADIUS_METERS", 100),
        geofence_max_radius_meters=_int_env("GEOFENCE_MAX_RADIUS_METERS", 500),
        geo_token_ttl_minutes=_int_env("GEO_TOKEN_TTL_MINUTES", 15),
        default_currency=currency,
        stripe_secret_key=os.getenv("STRIPE_SECRET_KEY") or None,
        stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET") or None,
        stripe_statement_descriptor=os.getenv("STRIPE_STATEMENT_DESCRIPTOR", "WALKIN ORDER"),
        menu_cache_ttl_seconds=_int_env("MENU_CACHE_TTL_SECONDS", 300),
    )
