from __future__ import annotations

import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable

from walkin.domain.common.ids import LocationId

TOKEN_BYTES = 32


@dataclass(frozen=True)
class GeoToken:
    """Single-use proof that a device was inside a location's geofence."""

    token: str
    location_id: LocationId
    latitude: float
    longitude: float
    created_at: datetime
    expires_at: datetime
    device_fingerprint: str | None = None
    ip_address: str | None = None
    used_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.token:
            raise ValueError("token must be non-empty")
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_usable_for(self, location_id: LocationId, now: datetime) -> bool:
        return (
            self.used_at is None
            and not self.is_expired(now)
            and str(self.location_id) == str(location_id)
        )

    def mark_used(self, now: datetime) -> GeoToken:
        if self.used_at is not None:
            raise GeoTokenSpentError("geo token has already been spent")
        return replace(self, used_at=now)


def issue_geo_token(
    location_id: LocationId,
    latitude: float,
    longitude: float,
    now: datetime,
    ttl: timedelta,
    device_fingerprint: str | None = None,
    ip_address: str | None = None,
    token_factory: Callable[[int], str] = secrets.token_urlsafe,
) -> GeoToken:
    return GeoToken(
        token=token_factory(TOKEN_BYTES),
        location_id=location_id,
        latitude=latitude,
        longitude=longitude,
        created_at=now,
        expires_at=now + ttl,
        device_fingerprint=device_fingerprint,
        ip_address=ip_address,
    )


class GeoTokenSpentError(Exception):
    pass
