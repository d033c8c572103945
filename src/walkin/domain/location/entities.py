from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from walkin.domain.common.ids import LocationId
from walkin.domain.geo.geofence import validate_coordinates


@dataclass(frozen=True)
class Location:
    location_id: LocationId
    public_code: str
    name: str
    latitude: float
    longitude: float
    geofence_radius_meters: int
    tax_rate: Decimal
    currency: str
    timezone: str = "America/New_York"
    is_active: bool = True
    connected_account_id: str | None = None

    def __post_init__(self) -> None:
        if not self.public_code.strip():
            raise ValueError("public_code must be non-empty")
        if self.geofence_radius_meters < 1:
            raise ValueError("geofence_radius_meters must be >= 1")
        if self.tax_rate < 0 or self.tax_rate >= 1:
            raise ValueError("tax_rate must be a fraction in [0, 1)")
        validate_coordinates(self.latitude, self.longitude)

    def local_date(self, now: datetime) -> date:
        """Calendar day at the location, used to scope order numbers."""
        return now.astimezone(ZoneInfo(self.timezone)).date()
