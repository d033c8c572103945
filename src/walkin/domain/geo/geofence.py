from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from walkin.domain.location.entities import Location

EARTH_RADIUS_METERS = 6_371_000


class InvalidCoordinatesError(ValueError):
    pass


@dataclass(frozen=True)
class ProximityCheck:
    is_valid: bool
    distance_meters: float
    allowed_radius_meters: int


def validate_coordinates(latitude: float, longitude: float) -> None:
    if not math.isfinite(latitude) or not -90.0 <= latitude <= 90.0:
        raise InvalidCoordinatesError(f"latitude out of range: {latitude}")
    if not math.isfinite(longitude) or not -180.0 <= longitude <= 180.0:
        raise InvalidCoordinatesError(f"longitude out of range: {longitude}")


def distance_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points using the haversine formula."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_lat / 2) * math.sin(delta_lat / 2)
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lng / 2) * math.sin(delta_lng / 2)
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def verify_proximity(
    location: Location,
    user_lat: float,
    user_lng: float,
    max_radius_meters: int | None = None,
) -> ProximityCheck:
    validate_coordinates(user_lat, user_lng)
    allowed = location.geofence_radius_meters
    if max_radius_meters is not None:
        allowed = min(allowed, max_radius_meters)

    distance = distance_meters(user_lat, user_lng, location.latitude, location.longitude)
    return ProximityCheck(
        is_valid=distance <= allowed,
        distance_meters=round(distance, 2),
        allowed_radius_meters=allowed,
    )
