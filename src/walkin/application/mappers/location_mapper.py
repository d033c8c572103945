from __future__ import annotations

from walkin.application.dto.responses import LocationResponse
from walkin.domain.location.entities import Location


def to_location_response(location: Location) -> LocationResponse:
    return LocationResponse(
        publicCode=location.public_code,
        name=location.name,
        latitude=location.latitude,
        longitude=location.longitude,
        geofenceRadiusMeters=location.geofence_radius_meters,
        taxRate=float(location.tax_rate),
        currency=location.currency,
        timezone=location.timezone,
    )
