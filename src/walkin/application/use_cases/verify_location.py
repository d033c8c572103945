from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from walkin.application.dto.requests import VerifyLocationRequest
from walkin.application.dto.responses import GeoVerificationResponse
from walkin.application.metrics.order_lifecycle import record_geofence_check
from walkin.application.ports.repositories import GeoTokenRepository, LocationRepository
from walkin.application.use_cases.context import utc_now
from walkin.application.use_cases.lookup import require_location
from walkin.domain.geo.geofence import verify_proximity
from walkin.domain.geo.tokens import issue_geo_token

logger = logging.getLogger(__name__)


class GeofenceOutOfRangeError(Exception):
    def __init__(self, message: str, details: dict[str, Any]) -> None:
        super().__init__(message)
        self.details = details


class VerifyLocation:
    def __init__(
        self,
        location_repository: LocationRepository,
        geo_token_repository: GeoTokenRepository,
        token_ttl_minutes: int = 15,
        max_radius_meters: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._location_repository = location_repository
        self._geo_token_repository = geo_token_repository
        self._token_ttl = timedelta(minutes=token_ttl_minutes)
        self._max_radius_meters = max_radius_meters
        self._clock = clock

    def execute(
        self,
        public_code: str,
        request_dto: VerifyLocationRequest,
        ip_address: str | None = None,
    ) -> GeoVerificationResponse:
        location = require_location(self._location_repository, public_code)
        check = verify_proximity(
            location,
            request_dto.latitude,
            request_dto.longitude,
            max_radius_meters=self._max_radius_meters,
        )
        if not check.is_valid:
            record_geofence_check(str(location.location_id), "out_of_range")
            logger.info(
                "geofence_out_of_range",
                extra={
                    "location_id": str(location.location_id),
                    "distance_meters": check.distance_meters,
                },
            )
            raise GeofenceOutOfRangeError(
                "you must be at the location to order",
                details={
                    "distanceMeters": check.distance_meters,
                    "allowedRadiusMeters": check.allowed_radius_meters,
                },
            )

        token = issue_geo_token(
            location_id=location.location_id,
            latitude=request_dto.latitude,
            longitude=request_dto.longitude,
            now=self._clock(),
            ttl=self._token_ttl,
            device_fingerprint=request_dto.device_fingerprint,
            ip_address=ip_address,
        )
        self._geo_token_repository.add(token)
        record_geofence_check(str(location.location_id), "verified")

        return GeoVerificationResponse(
            verified=True,
            geoToken=token.token,
            expiresAt=token.expires_at,
            distanceMeters=check.distance_meters,
        )
