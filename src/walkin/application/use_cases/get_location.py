from __future__ import annotations

from walkin.application.dto.responses import LocationResponse
from walkin.application.mappers.location_mapper import to_location_response
from walkin.application.ports.repositories import LocationRepository
from walkin.application.use_cases.lookup import require_location


class GetLocation:
    def __init__(self, location_repository: LocationRepository) -> None:
        self._location_repository = location_repository

    def execute(self, public_code: str) -> LocationResponse:
        return to_location_response(require_location(self._location_repository, public_code))
