from __future__ import annotations

import logging

from pydantic import ValidationError

from walkin.application.dto.responses import MenuResponse
from walkin.application.mappers.menu_mapper import to_menu_response
from walkin.application.ports.cache import CacheStore
from walkin.application.ports.repositories import LocationRepository, MenuRepository
from walkin.application.use_cases.lookup import require_location
from walkin.domain.common.ids import LocationId

logger = logging.getLogger(__name__)


class MenuNotFoundError(Exception):
    pass


def menu_version_cache_key(location_id: LocationId) -> str:
    return f"menu:{location_id}:version"


def menu_payload_cache_key(location_id: LocationId, version: int) -> str:
    return f"menu:{location_id}:v{version}"


class GetMenu:
    def __init__(
        self,
        location_repository: LocationRepository,
        menu_repository: MenuRepository,
        cache: CacheStore,
        ttl_seconds: int = 300,
    ) -> None:
        self._location_repository = location_repository
        self._menu_repository = menu_repository
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    def _cache_get(self, key: str) -> str | None:
        try:
            return self._cache.get(key)
        except Exception:
            logger.warning("menu_cache_read_failed", exc_info=True, extra={"cache_key": key})
            return None

    def _cache_set(self, key: str, value: str) -> None:
        try:
            self._cache.set(key, value, ttl_seconds=self._ttl_seconds)
        except Exception:
            logger.warning("menu_cache_write_failed", exc_info=True, extra={"cache_key": key})

    def execute(self, public_code: str) -> MenuResponse:
        location = require_location(self._location_repository, public_code)
        location_id = location.location_id

        cached_version = self._cache_get(menu_version_cache_key(location_id))
        if cached_version is not None:
            try:
                version = int(cached_version)
            except ValueError:
                version = None

            if version is not None:
                payload = self._cache_get(menu_payload_cache_key(location_id, version))
                if payload:
                    try:
                        return MenuResponse.model_validate_json(payload)
                    except ValidationError:
                        pass

        menu = self._menu_repository.get_menu_for_location(location_id)
        if menu is None:
            raise MenuNotFoundError(f"menu not found for location_id={location_id}")

        response = to_menu_response(menu)
        self._cache_set(menu_version_cache_key(location_id), str(response.menuVersion))
        self._cache_set(
            menu_payload_cache_key(location_id, response.menuVersion),
            response.model_dump_json(),
        )
        return response
