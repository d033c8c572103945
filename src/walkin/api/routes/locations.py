from __future__ import annotations

from fastapi import APIRouter, Header, Request, Response

from walkin.api.dependencies import location_repository
from walkin.application.dto.requests import EstimateTotalsRequest, VerifyLocationRequest
from walkin.application.dto.responses import (
    GeoVerificationResponse,
    LocationResponse,
    MenuResponse,
    OrderTotalsResponse,
)
from walkin.application.use_cases.estimate_totals import EstimateTotals
from walkin.application.use_cases.get_location import GetLocation
from walkin.application.use_cases.get_menu import GetMenu
from walkin.application.use_cases.verify_location import VerifyLocation
from walkin.infrastructure.cache.cache_store import RedisCacheStore
from walkin.infrastructure.db.repositories.geo_token_repo import SqlAlchemyGeoTokenRepository
from walkin.infrastructure.db.repositories.menu_repo import SqlAlchemyMenuRepository
from walkin.infrastructure.settings import load_settings

router = APIRouter()


def _get_location_use_case() -> GetLocation:
    return GetLocation(location_repository=location_repository())


def _get_menu_use_case() -> GetMenu:
    return GetMenu(
        location_repository=location_repository(),
        menu_repository=SqlAlchemyMenuRepository(),
        cache=RedisCacheStore(),
        ttl_seconds=load_settings().menu_cache_ttl_seconds,
    )


def _verify_location_use_case() -> VerifyLocation:
    settings = load_settings()
    return VerifyLocation(
        location_repository=location_repository(),
        geo_token_repository=SqlAlchemyGeoTokenRepository(),
        token_ttl_minutes=settings.geo_token_ttl_minutes,
        max_radius_meters=settings.geofence_max_radius_meters,
    )


def _estimate_totals_use_case() -> EstimateTotals:
    return EstimateTotals(
        location_repository=location_repository(),
        menu_repository=SqlAlchemyMenuRepository(),
    )


def _client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or None
    return request.client.host if request.client else None


@router.get("/v1/locations/{public_code}", response_model=LocationResponse)
def get_location(public_code: str) -> LocationResponse:
    return _get_location_use_case().execute(public_code)


@router.get("/v1/locations/{public_code}/menu", response_model=MenuResponse)
def get_menu(
    public_code: str,
    response: Response,
    if_none_match: str | None = Header(default=None, alias="If-None-Match"),
) -> MenuResponse | Response:
    payload = _get_menu_use_case().execute(public_code)

    etag = f'"menu-{payload.menuId}-v{payload.menuVersion}"'
    if if_none_match == etag:
        return Response(status_code=304, headers={"ETag": etag})

    response.headers["ETag"] = etag
    return payload


@router.post("/v1/locations/{public_code}/verify", response_model=GeoVerificationResponse)
def verify_location(
    public_code: str,
    request_dto: VerifyLocationRequest,
    request: Request,
) -> GeoVerificationResponse:
    return _verify_location_use_case().execute(
        public_code=public_code,
        request_dto=request_dto,
        ip_address=_client_ip(request),
    )


@router.post("/v1/locations/{public_code}/calculate-total", response_model=OrderTotalsResponse)
def calculate_total(public_code: str, request_dto: EstimateTotalsRequest) -> OrderTotalsResponse:
    return _estimate_totals_use_case().execute(public_code=public_code, request_dto=request_dto)
