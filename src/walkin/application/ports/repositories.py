from __future__ import annotations

from datetime import date, datetime
from typing import Protocol

from walkin.domain.common.ids import LocationId, MenuItemId, OrderId
from walkin.domain.geo.tokens import GeoToken
from walkin.domain.location.entities import Location
from walkin.domain.menu.entities import Menu, MenuItem
from walkin.domain.order.entities import Order, OrderStatus
from walkin.domain.payment.fees import PlatformFee


class LocationRepository(Protocol):
    def get_by_public_code(self, public_code: str) -> Location | None: ...

    def get(self, location_id: LocationId) -> Location | None: ...


class MenuRepository(Protocol):
    def get_menu_for_location(self, location_id: LocationId) -> Menu | None: ...

    def get_items(
        self,
        location_id: LocationId,
        item_ids: list[MenuItemId],
    ) -> dict[str, MenuItem]: ...


class GeoTokenRepository(Protocol):
    def add(self, token: GeoToken) -> None: ...

    def find_valid(self, token: str, location_id: LocationId, now: datetime) -> GeoToken | None: ...


class OrderRepository(Protocol):
    def add_placed(
        self,
        order: Order,
        business_date: date,
        geo_token: str,
        platform_fee: PlatformFee | None = None,
    ) -> Order: ...

    def get(self, order_id: OrderId) -> Order | None: ...

    def get_by_payment_intent(self, payment_intent_id: str) -> Order | None: ...

    def save_with_version(self, order: Order, expected_version: int) -> Order: ...

    def record_capture(
        self,
        order: Order,
        expected_version: int,
        platform_fee: PlatformFee,
    ) -> Order: ...

    def list_for_location(
        self,
        location_id: LocationId,
        statuses: frozenset[OrderStatus] | None,
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]: ...


class GeoTokenConsumedError(Exception):
    pass


class OptimisticConcurrencyError(Exception):
    pass


class DuplicatePlatformFeeError(Exception):
    pass


class InvalidCursorError(Exception):
    pass
