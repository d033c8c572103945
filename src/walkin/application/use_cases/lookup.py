from __future__ import annotations

from walkin.application.ports.repositories import LocationRepository, OrderRepository
from walkin.domain.common.ids import LocationId, OrderId
from walkin.domain.location.entities import Location
from walkin.domain.order.entities import Order


class LocationNotFoundError(Exception):
    pass


class OrderNotFoundError(Exception):
    pass


def require_location(location_repository: LocationRepository, public_code: str) -> Location:
    location = location_repository.get_by_public_code(public_code)
    if location is None or not location.is_active:
        raise LocationNotFoundError(f"location not found for code={public_code}")
    return location


def require_order(
    order_repository: OrderRepository,
    order_id: OrderId,
    location_id: LocationId | None = None,
) -> Order:
    order = order_repository.get(order_id)
    if order is None:
        raise OrderNotFoundError(f"order {order_id} not found")
    if location_id is not None and str(order.location_id) != str(location_id):
        raise OrderNotFoundError(f"order {order_id} not found")
    return order
