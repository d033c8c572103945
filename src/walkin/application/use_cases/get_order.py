from __future__ import annotations

from walkin.application.dto.responses import OrderResponse, OrderStatusResponse
from walkin.application.mappers.order_mapper import to_order_response, to_order_status_response
from walkin.application.ports.repositories import LocationRepository, OrderRepository
from walkin.application.use_cases.lookup import require_location, require_order
from walkin.domain.common.ids import OrderId


class GetOrder:
    """Order read for staff, who address orders by id alone."""

    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(self, order_id: OrderId) -> OrderResponse:
        return to_order_response(require_order(self._order_repository, order_id))


class GetCustomerOrder:
    """Order read scoped to the location the customer ordered from."""

    def __init__(
        self,
        location_repository: LocationRepository,
        order_repository: OrderRepository,
    ) -> None:
        self._location_repository = location_repository
        self._order_repository = order_repository

    def execute(self, public_code: str, order_id: OrderId) -> OrderResponse:
        location = require_location(self._location_repository, public_code)
        order = require_order(self._order_repository, order_id, location.location_id)
        return to_order_response(order)

    def status(self, public_code: str, order_id: OrderId) -> OrderStatusResponse:
        location = require_location(self._location_repository, public_code)
        order = require_order(self._order_repository, order_id, location.location_id)
        return to_order_status_response(order)
