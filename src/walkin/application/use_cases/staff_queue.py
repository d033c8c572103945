from __future__ import annotations

from walkin.application.dto.responses import StaffOrderQueueResponse
from walkin.application.mappers.order_mapper import to_order_response
from walkin.application.metrics.order_lifecycle import record_staff_queue_size
from walkin.application.ports.repositories import InvalidCursorError, OrderRepository
from walkin.domain.common.ids import LocationId
from walkin.domain.order.entities import ACTIVE_STATUSES, OrderStatus

_STATUS_FILTERS: dict[str, frozenset[OrderStatus] | None] = {
    "ACTIVE": ACTIVE_STATUSES,
    "ALL": None,
    **{status.name: frozenset({status}) for status in OrderStatus},
}


class InvalidQueueFilterError(Exception):
    pass


class InvalidQueueCursorError(Exception):
    pass


class StaffOrderQueue:
    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(
        self,
        location_id: LocationId,
        status: str = "ACTIVE",
        limit: int = 50,
        cursor: str | None = None,
    ) -> StaffOrderQueueResponse:
        normalized_status = status.upper()
        if normalized_status not in _STATUS_FILTERS:
            raise InvalidQueueFilterError(f"invalid order queue status: {status}")
        if limit < 1 or limit > 200:
            raise InvalidQueueFilterError("limit must be between 1 and 200")

        try:
            orders, next_cursor = self._order_repository.list_for_location(
                location_id=location_id,
                statuses=_STATUS_FILTERS[normalized_status],
                limit=limit,
                cursor=cursor,
            )
        except InvalidCursorError as exc:
            raise InvalidQueueCursorError("invalid cursor") from exc

        record_staff_queue_size(
            location_id=str(location_id),
            status=normalized_status,
            size=len(orders),
        )

        return StaffOrderQueueResponse(
            orders=[to_order_response(order) for order in orders],
            nextCursor=next_cursor,
        )
