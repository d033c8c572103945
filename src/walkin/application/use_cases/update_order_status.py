from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from walkin.application.dto.requests import UpdateOrderStatusRequest
from walkin.application.dto.responses import OrderResponse
from walkin.application.mappers.order_mapper import to_order_response
from walkin.application.metrics.order_lifecycle import record_time_to_accept, record_transition
from walkin.application.ports.publisher import EventPublisher
from walkin.application.ports.repositories import OptimisticConcurrencyError, OrderRepository
from walkin.application.use_cases.context import TraceContext, utc_now
from walkin.application.use_cases.lookup import require_order
from walkin.application.use_cases.notify import publish_order_event
from walkin.domain.common.ids import OrderId
from walkin.domain.order.entities import (
    CancellationReasonRequiredError,
    Order,
    OrderStatus,
    OrderTransitionError,
)

logger = logging.getLogger(__name__)


class InvalidOrderTransitionError(Exception):
    pass


class CancelReasonRequiredError(Exception):
    pass


class OrderConflictError(Exception):
    pass


class UpdateOrderStatus:
    def __init__(
        self,
        order_repository: OrderRepository,
        publisher: EventPublisher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._order_repository = order_repository
        self._publisher = publisher
        self._clock = clock

    def execute(
        self,
        order_id: OrderId,
        request_dto: UpdateOrderStatusRequest,
        trace_ctx: TraceContext,
    ) -> OrderResponse:
        order = require_order(self._order_repository, order_id)
        now = self._clock()
        updated = _apply_transition(order, request_dto, now)

        try:
            persisted_order = self._order_repository.save_with_version(
                updated, expected_version=order.version
            )
        except OptimisticConcurrencyError:
            current = require_order(self._order_repository, order_id)
            # Surface the real reason if the concurrent write made this move illegal.
            _apply_transition(current, request_dto, now)
            raise OrderConflictError(f"order {order_id} status update conflict")

        logger.info(
            "order_status_changed",
            extra={
                "order_id": str(order_id),
                "from_status": order.status.value,
                "to_status": persisted_order.status.value,
            },
        )
        record_transition(from_status=order.status, to_status=persisted_order.status)
        if persisted_order.status == OrderStatus.ACCEPTED:
            record_time_to_accept(persisted_order, now=now)
        publish_order_event(
            self._publisher,
            f"order.{persisted_order.status.value}",
            persisted_order,
            now,
            trace_ctx,
        )
        return to_order_response(persisted_order)


def _apply_transition(
    order: Order,
    request_dto: UpdateOrderStatusRequest,
    now: datetime,
) -> Order:
    try:
        return order.transition_to(request_dto.status, now, reason=request_dto.cancelled_reason)
    except OrderTransitionError as exc:
        raise InvalidOrderTransitionError(str(exc)) from exc
    except CancellationReasonRequiredError as exc:
        raise CancelReasonRequiredError(str(exc)) from exc
