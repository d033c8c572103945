from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from walkin.application.dto.responses import OrderResponse
from walkin.application.mappers.order_mapper import to_order_response
from walkin.application.metrics.order_lifecycle import record_payment_transition
from walkin.application.ports.publisher import EventPublisher
from walkin.application.ports.repositories import OptimisticConcurrencyError, OrderRepository
from walkin.application.use_cases.context import TraceContext, utc_now
from walkin.application.use_cases.lookup import require_order
from walkin.application.use_cases.notify import publish_order_event
from walkin.application.use_cases.update_order_status import OrderConflictError
from walkin.domain.common.ids import OrderId
from walkin.domain.order.entities import (
    Order,
    OrderAlreadyPaidError,
    PaymentMethodNotAllowedError,
    PaymentTransitionError,
)

logger = logging.getLogger(__name__)


class AlreadyPaidError(Exception):
    pass


class ManualPaymentNotAllowedError(Exception):
    pass


class InvalidPaymentTransitionError(Exception):
    pass


class MarkOrderPaid:
    """Staff settles a cash order at the counter."""

    def __init__(
        self,
        order_repository: OrderRepository,
        publisher: EventPublisher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._order_repository = order_repository
        self._publisher = publisher
        self._clock = clock

    def execute(self, order_id: OrderId, trace_ctx: TraceContext) -> OrderResponse:
        order = require_order(self._order_repository, order_id)
        paid = _mark_paid(order)

        try:
            persisted_order = self._order_repository.save_with_version(
                paid, expected_version=order.version
            )
        except OptimisticConcurrencyError:
            _mark_paid(require_order(self._order_repository, order_id))
            raise OrderConflictError(f"order {order_id} payment update conflict")

        logger.info("order_marked_paid", extra={"order_id": str(order_id)})
        record_payment_transition(order.payment_status, persisted_order.payment_status, "staff")
        publish_order_event(
            self._publisher, "order.paid", persisted_order, self._clock(), trace_ctx
        )
        return to_order_response(persisted_order)


def _mark_paid(order: Order) -> Order:
    try:
        return order.mark_paid_manually()
    except PaymentMethodNotAllowedError as exc:
        raise ManualPaymentNotAllowedError(str(exc)) from exc
    except OrderAlreadyPaidError as exc:
        raise AlreadyPaidError(str(exc)) from exc
    except PaymentTransitionError as exc:
        raise InvalidPaymentTransitionError(str(exc)) from exc
