"""Apply verified payment gateway notifications to orders.

Gateways deliver at least once and in no guaranteed order, so every handler
is idempotent: a notification that has already been applied, or that no
longer applies to the order's current payment state, is acknowledged without
changing anything. Every verified notification is acknowledged; a charge
whose fee cannot be read is recorded with a zero gateway fee.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from enum import Enum
from functools import partial
from typing import Callable

from walkin.application.dto.responses import WebhookAckResponse
from walkin.application.metrics.order_lifecycle import (
    record_payment_transition,
    record_webhook_event,
)
from walkin.application.ports.payment_gateway import (
    ChargeFee,
    PaymentGateway,
    PaymentGatewayError,
)
from walkin.application.ports.publisher import EventPublisher
from walkin.application.ports.repositories import (
    DuplicatePlatformFeeError,
    OptimisticConcurrencyError,
    OrderRepository,
)
from walkin.application.use_cases.context import TraceContext, utc_now
from walkin.application.use_cases.notify import publish_order_event
from walkin.domain.common.ids import OrderId
from walkin.domain.order.entities import (
    Order,
    OrderAlreadyPaidError,
    PaymentStatus,
    PaymentTransitionError,
)
from walkin.domain.payment.events import GatewayEvent, GatewayEventKind
from walkin.domain.payment.fees import compute_fee_split

logger = logging.getLogger(__name__)

MAX_APPLY_ATTEMPTS = 3


class ReconcileOutcome(str, Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    ORDER_NOT_FOUND = "order_not_found"
    CONFLICT = "conflict"


class ReconcilePaymentEvent:
    def __init__(
        self,
        order_repository: OrderRepository,
        gateway: PaymentGateway,
        publisher: EventPublisher,
        platform_fee_percentage: Decimal = Decimal("3"),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._order_repository = order_repository
        self._gateway = gateway
        self._publisher = publisher
        self._platform_fee_percentage = platform_fee_percentage
        self._clock = clock

    def execute(
        self,
        payload: bytes,
        signature: str | None,
        trace_ctx: TraceContext,
    ) -> WebhookAckResponse:
        event = self._gateway.parse_event(payload, signature)
        outcome = self.handle(event, trace_ctx)
        record_webhook_event(event.kind.value, outcome.value)
        logger.info(
            "payment_event_reconciled",
            extra={
                "gateway_event_id": event.event_id,
                "event_type": event.event_type,
                "order_id": event.order_id,
                "outcome": outcome.value,
            },
        )
        return WebhookAckResponse(received=True, eventType=event.event_type, outcome=outcome.value)

    def handle(self, event: GatewayEvent, trace_ctx: TraceContext) -> ReconcileOutcome:
        if event.kind == GatewayEventKind.PAYMENT_CAPTURED:
            return self._on_captured(event, trace_ctx)
        if event.kind == GatewayEventKind.PAYMENT_FAILED:
            return self._on_failed(event, trace_ctx)
        if event.kind == GatewayEventKind.CHARGE_REFUNDED:
            return self._on_refunded(event, trace_ctx)
        return ReconcileOutcome.IGNORED

    def _on_captured(self, event: GatewayEvent, trace_ctx: TraceContext) -> ReconcileOutcome:
        if not event.order_id:
            logger.warning(
                "payment_event_missing_order",
                extra={"gateway_event_id": event.event_id, "event_type": event.event_type},
            )
            return ReconcileOutcome.IGNORED

        fee: ChargeFee | None = None
        for _ in range(MAX_APPLY_ATTEMPTS):
            order = self._order_repository.get(OrderId(event.order_id))
            if order is None:
                return ReconcileOutcome.ORDER_NOT_FOUND
            try:
                captured = order.confirm_capture()
            except OrderAlreadyPaidError:
                return ReconcileOutcome.DUPLICATE
            except PaymentTransitionError:
                logger.warning(
                    "payment_capture_not_applicable",
                    extra={"order_id": event.order_id, "payment_status": order.payment_status.value},
                )
                return ReconcileOutcome.IGNORED

            if fee is None:
                fee = self._charge_fee(event.charge_id)
            now = self._clock()
            platform_fee = compute_fee_split(
                captured,
                gateway_fee_cents=fee.fee_cents,
                platform_fee_percentage=self._platform_fee_percentage,
                gateway_charge_id=event.charge_id,
                gateway_balance_transaction_id=fee.balance_transaction_id,
                now=now,
            )
            try:
                persisted = self._order_repository.record_capture(
                    captured, expected_version=order.version, platform_fee=platform_fee
                )
            except DuplicatePlatformFeeError:
                return ReconcileOutcome.DUPLICATE
            except OptimisticConcurrencyError:
                continue

            self._applied(order, persisted, "order.paid", now, trace_ctx)
            return ReconcileOutcome.APPLIED

        logger.error(
            "payment_capture_conflict",
            extra={"order_id": event.order_id, "gateway_event_id": event.event_id},
        )
        return ReconcileOutcome.CONFLICT

    def _on_failed(self, event: GatewayEvent, trace_ctx: TraceContext) -> ReconcileOutcome:
        if not event.order_id:
            return ReconcileOutcome.IGNORED
        return self._apply_payment_change(
            partial(self._order_repository.get, OrderId(event.order_id)),
            Order.fail_payment,
            PaymentStatus.FAILED,
            "order.payment_failed",
            trace_ctx,
        )

    def _on_refunded(self, event: GatewayEvent, trace_ctx: TraceContext) -> ReconcileOutcome:
        if event.payment_intent_id:
            loader = partial(self._order_repository.get_by_payment_intent, event.payment_intent_id)
        elif event.order_id:
            loader = partial(self._order_repository.get, OrderId(event.order_id))
        else:
            return ReconcileOutcome.IGNORED
        return self._apply_payment_change(
            loader,
            Order.refund,
            PaymentStatus.REFUNDED,
            "order.refunded",
            trace_ctx,
        )

    def _apply_payment_change(
        self,
        loader: Callable[[], Order | None],
        change: Callable[[Order], Order],
        target: PaymentStatus,
        event_type: str,
        trace_ctx: TraceContext,
    ) -> ReconcileOutcome:
        for _ in range(MAX_APPLY_ATTEMPTS):
            order = loader()
            if order is None:
                return ReconcileOutcome.ORDER_NOT_FOUND
            if order.payment_status == target:
                return ReconcileOutcome.DUPLICATE
            try:
                updated = change(order)
            except PaymentTransitionError:
                return ReconcileOutcome.IGNORED
            try:
                persisted = self._order_repository.save_with_version(
                    updated, expected_version=order.version
                )
            except OptimisticConcurrencyError:
                continue
            self._applied(order, persisted, event_type, self._clock(), trace_ctx)
            return ReconcileOutcome.APPLIED

        logger.error("payment_update_conflict", extra={"payment_status": target.value})
        return ReconcileOutcome.CONFLICT

    def _charge_fee(self, charge_id: str | None) -> ChargeFee:
        if not charge_id:
            return ChargeFee(fee_cents=0, balance_transaction_id=None)
        try:
            return self._gateway.get_charge_fee(charge_id)
        except PaymentGatewayError:
            logger.warning(
                "payment_fee_lookup_failed", extra={"charge_id": charge_id}, exc_info=True
            )
            return ChargeFee(fee_cents=0, balance_transaction_id=None)

    def _applied(
        self,
        before: Order,
        after: Order,
        event_type: str,
        now: datetime,
        trace_ctx: TraceContext,
    ) -> None:
        record_payment_transition(before.payment_status, after.payment_status, "gateway")
        publish_order_event(self._publisher, event_type, after, now, trace_ctx)
