from __future__ import annotations

from datetime import datetime, timezone

from prometheus_client import Counter, Gauge, Histogram

from walkin.domain.order.entities import Order, OrderStatus, PaymentStatus

ORDERS_PLACED_TOTAL = Counter(
    "walkin_orders_placed_total",
    "Total number of orders placed.",
    ["location_id", "payment_method"],
)

ORDER_TRANSITION_TOTAL = Counter(
    "walkin_order_transition_total",
    "Total number of order status transitions.",
    ["from", "to"],
)

PAYMENT_TRANSITION_TOTAL = Counter(
    "walkin_payment_transition_total",
    "Total number of payment status transitions.",
    ["from", "to", "source"],
)

ORDER_TIME_TO_ACCEPT_SECONDS = Histogram(
    "walkin_order_time_to_accept_seconds",
    "Time between order placement and acceptance.",
)

GEOFENCE_CHECKS_TOTAL = Counter(
    "walkin_geofence_checks_total",
    "Total number of proximity checks by outcome.",
    ["location_id", "outcome"],
)

WEBHOOK_EVENTS_TOTAL = Counter(
    "walkin_webhook_events_total",
    "Total number of payment gateway events by kind and outcome.",
    ["kind", "outcome"],
)

STAFF_QUEUE_SIZE = Gauge(
    "walkin_staff_queue_size",
    "Current number of orders returned by staff queue queries.",
    ["location_id", "status"],
)


def record_order_placed(order: Order) -> None:
    ORDERS_PLACED_TOTAL.labels(
        location_id=str(order.location_id),
        payment_method=order.payment_method.value,
    ).inc()


def record_transition(from_status: OrderStatus, to_status: OrderStatus) -> None:
    ORDER_TRANSITION_TOTAL.labels(**{"from": from_status.value, "to": to_status.value}).inc()


def record_payment_transition(
    from_status: PaymentStatus,
    to_status: PaymentStatus,
    source: str,
) -> None:
    PAYMENT_TRANSITION_TOTAL.labels(
        **{"from": from_status.value, "to": to_status.value, "source": source}
    ).inc()


def record_time_to_accept(order: Order, now: datetime | None = None) -> None:
    current = now or datetime.now(timezone.utc)
    ORDER_TIME_TO_ACCEPT_SECONDS.observe(max((current - order.placed_at).total_seconds(), 0.0))


def record_geofence_check(location_id: str, outcome: str) -> None:
    GEOFENCE_CHECKS_TOTAL.labels(location_id=location_id, outcome=outcome).inc()


def record_webhook_event(kind: str, outcome: str) -> None:
    WEBHOOK_EVENTS_TOTAL.labels(kind=kind, outcome=outcome).inc()


def record_staff_queue_size(location_id: str, status: str, size: int) -> None:
    STAFF_QUEUE_SIZE.labels(location_id=location_id, status=status).set(size)
