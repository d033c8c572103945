"""Wire format of the order events pushed to staff screens.

Delivery goes through Redis pub/sub and may reorder events for the same order,
so every payload carries the order ``version``; screens keep the highest one.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from walkin.domain.order.entities import Order, OrderItem

ORDER_EVENT_TYPES = frozenset(
    {
        "order.placed",
        "order.accepted",
        "order.preparing",
        "order.ready",
        "order.completed",
        "order.cancelled",
        "order.paid",
        "order.payment_failed",
        "order.refunded",
    }
)


def _item_payload(item: OrderItem) -> dict[str, Any]:
    return {
        "orderItemId": str(item.item_id),
        "menuItemId": str(item.menu_item_id),
        "name": item.name,
        "quantity": item.quantity,
        "lineTotalCents": item.line_total.amount_cents,
        "modifiers": [
            {"optionName": modifier.option_name, "valueName": modifier.value_name}
            for modifier in item.modifiers
        ],
        "specialInstructions": item.special_instructions,
    }


def order_event_payload(order: Order) -> dict[str, Any]:
    return {
        "orderId": str(order.order_id),
        "orderNumber": order.order_number,
        "version": order.version,
        "status": order.status.value,
        "paymentStatus": order.payment_status.value,
        "paymentMethod": order.payment_method.value,
        "tableNumber": order.table_number,
        "customerName": order.customer_name,
        "specialInstructions": order.special_instructions,
        "cancelledReason": order.cancelled_reason,
        "totalMoney": {
            "amountCents": order.total.amount_cents,
            "currency": order.total.currency,
        },
        "placedAt": order.placed_at.isoformat(),
        "items": [_item_payload(item) for item in order.items],
    }


def serialize_order_event(
    *,
    event_type: str,
    occurred_at: datetime,
    order: Order,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    if event_type not in ORDER_EVENT_TYPES:
        raise ValueError(f"unknown order event type {event_type!r}")

    envelope = {
        "event_id": str(uuid4()),
        "event_type": event_type,
        "occurred_at": occurred_at.isoformat(),
        "request_id": request_id,
        "trace_id": trace_id,
        "location_id": str(order.location_id),
        "payload": order_event_payload(order),
    }
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)
