from __future__ import annotations

import logging
from datetime import datetime

from walkin.application.mappers.event_envelope import serialize_order_event
from walkin.application.ports.publisher import EventPublisher
from walkin.application.use_cases.context import TraceContext
from walkin.domain.order.entities import Order

logger = logging.getLogger(__name__)


def publish_order_event(
    publisher: EventPublisher,
    event_type: str,
    order: Order,
    occurred_at: datetime,
    trace_ctx: TraceContext,
) -> None:
    message = serialize_order_event(
        event_type=event_type,
        occurred_at=occurred_at,
        order=order,
        trace_id=trace_ctx.trace_id,
        request_id=trace_ctx.request_id,
    )
    try:
        publisher.publish_to_location(order.location_id, message)
    except Exception:
        logger.warning(
            "order_event_publish_failed",
            exc_info=True,
            extra={"event_type": event_type, "order_id": str(order.order_id)},
        )
