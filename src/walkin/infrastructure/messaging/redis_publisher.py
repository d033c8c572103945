from __future__ import annotations

import logging

from walkin.application.ports.publisher import EventPublisher
from walkin.domain.common.ids import LocationId
from walkin.infrastructure.cache.redis_client import events_channel, get_redis_client

logger = logging.getLogger(__name__)


class RedisEventPublisher(EventPublisher):
    def __init__(self, timeout_seconds: float = 1.0) -> None:
        self._timeout_seconds = timeout_seconds

    def publish_to_location(self, location_id: LocationId, message: str) -> None:
        channel = events_channel(str(location_id))
        receivers = get_redis_client(timeout_seconds=self._timeout_seconds).publish(
            channel, message
        )
        if receivers == 0:
            # No API instance is subscribed; staff screens catch up from the queue endpoint.
            logger.info("order_event_unheard", extra={"location_id": str(location_id)})
        else:
            logger.debug(
                "order_event_published",
                extra={"channel": channel, "receivers": receivers},
            )
