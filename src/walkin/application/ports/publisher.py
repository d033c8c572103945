from __future__ import annotations

from typing import Protocol

from walkin.domain.common.ids import LocationId


class EventPublisher(Protocol):
    def publish_to_location(self, location_id: LocationId, message: str) -> None:
        """Deliver a serialized order event to the staff screens of one location."""
        ...
