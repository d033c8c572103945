from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket
from prometheus_client import Counter, Gauge

logger = logging.getLogger(__name__)

STAFF_SCREENS_CONNECTED = Gauge(
    "walkin_staff_screens_connected",
    "Staff screen websockets currently attached to this API instance",
)
STAFF_SCREEN_EVENTS_DELIVERED = Counter(
    "walkin_staff_screen_events_delivered_total",
    "Order events written to staff screen websockets",
    ["outcome"],
)


class ConnectionManager:
    """Staff screen sockets grouped by the location they watch.

    Every API instance subscribes to the same Redis channels, so a screen only
    needs to be attached to one instance to see all of its location's orders.
    """

    def __init__(self) -> None:
        self._screens: dict[str, set[WebSocket]] = defaultdict(set)
        self._location_of: dict[WebSocket, str] = {}
        self._lock = asyncio.Lock()

    async def register(self, websocket: WebSocket, location_id: str) -> None:
        await websocket.accept()
        async with self._lock:
            self._screens[location_id].add(websocket)
            self._location_of[websocket] = location_id
        STAFF_SCREENS_CONNECTED.inc()
        logger.info("staff_screen_connected", extra={"location_id": location_id})

    async def unregister(self, websocket: WebSocket) -> None:
        async with self._lock:
            location_id = self._location_of.pop(websocket, None)
            if location_id is None:
                return
            screens = self._screens.get(location_id)
            if screens:
                screens.discard(websocket)
                if not screens:
                    self._screens.pop(location_id, None)
        STAFF_SCREENS_CONNECTED.dec()
        logger.info("staff_screen_disconnected", extra={"location_id": location_id})

    def connection_count(self, location_id: str) -> int:
        return len(self._screens.get(location_id, ()))

    async def broadcast(self, location_id: str, message_json_str: str) -> None:
        async with self._lock:
            targets = list(self._screens.get(location_id, ()))

        dropped: list[WebSocket] = []
        for websocket in targets:
            try:
                await websocket.send_text(message_json_str)
            except Exception:
                dropped.append(websocket)

        STAFF_SCREEN_EVENTS_DELIVERED.labels(outcome="sent").inc(len(targets) - len(dropped))
        if dropped:
            STAFF_SCREEN_EVENTS_DELIVERED.labels(outcome="dropped").inc(len(dropped))
            logger.warning(
                "staff_screen_dropped",
                extra={"location_id": location_id, "dropped": len(dropped)},
            )
        for websocket in dropped:
            await self.unregister(websocket)
