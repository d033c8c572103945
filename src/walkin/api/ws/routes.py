from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from walkin.api.ws.manager import ConnectionManager

router = APIRouter()
logger = logging.getLogger(__name__)

KEEPALIVE_PING = "ping"
KEEPALIVE_PONG = "pong"


@router.websocket("/ws")
async def staff_screen_feed(websocket: WebSocket) -> None:
    """Push order events for one location to a staff screen.

    Screens only listen; the one message they may send is a keepalive ``ping``,
    answered with ``pong`` so idle proxies keep the socket open between orders.
    """
    location_id = websocket.query_params.get("location_id")
    if not location_id:
        await websocket.close(code=1008, reason="location_id query parameter is required")
        return

    manager: ConnectionManager = websocket.app.state.ws_manager
    await manager.register(websocket=websocket, location_id=location_id)
    try:
        while True:
            if await websocket.receive_text() == KEEPALIVE_PING:
                await websocket.send_text(KEEPALIVE_PONG)
    except WebSocketDisconnect:
        await manager.unregister(websocket)
    except Exception:
        logger.exception("staff_screen_feed_error", extra={"location_id": location_id})
        await manager.unregister(websocket)
