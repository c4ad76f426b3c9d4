"""
WebSocket endpoint for real-time notifications and flag updates.

Protocol (server -> client, JSON text frames):
  {"type": "backlog",      "data": [notification, ...]}   once, first
  {"type": "flags:init",   "data": {"key": bool, ...}}    once, second
  {"type": "notification", "data": notification}
  {"type": "flags:update", "data": flag_change}

Client frames are read only to detect disconnects.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..exceptions import ConnectionLimitReached, StoreUnavailable
from ..service import get_service

logger = logging.getLogger("flagcast.api.websocket")

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def events_websocket(websocket: WebSocket):
    """Attach a client, run the catch-up handshake, then stream live events."""
    service = get_service()
    if service is None or not service.is_running:
        await websocket.close(code=1013, reason="Service not running")
        return

    if service.registry.is_full:
        await websocket.close(code=1013, reason="Too many connections")
        return

    await websocket.accept()
    connection = service.new_connection(websocket)

    try:
        await service.connect(connection)
    except ConnectionLimitReached:
        await websocket.close(code=1013, reason="Too many connections")
        return
    except StoreUnavailable as e:
        logger.error("Handshake failed for %s: %s", connection.id[:8], e)
        await websocket.close(code=1011, reason="Flag store unavailable")
        return

    try:
        while True:
            message = await websocket.receive()
            if message.get("type") == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    finally:
        await service.disconnect(connection)
