"""WebSocket endpoint streaming tracking snapshots to renderers."""

import asyncio
import logging

import orjson
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter()

# Will be set by main.py on startup
broadcaster = None

# Idle seconds before a keepalive frame is sent to the renderer
KEEPALIVE_SECONDS = 30
_KEEPALIVE = orjson.dumps({"type": "keepalive"})


@router.websocket("/ws/tracking")
async def tracking_ws(websocket: WebSocket) -> None:
    """Initial snapshot of the active trip, then every update."""
    await websocket.accept()

    if broadcaster is None:
        await websocket.close(code=1011, reason="Service not ready")
        return

    current = broadcaster.get_current_state()
    if current:
        message = orjson.loads(current)
        message["type"] = "snapshot"
        await websocket.send_bytes(orjson.dumps(message))

    queue = broadcaster.subscribe()
    try:
        while True:
            try:
                data = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                data = _KEEPALIVE
            await websocket.send_bytes(data)
    except (WebSocketDisconnect, asyncio.CancelledError):
        logger.debug("Tracking WebSocket client left")
    except Exception:
        logger.exception("Tracking WebSocket error")
    finally:
        broadcaster.unsubscribe(queue)
