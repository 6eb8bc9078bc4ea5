from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
import logging

from ....api.deps import get_hub
from ....services.broadcast_hub import BroadcastHub

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def realtime_channel(
    websocket: WebSocket,
    hub: BroadcastHub = Depends(get_hub),
):
    """
    Student and admin clients share this socket. The first frame declares
    the role (``join_exam`` or ``admin_connect``).
    """
    connection = await hub.connect(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None and message.get("bytes") is not None:
                raw = message["bytes"].decode("utf-8", errors="replace")
            await hub.handle_message(connection, raw)
    except WebSocketDisconnect:
        pass
    finally:
        hub.deregister(connection)
        logger.debug(f"Connection closed: {connection!r}")
