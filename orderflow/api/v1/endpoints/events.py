# api/v1/endpoints/events.py
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ....config.logging import get_logger
from ....core.events import get_broadcaster

logger = get_logger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def event_stream(websocket: WebSocket):
    """Push order and team events to the client; inbound messages are ignored"""
    manager = get_broadcaster().manager
    await manager.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        manager.disconnect(websocket)
