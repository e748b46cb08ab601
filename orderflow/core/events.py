"""
Real-time fan-out of order events to connected clients.

Delivery is fire-and-forget: events carry the minimal order identity plus the
notification payload, and clients re-fetch when they suspect a gap.
"""
import json
from typing import Any, Dict, List, Optional

import redis.asyncio as aioredis
from fastapi import WebSocket

from ..config.settings import get_settings
from ..config.logging import get_logger
from ..utils.date_utils import utc_now

logger = get_logger(__name__)
settings = get_settings()

NEW_ORDER = "newOrder"
UPDATE_ORDER = "updateOrder"
DELETE_ORDER = "deleteOrder"
TEAM_UPDATE = "teamUpdate"


class ConnectionManager:
    """Tracks open WebSocket subscribers on the shared channel."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"Subscriber connected ({len(self.active_connections)} open)")

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            logger.info(f"Subscriber disconnected ({len(self.active_connections)} open)")

    async def send_all(self, message: Dict[str, Any]) -> int:
        delivered = 0
        for websocket in list(self.active_connections):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping subscriber after send failure: {e}")
                self.disconnect(websocket)
        return delivered


class EventBroadcaster:
    """Publishes events to local WebSocket subscribers and, when configured, a Redis channel."""

    def __init__(self, channel: str = None, redis_url: Optional[str] = None):
        self.channel = channel or settings.EVENT_CHANNEL
        self.manager = ConnectionManager()
        self.redis_url = redis_url
        self.redis_client = None
        self._redis_checked = False

    async def get_redis(self):
        """Connect to the relay on first use; None when it is not configured or not answering."""
        if not self.redis_url or self._redis_checked:
            return self.redis_client
        self._redis_checked = True
        try:
            client = aioredis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=settings.REDIS_CONNECT_TIMEOUT,
            )
            await client.ping()
            self.redis_client = client
            logger.info(f"Event relay connected to Redis channel '{self.channel}'")
        except Exception as e:
            logger.warning(f"Redis unavailable, events stay in-process: {e}")
            self.redis_client = None
        return self.redis_client

    def build_message(self, event: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "event": event,
            "channel": self.channel,
            "data": payload,
            "sentAt": utc_now().isoformat(),
        }

    async def broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        """Send to every subscriber. Never raises."""
        message = self.build_message(event, payload)
        try:
            delivered = await self.manager.send_all(message)
            client = await self.get_redis()
            if client is not None:
                await client.publish(self.channel, json.dumps(message, default=str))
            logger.debug(f"Broadcast {event} to {delivered} subscriber(s)")
        except Exception as e:
            logger.error(f"Broadcast of {event} failed: {e}")


_broadcaster: Optional[EventBroadcaster] = None


def get_broadcaster() -> EventBroadcaster:
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = EventBroadcaster(redis_url=settings.REDIS_URL)
    return _broadcaster
