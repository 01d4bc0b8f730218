"""In-process realtime publisher over WebSockets.

Tracks open sockets per user. Publishing to a user with no open socket is
a no-op, not an error. Messages are JSON objects of the form
``{"topic": ..., "payload": ...}``.

Connections live in this process only; with several replicas a user
receives pushes only from the replica holding their socket.
"""

import logging
import uuid
from typing import Any, Protocol

from fastapi import WebSocket

logger = logging.getLogger(__name__)

USER_NOTIFICATIONS_TOPIC = "notifications"


class RealtimePublisher(Protocol):
    """Push interface consumed by the realtime delivery channel."""

    async def publish_to_user(
        self, user_id: uuid.UUID, topic: str, payload: dict[str, Any]
    ) -> int:
        """Send to every open socket of user_id. Returns sockets reached."""
        ...

    async def publish_broadcast(self, topic: str, payload: dict[str, Any]) -> int:
        """Send to every open socket. Returns sockets reached."""
        ...


class ConnectionManager:
    """Registry of open WebSocket connections keyed by user id."""

    def __init__(self) -> None:
        self._connections: dict[uuid.UUID, set[WebSocket]] = {}

    async def connect(self, user_id: uuid.UUID, websocket: WebSocket) -> None:
        """Accept a socket and register it for user_id."""
        await websocket.accept()
        self._connections.setdefault(user_id, set()).add(websocket)
        logger.debug("Realtime connect user=%s", user_id)

    def disconnect(self, user_id: uuid.UUID, websocket: WebSocket) -> None:
        """Forget a socket. Unknown sockets are ignored."""
        sockets = self._connections.get(user_id)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._connections[user_id]

    def is_online(self, user_id: uuid.UUID) -> bool:
        return user_id in self._connections

    def connection_count(self, user_id: uuid.UUID | None = None) -> int:
        """Open sockets for user_id, or across all users when omitted."""
        if user_id is not None:
            return len(self._connections.get(user_id, ()))
        return sum(len(sockets) for sockets in self._connections.values())

    async def _send(
        self, user_id: uuid.UUID, websocket: WebSocket, message: dict[str, Any]
    ) -> bool:
        try:
            await websocket.send_json(message)
        except Exception:  # noqa: BLE001
            logger.info("Dropping broken realtime socket for user=%s", user_id)
            self.disconnect(user_id, websocket)
            return False
        return True

    async def publish_to_user(
        self, user_id: uuid.UUID, topic: str, payload: dict[str, Any]
    ) -> int:
        message = {"topic": topic, "payload": payload}
        delivered = 0
        for websocket in list(self._connections.get(user_id, ())):
            if await self._send(user_id, websocket, message):
                delivered += 1
        return delivered

    async def publish_broadcast(self, topic: str, payload: dict[str, Any]) -> int:
        message = {"topic": topic, "payload": payload}
        delivered = 0
        for user_id, sockets in list(self._connections.items()):
            for websocket in list(sockets):
                if await self._send(user_id, websocket, message):
                    delivered += 1
        return delivered


connection_manager = ConnectionManager()
