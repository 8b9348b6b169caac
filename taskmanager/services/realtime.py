"""
Realtime push channel.

Tracks live websocket connections per user and emits JSON events to exactly
one user's connections. Delivery is fire-and-forget: sockets that fail are
dropped and nothing is reported back to the sender.
"""

import json
import logging
from typing import Any, Dict, Set

from fastapi import WebSocket, WebSocketDisconnect

from taskmanager.utils.time import utcnow

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Registry of websocket connections keyed by user id."""

    def __init__(self):
        self.user_connections: Dict[str, Set[WebSocket]] = {}

    @property
    def connection_count(self) -> int:
        return sum(len(conns) for conns in self.user_connections.values())

    def room(self, user_id: str) -> str:
        return f"user-{user_id}"

    async def connect(self, websocket: WebSocket, user_id: str):
        """Accept a websocket and register it for ``user_id``."""
        await websocket.accept()
        self.user_connections.setdefault(user_id, set()).add(websocket)
        await websocket.send_text(json.dumps({
            "type": "connection_established",
            "timestamp": utcnow().isoformat(),
            "data": {"message": f"Connected as user {user_id}"},
        }))
        logger.info(f"User {user_id} connected. Total connections: {self.connection_count}")

    def disconnect(self, websocket: WebSocket, user_id: str):
        connections = self.user_connections.get(user_id)
        if connections is not None:
            connections.discard(websocket)
            if not connections:
                del self.user_connections[user_id]
        logger.info(f"User {user_id} disconnected. Remaining connections: {self.connection_count}")

    async def emit(self, user_id: str, event: str, payload: Dict[str, Any]) -> int:
        """
        Send ``event`` to every live connection of ``user_id``.

        Returns:
            Number of connections the event was written to
        """
        connections = self.user_connections.get(user_id)
        if not connections:
            return 0

        json_message = json.dumps({
            "type": event,
            "data": payload,
            "timestamp": utcnow().isoformat(),
        }, default=str)

        delivered = 0
        disconnected = set()
        for connection in list(connections):
            try:
                await connection.send_text(json_message)
                delivered += 1
            except WebSocketDisconnect:
                disconnected.add(connection)
            except Exception as e:
                logger.error(f"Error sending {event} to user {user_id}: {e}")
                disconnected.add(connection)

        for connection in disconnected:
            self.disconnect(connection, user_id)

        return delivered

    def status(self) -> Dict[str, Any]:
        return {
            "service": "WebSocket",
            "configured": True,
            "realtime": True,
            "connected_users": len(self.user_connections),
            "connections": self.connection_count,
        }
