import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import WebSocket

from cseg.core.metrics import STATE_BROADCASTS_TOTAL, WEBSOCKET_CONNECTIONS

logger = logging.getLogger(__name__)


@dataclass
class ConnectionInfo:
    """Information about a WebSocket connection."""

    websocket: WebSocket
    client_id: str


class ConnectionManager:
    """Tracks observer connections and pushes state updates to all of them."""

    def __init__(self):
        self._connections: dict[str, ConnectionInfo] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, client_id: str) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections[client_id] = ConnectionInfo(
                websocket=websocket,
                client_id=client_id,
            )
        WEBSOCKET_CONNECTIONS.inc()
        logger.info(f"Client connected: {client_id}")

    async def disconnect(self, client_id: str) -> None:
        """Handle disconnection."""
        async with self._lock:
            conn = self._connections.pop(client_id, None)
        if conn:
            WEBSOCKET_CONNECTIONS.dec()
            logger.info(f"Client disconnected: {client_id}")

    async def send_personal(self, client_id: str, message: dict[str, Any]) -> bool:
        """Send a message to one connection, dropping it if the send fails."""
        conn = self._connections.get(client_id)
        if conn:
            try:
                await conn.websocket.send_json(message)
                return True
            except Exception:
                await self.disconnect(client_id)
        return False

    async def broadcast(self, message: dict[str, Any]) -> int:
        """Send a message to every connection."""
        sent_count = 0
        for client_id in list(self._connections):
            if await self.send_personal(client_id, message):
                sent_count += 1
        return sent_count

    async def broadcast_state(self, state: dict[str, Any]) -> None:
        """Push a full-state update after an accepted mutation."""
        STATE_BROADCASTS_TOTAL.inc()
        await self.broadcast({"type": "STATE_UPDATE", "state": state})

    def is_connected(self, client_id: str) -> bool:
        return client_id in self._connections

    def get_connection_count(self) -> int:
        """Get total number of connections."""
        return len(self._connections)


manager = ConnectionManager()
