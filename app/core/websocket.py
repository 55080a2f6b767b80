"""
WebSocket manager for real-time wager notifications.
Streams CoinFlipped / CoinLanded events to connected clients.
"""

import asyncio
from typing import List, Optional, Set
from fastapi import WebSocket
import orjson

from app.core.logger import get_logger

logger = get_logger("websocket")


class ConnectionManager:
    """
    Manages WebSocket connections and fans wager events out to them.

    Events can be published from any thread (the fulfilment scheduler runs
    in its own); they are handed to the server loop captured by `bind_loop`.
    """

    def __init__(self, max_history: int = 100):
        self.all_connections: Set[WebSocket] = set()
        self.event_history: List[dict] = []
        self.max_history = max_history
        self.loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop

    async def _send_json(self, websocket: WebSocket, data: dict):
        # orjson.dumps returns bytes
        await websocket.send_bytes(orjson.dumps(data))

    async def connect(self, websocket: WebSocket):
        """Accept a new WebSocket connection and replay recent events."""
        await websocket.accept()
        self.all_connections.add(websocket)
        logger.debug(f"WebSocket accepted: total={len(self.all_connections)}")

        if self.event_history:
            await self._send_json(
                websocket, {"type": "event_history", "events": self.event_history[-50:]}
            )

    def disconnect(self, websocket: WebSocket):
        """Remove a WebSocket connection."""
        self.all_connections.discard(websocket)
        logger.info(f"WebSocket disconnected: total={len(self.all_connections)}")

    async def broadcast(self, message: dict):
        """Send a message to every connection, dropping the ones that fail."""
        connections = list(self.all_connections)
        results = await asyncio.gather(
            *(self._send_json(ws, message) for ws in connections),
            return_exceptions=True,
        )
        disconnected = [ws for ws, r in zip(connections, results) if isinstance(r, Exception)]
        if disconnected:
            logger.info(f"Found {len(disconnected)} disconnected clients during broadcast.")
            for ws in disconnected:
                self.all_connections.discard(ws)

    def publish(self, message: dict):
        """Record an event and schedule its broadcast on the server loop."""
        self.event_history.append(message)
        if len(self.event_history) > self.max_history:
            self.event_history = self.event_history[-self.max_history:]

        if self.loop is None or self.loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.broadcast(message), self.loop)

    def get_connection_count(self) -> int:
        return len(self.all_connections)
