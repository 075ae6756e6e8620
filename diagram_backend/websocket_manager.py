"""
WebSocket Manager - Handles real-time connections and broadcasts.

Every engine event of the session is forwarded to all connected clients
as ``{"type": <topic>, "payload": {...}}``.
"""
import asyncio
import json
from typing import Any, Optional, Set

from fastapi import WebSocket

from diagram_core.events import EventType
from diagram_core.logging import get_logger

logger = get_logger("websocket")


def event_message(event_type: EventType, payload: Any) -> dict:
    """Wire form of an engine event."""
    return {"type": event_type.value, "payload": payload.to_dict()}


class WebSocketManager:
    """
    Manages WebSocket connections and broadcasts.

    Engine events are emitted synchronously, so ``enqueue`` only records
    the serialized message; ``run`` drains the queue from a background task.
    """

    def __init__(self):
        self._connections: Set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._queue: Optional[asyncio.Queue] = None

    async def connect(self, websocket: WebSocket):
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)
        logger.info("WebSocket connected. Total connections: %d", len(self._connections))

    async def disconnect(self, websocket: WebSocket):
        """Remove a WebSocket connection."""
        async with self._lock:
            self._connections.discard(websocket)
        logger.info("WebSocket disconnected. Total connections: %d", len(self._connections))

    async def broadcast(self, message: dict):
        """
        Broadcast a message to all connected clients.

        Failed sends (disconnected clients) are dropped from the set.
        """
        if not self._connections:
            return

        # Serialize once for all clients
        message_text = json.dumps(message)

        failed: Set[WebSocket] = set()

        async with self._lock:
            for websocket in self._connections:
                try:
                    await websocket.send_text(message_text)
                except Exception:
                    failed.add(websocket)

            self._connections -= failed

    def enqueue(self, event_type: EventType, payload: Any) -> None:
        """Event listener: queue an engine event for broadcast."""
        if self._queue is None:
            return
        # Payloads reference live objects, serialize at emit time
        self._queue.put_nowait(event_message(event_type, payload))

    async def run(self):
        """Background task that broadcasts queued events."""
        self._queue = asyncio.Queue()
        try:
            while True:
                message = await self._queue.get()
                await self.broadcast(message)
        finally:
            self._queue = None

    @property
    def connection_count(self) -> int:
        """Get the number of active connections."""
        return len(self._connections)
