"""Push events to websocket clients subscribed to a hackathon channel."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from fastapi import WebSocket

_LOGGER = logging.getLogger(__name__)


class EventBus(ABC):
    @abstractmethod
    async def publish(self, channel: str, event_type: str, payload: dict[str, Any]) -> int:
        """Deliver an event to the channel's current subscribers; returns how many got it."""


class ConnectionManager(EventBus):
    def __init__(self) -> None:
        # Connections are kept per channel so events only reach that hackathon's clients
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, channel: str) -> None:
        await websocket.accept()
        self.active_connections.setdefault(channel, []).append(websocket)

    def disconnect(self, websocket: WebSocket, channel: str) -> None:
        connections = self.active_connections.get(channel)
        if not connections:
            return
        if websocket in connections:
            connections.remove(websocket)
        if not connections:
            self.active_connections.pop(channel, None)

    def subscriber_count(self, channel: str) -> int:
        return len(self.active_connections.get(channel, []))

    async def broadcast(self, channel: str, message: dict[str, Any]) -> int:
        delivered = 0
        for connection in list(self.active_connections.get(channel, [])):
            try:
                await connection.send_json(message)
            except Exception as exc:
                _LOGGER.warning("Dropping subscriber on channel %s: %s", channel, exc)
                self.disconnect(connection, channel)
            else:
                delivered += 1
        return delivered

    async def publish(self, channel: str, event_type: str, payload: dict[str, Any]) -> int:
        return await self.broadcast(channel, {"type": event_type, "data": payload})


_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager
