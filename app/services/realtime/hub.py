"""
WebSocket connection registry grouped into per-user rooms.
"""
import asyncio
import logging
from typing import Any, Dict, Set

from fastapi import WebSocket

from app.services.event_bus.bus import EventBus
from app.services.event_bus.events import Event, IMPORT_EVENT_TYPES

logger = logging.getLogger("ledgerflow.realtime")


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


class ConnectionManager:
    """
    Tracks open WebSockets per room and fans messages out to them.

    Delivery is best effort: a socket that fails to receive, or does not
    accept a message within ``send_timeout`` seconds, is dropped.
    """

    def __init__(self, send_timeout: float = 5.0):
        self.send_timeout = send_timeout
        self._rooms: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, user_id: str) -> None:
        """Register an accepted socket in the user's room."""
        room = user_room(user_id)
        async with self._lock:
            self._rooms.setdefault(room, set()).add(websocket)
        logger.info(f"WebSocket joined {room}")

    async def disconnect(self, websocket: WebSocket, user_id: str) -> None:
        room = user_room(user_id)
        async with self._lock:
            sockets = self._rooms.get(room)
            if sockets is None:
                return
            sockets.discard(websocket)
            if not sockets:
                del self._rooms[room]
        logger.info(f"WebSocket left {room}")

    def connection_count(self, user_id: str) -> int:
        return len(self._rooms.get(user_room(user_id), ()))

    async def emit_to_user(self, user_id: str, event: str, data: Dict[str, Any]) -> int:
        """
        Send ``{"event": event, "data": data}`` to every socket in the user's room.

        Returns:
            int: Number of sockets the message was delivered to
        """
        room = user_room(user_id)
        async with self._lock:
            sockets = list(self._rooms.get(room, ()))

        delivered = 0
        stale = []
        for websocket in sockets:
            try:
                await asyncio.wait_for(
                    websocket.send_json({"event": event, "data": data}),
                    timeout=self.send_timeout,
                )
                delivered += 1
            except asyncio.TimeoutError:
                logger.warning(f"Dropping WebSocket in {room}: send timed out after {self.send_timeout}s")
                stale.append(websocket)
            except Exception as e:
                logger.warning(f"Dropping WebSocket in {room}: {e}")
                stale.append(websocket)

        for websocket in stale:
            await self.disconnect(websocket, user_id)

        return delivered

    async def forward_event(self, event: Event) -> None:
        """Event bus subscriber: push user-addressed events to their room."""
        if event.user_id is None:
            return
        await self.emit_to_user(event.user_id, event.event_type.value, event.data)

    async def attach(self, event_bus: EventBus) -> None:
        """Subscribe to every import event type on the bus."""
        for event_type in IMPORT_EVENT_TYPES:
            await event_bus.subscribe(event_type, self.forward_event, subscriber_id="realtime-hub")
