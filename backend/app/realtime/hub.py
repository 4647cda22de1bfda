"""Room hub: addresses rooms and connections on top of the presence registry.

This is the one object that can push frames to clients. It is created at
startup, stored on ``app.state.hub`` and handed to everything that emits:
the delivery engine, the typing relay and the WebSocket router.

Wire format:
    Every frame is ``{"event": <name>, "data": <payload>}``. Pydantic models
    (and lists of them) are dumped in JSON mode so datetimes become ISO
    strings.

Performance Notes:
    - Room broadcasts use asyncio.gather() for concurrent delivery
    - Connections whose send fails are dropped from the registry
"""
import asyncio
import logging
from typing import Any, List, Optional

from pydantic import BaseModel

from .presence import Connection, PresenceRegistry

logger = logging.getLogger(__name__)


def _encode(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [_encode(item) for item in data]
    if isinstance(data, dict):
        return {key: _encode(value) for key, value in data.items()}
    return data


def make_frame(event: str, data: Any = None) -> dict:
    return {"event": event, "data": _encode(data)}


class RoomHub:
    """Emits events to rooms, users and single connections."""

    def __init__(self, presence: PresenceRegistry) -> None:
        self.presence = presence

    async def emit(
        self,
        room_id: str,
        event: str,
        data: Any = None,
        exclude_user: Optional[str] = None,
    ) -> int:
        """Broadcast an event to every connection in a room concurrently.

        Args:
            room_id: Room to broadcast to.
            event: Event name.
            data: Payload (model, list of models or plain JSON).
            exclude_user: Skip every connection belonging to this user id.

        Returns:
            Number of connections the frame was delivered to.
        """
        connections = [
            conn for conn in self.presence.connections_in(room_id)
            if exclude_user is None or conn.user.id != exclude_user
        ]
        return await self._broadcast(connections, event, data)

    async def emit_to_user(self, user_id: str, event: str, data: Any = None) -> int:
        """Push an event to every open connection of ``user_id``.

        Addressed by connection owner, not by room name, so a room that merely
        shares the user's id never receives personal pushes.
        """
        return await self._broadcast(self.presence.connections_of(user_id), event, data)

    async def send(self, connection: Connection, event: str, data: Any = None) -> bool:
        """Send an event to exactly one connection."""
        ok = await self._safe_send(connection, make_frame(event, data))
        if not ok:
            self._cleanup_connections([connection])
        return ok

    async def _broadcast(self, connections: List[Connection], event: str, data: Any) -> int:
        if not connections:
            return 0

        frame = make_frame(event, data)
        results = await asyncio.gather(
            *[self._safe_send(conn, frame) for conn in connections],
            return_exceptions=True
        )

        failed = [conn for conn, ok in zip(connections, results) if ok is not True]
        self._cleanup_connections(failed)
        return len(connections) - len(failed)

    async def _safe_send(self, connection: Connection, frame: dict) -> bool:
        """Send a frame with error handling.

        Returns:
            True if successful, False if the connection failed.
        """
        try:
            await connection.websocket.send_json(frame)
            return True
        except Exception as e:
            logger.debug(f"Failed to send to connection {connection.id}: {e}")
            return False

    def _cleanup_connections(self, failed: List[Connection]) -> None:
        for conn in failed:
            if self.presence.remove(conn.id) is not None:
                logger.debug(f"Removed dead connection {conn.id}")
