"""Presence registry: which connections exist and which rooms each has open.

Rooms are plain strings. Three kinds are in use:
    - personal room: the user's id; every connection of that user joins it
      on connect and it is used only for directed pushes
    - public room: "general"; every connection joins it on connect
    - conversation room: a private conversation id, joined when a client
      opens that chat view

A user is *present* in a room when at least one of their open connections
has joined it. Multi-device users therefore count as present if any one
device has the room open.

Thread Safety:
    Designed for a single event loop. None of the methods await, so every
    mutation is atomic with respect to other coroutines.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from fastapi import WebSocket

from app.auth.schemas import Principal

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Connection:
    """One authenticated WebSocket.

    Attributes:
        id: Server-assigned connection id.
        websocket: The underlying socket.
        user: Identity taken from the bearer token at handshake.
        rooms: Rooms this connection has joined.
    """
    id: str
    websocket: WebSocket
    user: Principal
    rooms: Set[str] = field(default_factory=set)


class PresenceRegistry:
    """Room membership bookkeeping for live connections."""

    def __init__(self, public_room: str = "general") -> None:
        self.public_room = public_room
        # connection_id -> Connection
        self._connections: Dict[str, Connection] = {}
        # room_id -> connection ids
        self._rooms: Dict[str, Set[str]] = {}

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def enroll(self, websocket: WebSocket, user: Principal) -> Connection:
        """Register a new connection and join its personal and public rooms."""
        connection = Connection(id=str(uuid.uuid4()), websocket=websocket, user=user)
        self._connections[connection.id] = connection
        self.join_room(connection.id, user.id)
        self.join_room(connection.id, self.public_room)
        logger.info(
            f"[Presence] {user.name or user.id} connected as {connection.id} "
            f"({len(self.connections_of(user.id))} open for this user)"
        )
        return connection

    def join_room(self, connection_id: str, room_id: str) -> bool:
        """Join ``room_id``. Idempotent.

        Returns:
            True if the connection was not in the room before.
        """
        connection = self._connections.get(connection_id)
        if connection is None or not room_id:
            return False
        if room_id in connection.rooms:
            return False
        connection.rooms.add(room_id)
        self._rooms.setdefault(room_id, set()).add(connection_id)
        return True

    def remove(self, connection_id: str) -> Optional[Connection]:
        """Drop a connection from every room it joined.

        Returns:
            The removed Connection, or None if it was already gone.
        """
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return None
        for room_id in connection.rooms:
            members = self._rooms.get(room_id)
            if members is None:
                continue
            members.discard(connection_id)
            if not members:
                del self._rooms[room_id]
        logger.info(f"[Presence] Connection {connection_id} removed from {len(connection.rooms)} rooms")
        return connection

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def connections_in(self, room_id: str) -> List[Connection]:
        """Snapshot of the connections currently joined to ``room_id``."""
        return [
            self._connections[cid]
            for cid in self._rooms.get(room_id, ())
            if cid in self._connections
        ]

    def connections_of(self, user_id: str) -> List[Connection]:
        """All open connections of a user (members of their personal room)."""
        return [c for c in self.connections_in(user_id) if c.user.id == user_id]

    def is_user_present_in_room(self, user_id: str, room_id: str) -> bool:
        """True iff any open connection of ``user_id`` has joined ``room_id``."""
        return any(room_id in c.rooms for c in self.connections_of(user_id))

    def rooms_of(self, connection_id: str) -> Set[str]:
        connection = self._connections.get(connection_id)
        return set(connection.rooms) if connection else set()

    def room_size(self, room_id: str) -> int:
        return len(self._rooms.get(room_id, ()))

    def connection_count(self) -> int:
        return len(self._connections)
