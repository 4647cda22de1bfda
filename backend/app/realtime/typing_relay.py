"""Ephemeral "is typing" relay.

Nothing here is persisted or retried. A lost start/stop event is corrected
by the next one, and the emitting client is responsible for eventually
sending stop.
"""
import logging

from .hub import RoomHub
from .presence import Connection

logger = logging.getLogger(__name__)

TYPING_EVENTS = {
    ("general", True): "chat:user_typing_general",
    ("general", False): "chat:user_stopped_typing_general",
    ("private", True): "chat:user_typing_private",
    ("private", False): "chat:user_stopped_typing_private",
}


class TypingRelay:
    """Relays typing signals to a room, never back to the sender."""

    def __init__(self, hub: RoomHub) -> None:
        self.hub = hub

    async def relay(self, connection: Connection, room_id: str, scope: str, typing: bool) -> int:
        """Emit start/stop typing to everyone in ``room_id`` but the sender.

        Only rooms the sending connection has joined are relayed to.

        Returns:
            Number of connections notified.
        """
        if room_id not in connection.rooms:
            logger.debug(f"[Typing] {connection.id} not in room {room_id}, ignored")
            return 0
        event = TYPING_EVENTS[(scope, typing)]
        return await self.hub.emit(
            room_id,
            event,
            {"name": connection.user.name},
            exclude_user=connection.user.id,
        )
