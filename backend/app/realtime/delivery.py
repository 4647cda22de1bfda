"""Delivery engine: persistence-then-fan-out for chat messages.

For every accepted message the engine runs, in order:

    1. Persist via the MessageLog; a failure aborts fan-out.
    2. Advance the conversation's ``lastMessageAt``; a failure here is logged
       and delivery continues, since the message is already stored.
    3. Broadcast to every connection in the conversation's room, the
       sender's own connections included (clients render the echo).
    4. Private conversations only: for each participant other than the
       sender, check presence in the conversation room once.
         - present: nothing more, the broadcast reached an open view
         - absent:  store a ``chat`` Notification and push it to the
                    participant's personal room
    5. Public conversations stop after step 3; every connection is always
       in the public room.

External producers (process assignment, incident reports, status changes)
use ``notify`` for the same persist-then-push behaviour on personal rooms.
"""
import logging
from typing import List, Optional

from app.auth.schemas import Principal
from app.conversations.schemas import Conversation, ConversationKind
from app.conversations.service import ConversationStore
from app.errors import NotFound, PersistenceFailure
from app.messages.schemas import Message
from app.messages.service import MAX_HISTORY, MessageLog
from app.notifications.schemas import (
    Notification,
    NotificationCreate,
    NotificationEvent,
    NotificationKind,
)
from app.notifications.service import NotificationStore

from .hub import RoomHub
from .presence import PresenceRegistry

logger = logging.getLogger(__name__)

RECEIVE_GENERAL = "chat:receive_general"
RECEIVE_PRIVATE = "chat:receive_private"


def chat_link(conversation_id: str) -> str:
    return f"/chat/{conversation_id}"


class DeliveryEngine:
    """Decides live versus stored delivery for every chat message.

    Args:
        hub: Room hub used for every emit.
        presence: Registry consulted for the live/stored decision.
        conversations: Conversation store.
        messages: Message log.
        notifications: Notification store.
        history_limit: Number of messages returned by history requests.
        preview_chars: Length of the content preview in chat notifications.
    """

    def __init__(
        self,
        hub: RoomHub,
        presence: PresenceRegistry,
        conversations: ConversationStore,
        messages: MessageLog,
        notifications: NotificationStore,
        history_limit: int = MAX_HISTORY,
        preview_chars: int = 30,
    ) -> None:
        self.hub = hub
        self.presence = presence
        self.conversations = conversations
        self.messages = messages
        self.notifications = notifications
        self.history_limit = min(history_limit, MAX_HISTORY)
        self.preview_chars = preview_chars

    @property
    def public_room(self) -> str:
        return self.presence.public_room

    # =========================================================================
    # History
    # =========================================================================

    def general_history(self) -> List[Message]:
        conv = self.conversations.get_or_create_public()
        return self.messages.recent_history(conv.id, self.history_limit)

    def private_history(self, user: Principal, room_id: str) -> List[Message]:
        conv = self._private_for(user, room_id)
        return self.messages.recent_history(conv.id, self.history_limit)

    def can_join(self, user: Principal, room_id: str) -> bool:
        """Whether ``user`` may open the room of conversation ``room_id``."""
        if room_id == self.public_room:
            return True
        return self.conversations.get_for_user(room_id, user.id) is not None

    # =========================================================================
    # Sending
    # =========================================================================

    async def send_general(self, user: Principal, content: str) -> Optional[Message]:
        """Persist and broadcast a public message.

        Returns:
            The stored message, or None when the content was empty.

        Raises:
            PersistenceFailure: If the message could not be stored; nothing
                was broadcast.
        """
        conv = self.conversations.get_or_create_public()
        message = self._persist(conv, user, content)
        if message is None:
            return None
        delivered = await self.hub.emit(self.public_room, RECEIVE_GENERAL, message)
        logger.info(f"[Delivery] General message {message.id} from {user.id} to {delivered} connections")
        return message

    async def send_private(self, user: Principal, room_id: str, content: str) -> Optional[Message]:
        """Persist, broadcast and (when needed) notify for a private message.

        Returns:
            The stored message, or None when roomId or content was empty.

        Raises:
            NotFound: If the conversation does not exist or the sender is
                not one of its participants.
            PersistenceFailure: If the message could not be stored.
        """
        if not room_id or not (content or "").strip():
            return None

        conv = self._private_for(user, room_id)
        message = self._persist(conv, user, content)
        if message is None:
            return None

        delivered = await self.hub.emit(conv.id, RECEIVE_PRIVATE, message)
        logger.info(f"[Delivery] Private message {message.id} in {conv.id} to {delivered} connections")

        for participant_id in conv.participantIds:
            if participant_id == user.id:
                continue
            # Evaluated once per recipient per message.
            if self.presence.is_user_present_in_room(participant_id, conv.id):
                logger.debug(f"[Delivery] {participant_id} has {conv.id} open, live delivery only")
                continue
            await self.notify(
                participant_id,
                kind=NotificationKind.CHAT,
                message=self._preview(user, message.content),
                link=chat_link(conv.id),
                event=NotificationEvent.CHAT_MESSAGE,
            )
        return message

    async def notify(
        self,
        user_id: str,
        kind: NotificationKind,
        message: str,
        link: Optional[str] = None,
        event: NotificationEvent = NotificationEvent.CHAT_MESSAGE,
    ) -> Notification:
        """Store a notification, then push it to the user's personal room.

        The notification is persisted even if the user has no open
        connection; the push is best-effort.
        """
        notification = self.notifications.create(
            NotificationCreate(userId=user_id, message=message, link=link, kind=kind)
        )
        delivered = await self.hub.emit_to_user(user_id, event.value, notification)
        logger.info(
            f"[Delivery] Stored {kind.value} notification {notification.id} for {user_id}; "
            f"pushed to {delivered} connections"
        )
        return notification

    # =========================================================================
    # Internal
    # =========================================================================

    def _private_for(self, user: Principal, room_id: str) -> Conversation:
        conv = self.conversations.get_for_user(room_id, user.id)
        if conv is None or conv.kind != ConversationKind.PRIVATE:
            raise NotFound("Conversation not found")
        return conv

    def _persist(self, conv: Conversation, user: Principal, content: str) -> Optional[Message]:
        message = self.messages.append(conv.id, user.id, user.name, content)
        if message is None:
            return None
        try:
            self.conversations.touch_last_message_at(conv.id, message.createdAt)
        except PersistenceFailure as e:
            # The message is durable; only list ordering is stale.
            logger.error(f"[Delivery] Could not advance recency of {conv.id}: {e.message}")
        return message

    def _preview(self, user: Principal, content: str) -> str:
        preview = content[:self.preview_chars]
        if len(content) > self.preview_chars:
            preview += "..."
        return f'New message from {user.name or user.id}: "{preview}"'
