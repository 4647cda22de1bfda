"""Pydantic schemas for conversations.

These schemas are used by:
    - ConversationStore: DuckDB storage layer
    - POST /conversations, GET /conversations: REST surface
    - join_room / chat:send_private: room lookups on the WebSocket
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ConversationKind(str, Enum):
    """Kind of conversation.

    Attributes:
        PUBLIC: The single process-wide room every connection joins.
        PRIVATE: A 1:1 chat between exactly two users.
    """
    PUBLIC = "public"
    PRIVATE = "private"


class Conversation(BaseModel):
    """A stored conversation.

    Attributes:
        id: Conversation identifier; also the room id for private chats.
        kind: public or private.
        participantIds: The two participants (empty for public).
        lastMessageAt: Time of the newest message, used for list ordering.
        createdAt: When the conversation was created (UTC).
    """
    id: str = Field(..., description="Conversation ID")
    kind: ConversationKind = Field(..., description="public or private")
    participantIds: List[str] = Field(default_factory=list, description="Participants")
    lastMessageAt: Optional[datetime] = Field(None, description="Newest message time")
    createdAt: datetime = Field(..., description="Creation time (UTC)")

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participantIds


class ConversationCreate(BaseModel):
    """Request body for starting a private conversation."""
    receiverId: str = Field(default="", description="User to chat with")
