"""Pydantic schemas for chat messages."""
from datetime import datetime

from pydantic import BaseModel, Field


class Message(BaseModel):
    """A persisted chat message, as stored and as broadcast.

    ``senderName`` is a snapshot of the sender's display name at send time.
    Later renames do not rewrite history.
    """
    id: str = Field(..., description="Message ID")
    conversationId: str = Field(..., description="Owning conversation")
    senderId: str = Field(..., description="Sender user ID")
    senderName: str = Field(default="", description="Sender display name at send time")
    content: str = Field(..., description="Message text")
    createdAt: datetime = Field(..., description="Creation time (UTC)")
