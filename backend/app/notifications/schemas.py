"""Pydantic schemas for user notifications.

A notification is the durable half of a push: it is written first and then
emitted on the recipient's personal room. Anything the user missed while
offline is still listed by GET /notifications.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class NotificationKind(str, Enum):
    """What produced the notification.

    Attributes:
        PROCESS: A process was assigned or changed status.
        INCIDENT: An incident was reported against a process.
        CHAT: A private chat message arrived while the chat was closed.
        SYSTEM: Anything else.
    """
    PROCESS = "process"
    INCIDENT = "incident"
    CHAT = "chat"
    SYSTEM = "system"


class NotificationEvent(str, Enum):
    """Event names pushed to a personal room together with a Notification."""
    CHAT_MESSAGE = "chat:new_message_notification"
    PROCESS_ASSIGNED = "process:assigned"
    INCIDENT_CREATED = "incident:created"
    PROCESS_STATUS_UPDATED = "process:status_updated"


class Notification(BaseModel):
    """A stored notification owned by ``userId``."""
    id: str = Field(..., description="Notification ID")
    userId: str = Field(..., description="Recipient (owner)")
    message: str = Field(..., description="Rendered text")
    read: bool = Field(default=False, description="Seen by the owner")
    link: Optional[str] = Field(None, description="Deep-link hint for the client")
    kind: NotificationKind = Field(default=NotificationKind.SYSTEM)
    createdAt: datetime = Field(..., description="Creation time (UTC)")


class NotificationCreate(BaseModel):
    """Input for creating a notification. Id and timestamp are set by the store."""
    userId: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    link: Optional[str] = None
    kind: NotificationKind = NotificationKind.SYSTEM
