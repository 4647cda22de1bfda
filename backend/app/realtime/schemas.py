"""WebSocket frame and payload schemas.

Every frame is ``{"event": str, "data": ...}``. Payloads are parsed leniently
(extra keys ignored, missing strings default to empty) so a malformed chat
send is dropped instead of erroring.
"""
from typing import Any, Optional

from pydantic import BaseModel, Field


class Envelope(BaseModel):
    """A single frame sent by a client."""
    event: str = Field(..., min_length=1, description="Event name")
    data: Optional[Any] = Field(default=None, description="Event payload")


class ContentPayload(BaseModel):
    """Payload of chat:send_general."""
    content: str = ""


class RoomPayload(BaseModel):
    """Payload of join_room, typing and history events scoped to a room."""
    roomId: str = ""

    @classmethod
    def parse(cls, data: Any) -> "RoomPayload":
        # join_room historically sent the bare room id
        if isinstance(data, str):
            return cls(roomId=data)
        return cls.model_validate(data or {})


class PrivateMessagePayload(RoomPayload):
    """Payload of chat:send_private."""
    content: str = ""
