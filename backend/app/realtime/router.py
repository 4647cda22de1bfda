"""WebSocket endpoint for chat, typing indicators and live notifications.

This module provides:
    - WebSocket /ws: authenticated real-time channel

Protocol:
    Frames in both directions are ``{"event": <name>, "data": <payload>}``.

    1. Client connects with ``?token=<jwt>`` (or an Authorization header)
       → invalid/missing token: socket closed with 1008 and an auth error
       → Server sends: {event: "connected", data: {connectionId, user}}
       The connection is already in its personal room and "general".
    2. chat:get_general_history → chat:general_history (≤50, oldest first)
    3. chat:send_general {content} → chat:receive_general to "general"
    4. chat:start_typing_general / chat:stop_typing_general
       → chat:user_typing_general / chat:user_stopped_typing_general {name}
         to everyone in "general" except the sender
    5. join_room {roomId} → no reply, the connection joins the room
    6. chat:send_private {roomId, content} → chat:receive_private to roomId,
       chat:new_message_notification to participants without the room open
    7. chat:start_typing_private / chat:stop_typing_private {roomId}
    8. chat:get_private_history {roomId} → chat:private_history
    9. On disconnect → presence teardown, no broadcast

Errors are reported to the acting connection only as
``{event: "error", data: {code, message}}``. Empty chat content is dropped
without a reply.
"""
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.auth.service import TokenService, extract_bearer
from app.errors import AuthRejected, CoreError, InvalidRequest

from .delivery import DeliveryEngine
from .hub import RoomHub
from .presence import Connection, PresenceRegistry
from .schemas import ContentPayload, Envelope, PrivateMessagePayload, RoomPayload
from .typing_relay import TypingRelay

logger = logging.getLogger(__name__)

router = APIRouter()

# 1008 = Policy Violation
AUTH_CLOSE_CODE = 1008


class ChatSession:
    """Event handlers bound to one authenticated connection."""

    def __init__(
        self,
        connection: Connection,
        hub: RoomHub,
        presence: PresenceRegistry,
        engine: DeliveryEngine,
        typing: TypingRelay,
    ) -> None:
        self.connection = connection
        self.user = connection.user
        self.hub = hub
        self.presence = presence
        self.engine = engine
        self.typing = typing
        self._handlers: Dict[str, Callable[[Any], Awaitable[None]]] = {
            "chat:get_general_history": self.on_get_general_history,
            "chat:send_general": self.on_send_general,
            "chat:start_typing_general": self.on_start_typing_general,
            "chat:stop_typing_general": self.on_stop_typing_general,
            "join_room": self.on_join_room,
            "chat:send_private": self.on_send_private,
            "chat:start_typing_private": self.on_start_typing_private,
            "chat:stop_typing_private": self.on_stop_typing_private,
            "chat:get_private_history": self.on_get_private_history,
        }

    async def handle(self, raw: str) -> None:
        """Parse and dispatch one frame; failures stay on this connection."""
        try:
            envelope = Envelope.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError):
            await self.send_error(InvalidRequest("Invalid frame: expected {event, data}"))
            return

        handler = self._handlers.get(envelope.event)
        if handler is None:
            await self.send_error(InvalidRequest(f"Unknown event: {envelope.event}"))
            return

        logger.debug("[WS] %s received: event=%s", self.connection.id, envelope.event)
        try:
            await handler(envelope.data)
        except ValidationError:
            await self.send_error(InvalidRequest(f"Invalid payload for {envelope.event}"))
        except CoreError as e:
            logger.warning(f"[WS] {envelope.event} from {self.user.id} failed: {e.message}")
            await self.send_error(e)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception(f"[WS] Unexpected error handling {envelope.event} from {self.user.id}: {exc}")
            await self.send_error(CoreError("Internal server error"))

    async def send_error(self, error: CoreError) -> None:
        await self.hub.send(self.connection, "error", {"code": error.code, "message": error.message})

    # --- General chat ---

    async def on_get_general_history(self, data: Any) -> None:
        messages = self.engine.general_history()
        await self.hub.send(self.connection, "chat:general_history", messages)

    async def on_send_general(self, data: Any) -> None:
        payload = ContentPayload.model_validate(data or {})
        await self.engine.send_general(self.user, payload.content)

    async def on_start_typing_general(self, data: Any) -> None:
        await self.typing.relay(self.connection, self.presence.public_room, "general", True)

    async def on_stop_typing_general(self, data: Any) -> None:
        await self.typing.relay(self.connection, self.presence.public_room, "general", False)

    # --- Private chat ---

    async def on_join_room(self, data: Any) -> None:
        payload = RoomPayload.parse(data)
        if not payload.roomId:
            return
        if not self.engine.can_join(self.user, payload.roomId):
            logger.warning(f"[WS] {self.user.id} may not join room {payload.roomId}, ignored")
            return
        if self.presence.join_room(self.connection.id, payload.roomId):
            logger.info(f"[WS] {self.user.name or self.user.id} joined room {payload.roomId}")

    async def on_send_private(self, data: Any) -> None:
        payload = PrivateMessagePayload.parse(data)
        await self.engine.send_private(self.user, payload.roomId, payload.content)

    async def on_start_typing_private(self, data: Any) -> None:
        payload = RoomPayload.parse(data)
        if payload.roomId:
            await self.typing.relay(self.connection, payload.roomId, "private", True)

    async def on_stop_typing_private(self, data: Any) -> None:
        payload = RoomPayload.parse(data)
        if payload.roomId:
            await self.typing.relay(self.connection, payload.roomId, "private", False)

    async def on_get_private_history(self, data: Any) -> None:
        payload = RoomPayload.parse(data)
        messages = self.engine.private_history(self.user, payload.roomId)
        await self.hub.send(
            self.connection,
            "chat:private_history",
            {"roomId": payload.roomId, "messages": messages},
        )


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: Optional[str] = Query(None, description="Bearer token (alternative to the header)"),
) -> None:
    """Authenticated real-time channel for one client.

    SECURITY: the token is verified before the socket is accepted, so a
    rejected client never joins a room or reaches an event handler.
    """
    state = websocket.app.state
    tokens: TokenService = state.tokens
    presence: PresenceRegistry = state.presence

    raw_token = token or extract_bearer(websocket.headers.get("authorization"))
    try:
        user = tokens.verify(raw_token)
    except AuthRejected as e:
        logger.warning(f"[WS] Connection rejected: {e.message}")
        await websocket.close(code=AUTH_CLOSE_CODE, reason=e.message)
        return

    await websocket.accept()
    connection = presence.enroll(websocket, user)
    session = ChatSession(connection, state.hub, presence, state.engine, state.typing)

    try:
        await state.hub.send(connection, "connected", {
            "connectionId": connection.id,
            "user": user,
        })

        while True:
            raw = await websocket.receive_text()
            await session.handle(raw)

    except WebSocketDisconnect:
        logger.info(f"[WS] {connection.id} ({user.id}) disconnected")
    finally:
        presence.remove(connection.id)
