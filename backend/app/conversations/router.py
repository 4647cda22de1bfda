"""Conversation REST API router.

Endpoints:
    POST /conversations                 - Start (or reopen) a private chat
    GET  /conversations                 - List my conversations
    GET  /conversations/{id}/messages   - Full message history

The WebSocket carries live messages; these endpoints load the chat views.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.auth.dependencies import get_current_user
from app.auth.schemas import Principal
from app.errors import NotFound
from app.messages.schemas import Message
from app.messages.service import MessageLog

from .schemas import Conversation, ConversationCreate
from .service import ConversationStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["conversations"])


def get_conversation_store(request: Request) -> ConversationStore:
    return request.app.state.conversations


def get_message_log(request: Request) -> MessageLog:
    return request.app.state.messages


@router.post("")
async def start_conversation(
    body: ConversationCreate,
    user: Principal = Depends(get_current_user),
    store: ConversationStore = Depends(get_conversation_store),
) -> JSONResponse:
    """Create the private conversation with ``receiverId`` or return it.

    Returns:
        201 with the new conversation, 200 with the existing one, or 400
        when the receiver is the requester.
    """
    conv, created = store.get_or_create_private(user.id, body.receiverId)
    if created:
        logger.info("[conversations] %s started chat %s with %s", user.id, conv.id, body.receiverId)
    return JSONResponse(conv.model_dump(mode="json"), status_code=201 if created else 200)


@router.get("", response_model=List[Conversation])
async def list_conversations(
    user: Principal = Depends(get_current_user),
    store: ConversationStore = Depends(get_conversation_store),
) -> List[Conversation]:
    """Private conversations of the requester plus the public one,
    most recently active first."""
    store.get_or_create_public()
    return store.list_for_user(user.id)


@router.get("/{conversation_id}/messages", response_model=List[Message])
async def conversation_messages(
    conversation_id: str,
    user: Principal = Depends(get_current_user),
    store: ConversationStore = Depends(get_conversation_store),
    log: MessageLog = Depends(get_message_log),
) -> List[Message]:
    """Every message of a conversation, oldest first.

    Returns 404 both for unknown conversations and for private ones the
    requester does not take part in.
    """
    conv = store.get_for_user(conversation_id, user.id)
    if conv is None:
        raise NotFound("Conversation not found")
    return log.history(conv.id)
