"""Notification REST API router.

Endpoints:
    GET    /notifications               - My notifications, newest first (max 50)
    GET    /notifications/unread-count  - Number of unread notifications
    PUT    /notifications/read-all      - Mark all of mine as read
    DELETE /notifications/{id}          - Delete one of mine

Every endpoint acts only on the requester's own notifications.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Request

from app.auth.dependencies import get_current_user
from app.auth.schemas import Principal

from .schemas import Notification
from .service import NotificationStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_store(request: Request) -> NotificationStore:
    return request.app.state.notifications


@router.get("", response_model=List[Notification])
async def list_notifications(
    request: Request,
    user: Principal = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store),
) -> List[Notification]:
    limit = request.app.state.config.notifications.list_limit
    return store.list_for_user(user.id, limit=limit)


@router.get("/unread-count")
async def unread_count(
    user: Principal = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store),
) -> dict:
    return {"unread": store.unread_count(user.id)}


@router.put("/read-all")
async def mark_all_read(
    user: Principal = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store),
) -> dict:
    """Mark every unread notification of the requester as read.

    Succeeds even when there was nothing to mark.
    """
    updated = store.mark_all_read(user.id)
    logger.info("[notifications] %s marked %d as read", user.id, updated)
    return {"message": "All notifications marked as read", "updated": updated}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    user: Principal = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store),
) -> dict:
    """Delete one notification.

    Returns 404 when it does not exist or belongs to someone else.
    """
    store.delete_one(user.id, notification_id)
    logger.info("[notifications] %s deleted %s", user.id, notification_id)
    return {"message": "Notification deleted"}
