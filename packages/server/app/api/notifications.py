"""
Notification endpoints.

- POST  /addNotification — Create a notification, push notificationCreate
- GET   /getNotification/{id} — Fetch one notification (500 when it cannot be read)
- GET   /getNotisByUser/{username} — All notifications for a recipient
- PATCH /markNotiRead/{id} — Mark one read, push notificationUpdate
- PATCH /markAllNotisRead/{username} — Mark all read, return and push only the changed ones
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.delivery import ConnectionManager, get_manager
from app.core.errors import ServiceError, lookup_id, parse_id, wrap
from app.services.notifications import (
    get_notification_by_id,
    get_notifications_by_user,
    mark_all_read,
    mark_notification_read,
    save_notification,
    validate_draft,
)
from notifyhub_shared.schemas.notifications import AddNotificationRequest, NotificationRead

router = APIRouter()


@router.post("/addNotification", response_model=NotificationRead)
async def add_notification(
    body: Optional[AddNotificationRequest] = Body(None),
    session: AsyncSession = Depends(get_session),
    push: ConnectionManager = Depends(get_manager),
):
    """Create a notification. The server assigns ``notiDateTime`` and ``read``."""
    draft = validate_draft(body.notification_to_add if body else None)

    try:
        notification = await save_notification(session, draft)
    except ServiceError as exc:
        raise wrap("Error when saving notification", exc)

    await push.notification_created(notification)
    return notification


@router.get("/getNotification/{notificationId}", response_model=NotificationRead)
async def get_notification(
    notificationId: str,
    session: AsyncSession = Depends(get_session),
):
    try:
        notification_id = lookup_id(notificationId)
        return await get_notification_by_id(session, notification_id)
    except ServiceError as exc:
        raise wrap("Error when getting notification", exc)


@router.get("/getNotisByUser/{username}", response_model=list[NotificationRead])
async def get_notis_by_user(
    username: str,
    session: AsyncSession = Depends(get_session),
):
    try:
        return await get_notifications_by_user(session, username)
    except ServiceError as exc:
        raise wrap("Error when fetching user's notifications", exc)


@router.patch("/markNotiRead/{notificationId}", response_model=NotificationRead)
async def mark_noti_read(
    notificationId: str,
    session: AsyncSession = Depends(get_session),
    push: ConnectionManager = Depends(get_manager),
):
    notification_id = parse_id(notificationId)
    try:
        notification = await mark_notification_read(session, notification_id)
    except ServiceError as exc:
        raise wrap("Error when marking notification read", exc)

    await push.notification_updated(notification)
    return notification


@router.patch("/markAllNotisRead/{username}", response_model=list[NotificationRead])
async def mark_all_notis_read(
    username: str,
    session: AsyncSession = Depends(get_session),
    push: ConnectionManager = Depends(get_manager),
):
    """Mark every unread notification for ``username`` read.

    Returns, and pushes, only the notifications this call changed, not the
    user's full list: a user with nothing unread gets ``[]``. Clients that
    need the whole feed call ``getNotisByUser`` afterwards.
    """
    try:
        updated = await mark_all_read(session, username)
    except ServiceError as exc:
        raise wrap("Error when marking all notifications read", exc)

    for notification in updated:
        await push.notification_updated(notification)
    return updated
