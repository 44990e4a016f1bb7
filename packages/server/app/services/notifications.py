"""
Notification store: durable notification records and read-state transitions.

Handles:
- Validation of client-supplied notification bodies
- Creation with server-assigned timestamp and ``read=False``
- Lookup by id and by recipient
- Single and bulk mark-read (read is monotonic, never reset to False)
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

import structlog
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFoundError, PersistenceError, ValidationError
from app.core.metrics import metrics
from app.models.base import utcnow
from app.models.notification import Notification
from notifyhub_shared.schemas.common import NotificationType
from notifyhub_shared.schemas.notifications import NotificationDraft

log = structlog.get_logger()

# Fields a caller may change through ``update_notification``
UPDATABLE_FIELDS = {"read", "preview"}


def _present(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def validate_draft(draft: Optional[NotificationDraft]) -> NotificationDraft:
    if (
        draft is None
        or not _present(draft.noti_to)
        or not _present(draft.noti_source)
        or draft.type not in {t.value for t in NotificationType}
        or not _present(draft.preview)
        or not _present(draft.noti_from)
    ):
        raise ValidationError("Invalid notification body")
    return draft


async def save_notification(session: AsyncSession, draft: NotificationDraft) -> Notification:
    """Persist a notification. The server owns ``notiDateTime`` and ``read``."""
    notification = Notification(
        noti_to=draft.noti_to,
        noti_from=draft.noti_from,
        noti_source=draft.noti_source,
        type=draft.type,
        preview=draft.preview,
        noti_date_time=utcnow(),
        read=False,
    )
    try:
        session.add(notification)
        await session.commit()
        await session.refresh(notification)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise PersistenceError(f"Failed to create notification: {exc}") from exc

    metrics.inc("notifications_created_total")
    return notification


async def get_notification_by_id(
    session: AsyncSession, notification_id: uuid.UUID
) -> Notification:
    try:
        notification = await session.get(Notification, notification_id)
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to read notification: {exc}") from exc
    if notification is None:
        raise NotFoundError("Notification not found")
    return notification


async def get_notifications_by_user(session: AsyncSession, username: str) -> list[Notification]:
    """All notifications addressed to ``username``, unsorted."""
    try:
        result = await session.execute(
            select(Notification).where(Notification.noti_to == username)
        )
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to read notifications: {exc}") from exc
    return list(result.scalars().all())


async def update_notification(
    session: AsyncSession,
    notification_id: uuid.UUID,
    updates: dict[str, Any],
) -> Notification:
    """Merge ``updates`` into a notification and return the stored result."""
    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    if updates.get("read") is False:
        raise ValidationError("Notifications cannot be marked unread")

    notification = await session.get(Notification, notification_id)
    if notification is None:
        raise NotFoundError("Error updating notification")

    for field, value in updates.items():
        setattr(notification, field, value)
    try:
        session.add(notification)
        await session.commit()
        await session.refresh(notification)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise PersistenceError(f"Error updating notification: {exc}") from exc
    return notification


async def mark_notification_read(
    session: AsyncSession, notification_id: uuid.UUID
) -> Notification:
    """Set ``read=True``. Already-read notifications are returned unchanged."""
    return await update_notification(session, notification_id, {"read": True})


async def mark_all_read(session: AsyncSession, username: str) -> list[Notification]:
    """
    Mark every unread notification for ``username`` as read.

    One conditional UPDATE, so the bulk transition is atomic at the store.
    Returns only the records this call changed.
    """
    stmt = (
        update(Notification)
        .where(Notification.noti_to == username, Notification.read == False)  # noqa: E712
        .values(read=True)
        .returning(Notification.id)
    )
    try:
        result = await session.execute(stmt)
        changed_ids = list(result.scalars().all())
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise PersistenceError(f"Error marking notifications read: {exc}") from exc

    if not changed_ids:
        return []

    result = await session.execute(
        select(Notification)
        .where(Notification.id.in_(changed_ids))
        .execution_options(populate_existing=True)
    )
    updated = list(result.scalars().all())
    log.info("notifications.marked_all_read", username=username, count=len(updated))
    return updated
