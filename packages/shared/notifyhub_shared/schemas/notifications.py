"""Notification schemas for the HTTP surface and the push channel."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import UUID4

from .common import CamelModel, NotificationType


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class NotificationDraft(CamelModel):
    """Client-supplied notification fields. Pydantic checks only their types;
    presence and the notification type are checked by the service."""
    noti_to: Optional[str] = None
    noti_from: Optional[str] = None
    noti_source: Optional[str] = None
    type: Optional[str] = None
    preview: Optional[str] = None


class AddNotificationRequest(CamelModel):
    notification_to_add: Optional[NotificationDraft] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class NotificationRead(CamelModel):
    id: UUID4
    noti_to: str
    noti_from: str
    noti_source: str
    type: NotificationType
    preview: str
    noti_date_time: datetime
    read: bool = False


# ---------------------------------------------------------------------------
# Push payloads
# ---------------------------------------------------------------------------

class NotificationPayload(CamelModel):
    """Body of both ``notificationCreate`` and ``notificationUpdate`` pushes."""
    notification: NotificationRead
