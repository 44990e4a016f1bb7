"""
Notification feed: the per-user view of notifications, reconciled from
fetched snapshots and pushed creates/updates.

The list is kept most-recent-first by ``notiDateTime``. Creates are
prepended as received; updates replace by id and re-sort, so re-applying an
update is harmless. New notifications also enter a toast queue whose
entries expire one at a time from the head.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Callable

import structlog

from notifyhub_shared.schemas.common import PushEvent
from notifyhub_shared.schemas.notifications import NotificationPayload, NotificationRead

from .api import NotifyHubAPI, NotifyHubAPIError

log = structlog.get_logger()

DEFAULT_TOAST_TTL_SECONDS = 10.0


def sort_notifications(notifications: list[NotificationRead]) -> list[NotificationRead]:
    return sorted(notifications, key=lambda n: n.noti_date_time, reverse=True)


class ToastQueue:
    """Transient "new notification" queue; each entry lives ``ttl_seconds``."""

    def __init__(self, ttl_seconds: float = DEFAULT_TOAST_TTL_SECONDS):
        self._ttl = ttl_seconds
        self._entries: deque[NotificationRead] = deque()
        self._timers: deque[asyncio.TimerHandle] = deque()

    @property
    def entries(self) -> list[NotificationRead]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, notification: NotificationRead) -> None:
        """Queue a toast. Must be called from a running event loop."""
        loop = asyncio.get_running_loop()
        self._entries.append(notification)
        self._timers.append(loop.call_later(self._ttl, self._expire_head))

    def _expire_head(self) -> None:
        if self._timers:
            self._timers.popleft()
        if self._entries:
            self._entries.popleft()

    def close(self) -> None:
        """Cancel pending expiries and drop every toast."""
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        self._entries.clear()


class NotificationFeed:
    """Reconciled notification list for one user."""

    def __init__(
        self,
        username: str,
        api: NotifyHubAPI,
        toast_ttl_seconds: float = DEFAULT_TOAST_TTL_SECONDS,
    ):
        self.username = username
        self._api = api
        self._items: list[NotificationRead] = []
        self.toasts = ToastQueue(toast_ttl_seconds)
        self.error: str | None = None
        self._listeners: list[Callable[["NotificationFeed"], None]] = []

    @property
    def notifications(self) -> list[NotificationRead]:
        return list(self._items)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._items if not n.read)

    def on_change(self, listener: Callable[["NotificationFeed"], None]) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in self._listeners:
            listener(self)

    async def load(self) -> None:
        """Replace the list with a fresh snapshot from the server."""
        snapshot = await self._api.get_notifications_by_user(self.username)
        self._items = sort_notifications(snapshot)
        self._changed()

    def apply_create(self, notification: NotificationRead) -> bool:
        """Prepend a pushed notification addressed to this user.

        Returns False when the notification is for someone else or already
        present.
        """
        if notification.noti_to != self.username:
            return False
        if any(n.id == notification.id for n in self._items):
            return False

        self._items.insert(0, notification)
        self.toasts.push(notification)
        self._changed()
        return True

    def apply_update(self, notification: NotificationRead) -> bool:
        """Replace by id, then re-sort. Returns False if not addressed to this user."""
        if notification.noti_to != self.username:
            return False

        items = [n for n in self._items if n.id != notification.id]
        items.append(notification)
        self._items = sort_notifications(items)
        self._changed()
        return True

    async def handle_push(self, event: str, data: dict[str, Any]) -> None:
        """Push-listener handler for notification events."""
        if event == PushEvent.NOTIFICATION_CREATE.value:
            self.apply_create(NotificationPayload.model_validate(data).notification)
        elif event == PushEvent.NOTIFICATION_UPDATE.value:
            self.apply_update(NotificationPayload.model_validate(data).notification)

    async def mark_read(self, notification_id: str) -> bool:
        """Ask the server to mark one notification read.

        The list is not touched here; it changes when the resulting
        ``notificationUpdate`` push arrives.
        """
        try:
            await self._api.mark_notification_read(notification_id)
        except NotifyHubAPIError as exc:
            self.error = "Error marking notification read"
            log.warning("feed.mark_read_failed", notification_id=notification_id, error=exc.message)
            return False
        self.error = None
        return True

    async def mark_all_read(self) -> bool:
        try:
            await self._api.mark_all_notifications_read(self.username)
        except NotifyHubAPIError as exc:
            self.error = "Error marking notifications read"
            log.warning("feed.mark_all_read_failed", username=self.username, error=exc.message)
            return False
        self.error = None
        return True

    def close(self) -> None:
        self.toasts.close()
