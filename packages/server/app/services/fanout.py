"""
Fan-out engine: one content event in, one notification per subscriber out.

The parent thread's subscription list is resolved once; every subscriber
other than the author gets a notification, each saved in its own session
and pushed to the recipient's live sessions. Creations run concurrently and
one failure never blocks the others; the outcome is reported per subscriber.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Callable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.delivery import ConnectionManager
from app.core.errors import ValidationError
from app.core.metrics import metrics
from app.services.notifications import save_notification
from app.services.subscriptions import get_parent, resolve, subscription_list
from notifyhub_shared.schemas.common import NotificationType, SubscriptionType, truncate_preview
from notifyhub_shared.schemas.notifications import NotificationDraft
from notifyhub_shared.schemas.parents import FanoutFailure, FanoutRequest, FanoutResult

log = structlog.get_logger()
settings = get_settings()

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

# Event kinds that fan out to thread subscribers
THREAD_KINDS = {NotificationType.ANSWER, NotificationType.COMMENT}


@dataclass(frozen=True)
class ContentEvent:
    """A freshly persisted answer or comment."""
    kind: NotificationType
    parent_id: uuid.UUID
    author: str
    text: str

    @classmethod
    def from_request(cls, req: Optional[FanoutRequest]) -> "ContentEvent":
        if req is None or not req.author or req.text is None:
            raise ValidationError("Invalid content event")
        try:
            kind = NotificationType(req.kind)
        except ValueError:
            raise ValidationError("Invalid content event")
        if kind not in THREAD_KINDS:
            raise ValidationError("Chat messages do not fan out")
        try:
            parent_id = uuid.UUID(str(req.parent_id))
        except ValueError:
            raise ValidationError("Invalid ID format")
        return cls(kind=kind, parent_id=parent_id, author=req.author, text=req.text)


class FanoutEngine:
    """Translate content events into per-subscriber notifications."""

    def __init__(self, session_factory: SessionFactory, manager: ConnectionManager):
        self._session_factory = session_factory
        self._manager = manager

    async def recipients(self, event: ContentEvent) -> list[str]:
        """Subscribers of the event's parent thread, author excluded, in list order.

        Raises ``NotFoundError`` if the parent does not resolve.
        """
        async with self._session_factory() as session:
            parent = await get_parent(session, SubscriptionType.THREAD, event.parent_id)
            records = await resolve(session, subscription_list(parent))

        subscribers = [r.subscriber for r in records if r.subscriber != event.author]
        return list(dict.fromkeys(subscribers))

    def build_draft(self, event: ContentEvent, subscriber: str) -> NotificationDraft:
        return NotificationDraft(
            noti_to=subscriber,
            noti_from=event.author,
            noti_source=str(event.parent_id),
            type=event.kind.value,
            preview=truncate_preview(event.text, settings.preview_length),
        )

    async def _notify(self, draft: NotificationDraft) -> uuid.UUID:
        async with self._session_factory() as session:
            notification = await save_notification(session, draft)
        await self._manager.notification_created(notification)
        return notification.id

    async def fan_out(self, event: ContentEvent) -> FanoutResult:
        """Create and push one notification per eligible subscriber.

        If the parent fetch fails nothing is created and the error propagates.
        """
        subscribers = await self.recipients(event)
        drafts = [self.build_draft(event, s) for s in subscribers]

        outcomes = await asyncio.gather(
            *(self._notify(d) for d in drafts), return_exceptions=True
        )

        result = FanoutResult()
        for subscriber, outcome in zip(subscribers, outcomes):
            if isinstance(outcome, BaseException):
                result.failed.append(FanoutFailure(subscriber=subscriber, error=str(outcome)))
                log.warning(
                    "fanout.notification_failed",
                    parent_id=str(event.parent_id),
                    subscriber=subscriber,
                    error=str(outcome),
                )
            else:
                result.succeeded.append(outcome)

        if result.failed:
            metrics.inc("fanout_failures_total", len(result.failed))
        log.info(
            "fanout.completed",
            kind=event.kind.value,
            parent_id=str(event.parent_id),
            succeeded=len(result.succeeded),
            failed=len(result.failed),
        )
        return result
