"""Thread service: the subscribable question threads answers and comments attach to."""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.models.thread import Thread
from app.services.subscriptions import resolve, subscription_list
from notifyhub_shared.schemas.parents import ThreadCreate, ThreadRead
from notifyhub_shared.schemas.subscriptions import SubscriptionRead


async def create_thread(session: AsyncSession, req: ThreadCreate) -> Thread:
    thread = Thread(title=req.title, text=req.text, asked_by=req.asked_by)
    session.add(thread)
    await session.commit()
    await session.refresh(thread)
    return thread


async def get_thread(session: AsyncSession, thread_id: uuid.UUID) -> Thread:
    thread = await session.get(Thread, thread_id)
    if thread is None:
        raise NotFoundError("Thread not found")
    return thread


async def enrich_thread(
    session: AsyncSession, thread: Thread, populate: bool = False
) -> ThreadRead:
    """Convert a Thread row to its wire shape, resolving subscriptions on request."""
    subs = subscription_list(thread)
    if populate:
        records = await resolve(session, subs)
        subscriptions = [SubscriptionRead.model_validate(s) for s in records]
    else:
        subscriptions = subs.ids

    return ThreadRead(
        id=thread.id,
        title=thread.title,
        text=thread.text,
        asked_by=thread.asked_by,
        ask_date_time=thread.ask_date_time,
        subscriptions=subscriptions,
        subscriptions_resolved=populate,
    )
