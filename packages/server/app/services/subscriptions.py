"""
Subscription registry: subscription records and their attachment to a parent
thread or chat.

A subscription always belongs to exactly one parent whose ``subscriptions``
list references it. Creation and attachment share one transaction; deletion
removes the record and every parent reference in one transaction.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional, Union

import structlog
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFoundError, PersistenceError, ServiceError, ValidationError
from app.models.chat import Chat
from app.models.subscription import Subscription
from app.models.thread import Thread
from notifyhub_shared.schemas.common import SubscriptionType

log = structlog.get_logger()

PARENT_MODELS: dict[SubscriptionType, type[Thread] | type[Chat]] = {
    SubscriptionType.THREAD: Thread,
    SubscriptionType.CHAT: Chat,
}

Parent = Union[Thread, Chat]


# ---------------------------------------------------------------------------
# Parent subscription list shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Unresolved:
    """A parent's subscription list as stored: ids only."""
    ids: list[uuid.UUID] = field(default_factory=list)


@dataclass(frozen=True)
class Resolved:
    """A parent's subscription list with every id replaced by its record."""
    records: list[Subscription] = field(default_factory=list)


SubscriptionList = Union[Unresolved, Resolved]


def subscription_list(parent: Parent) -> Unresolved:
    return Unresolved(ids=[uuid.UUID(s) for s in parent.subscriptions])


async def resolve(session: AsyncSession, subs: SubscriptionList) -> list[Subscription]:
    """Normalize either shape to records, in list order.

    Ids whose record no longer exists are dropped.
    """
    if isinstance(subs, Resolved):
        return list(subs.records)
    if not subs.ids:
        return []

    result = await session.execute(
        select(Subscription).where(Subscription.id.in_(subs.ids))
    )
    by_id = {s.id: s for s in result.scalars().all()}
    return [by_id[i] for i in subs.ids if i in by_id]


async def get_user_subscription_id(
    session: AsyncSession, subs: SubscriptionList, username: str
) -> Optional[uuid.UUID]:
    """The id of ``username``'s subscription in ``subs``, or None."""
    for record in await resolve(session, subs):
        if record.subscriber == username:
            return record.id
    return None


# ---------------------------------------------------------------------------
# Create / attach
# ---------------------------------------------------------------------------


def validate_subscription(type_: Optional[str], subscriber: Optional[str]) -> SubscriptionType:
    if type_ not in {t.value for t in SubscriptionType}:
        raise ValidationError("Invalid subscription body")
    if subscriber is None or subscriber.strip() == "":
        raise ValidationError("Invalid subscription body")
    return SubscriptionType(type_)


async def get_parent(
    session: AsyncSession, kind: SubscriptionType, parent_id: uuid.UUID
) -> Parent:
    parent = await session.get(PARENT_MODELS[kind], parent_id)
    if parent is None:
        raise NotFoundError(f"Error when adding subscription to {kind.value}")
    return parent


async def create_subscription(
    session: AsyncSession, type_: Optional[str], subscriber: Optional[str]
) -> Subscription:
    """Stage a new subscription record in the session (not committed)."""
    kind = validate_subscription(type_, subscriber)
    subscription = Subscription(type=kind.value, subscriber=subscriber)
    session.add(subscription)
    await session.flush()
    return subscription


async def attach_to_parent(
    session: AsyncSession, parent_id: uuid.UUID, subscription: Subscription
) -> Parent:
    """Prepend ``subscription`` to its parent's list (not committed)."""
    if not subscription.type or not subscription.subscriber:
        raise ValidationError("Invalid subscription body")

    parent = await get_parent(session, SubscriptionType(subscription.type), parent_id)
    parent.subscriptions = [str(subscription.id), *parent.subscriptions]
    session.add(parent)
    await session.flush()
    return parent


async def subscribe(
    session: AsyncSession,
    parent_id: uuid.UUID,
    type_: Optional[str],
    subscriber: Optional[str],
) -> Subscription:
    """Create a subscription and attach it to ``parent_id`` atomically.

    If attaching fails the record is rolled back with it.
    """
    try:
        subscription = await create_subscription(session, type_, subscriber)
        await attach_to_parent(session, parent_id, subscription)
        await session.commit()
    except ServiceError:
        await session.rollback()
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        raise PersistenceError(f"Error occurred when saving subscription: {exc}") from exc

    await session.refresh(subscription)
    log.info(
        "subscriptions.created",
        subscription_id=str(subscription.id),
        type=subscription.type,
        parent_id=str(parent_id),
    )
    return subscription


# ---------------------------------------------------------------------------
# Read / delete
# ---------------------------------------------------------------------------


async def get_subscription_by_id(
    session: AsyncSession, subscription_id: uuid.UUID
) -> Subscription:
    subscription = await session.get(Subscription, subscription_id)
    if subscription is None:
        raise NotFoundError("Subscription not found")
    return subscription


async def _detach_from_parents(
    session: AsyncSession, kind: SubscriptionType, subscription_id: uuid.UUID
) -> int:
    """Remove ``subscription_id`` from every parent of ``kind`` that lists it."""
    target = str(subscription_id)
    result = await session.execute(select(PARENT_MODELS[kind]))
    touched = 0
    for parent in result.scalars().all():
        if target in parent.subscriptions:
            parent.subscriptions = [s for s in parent.subscriptions if s != target]
            session.add(parent)
            touched += 1
    return touched


async def delete_subscription(session: AsyncSession, subscription_id: uuid.UUID) -> dict:
    """Delete a subscription and every parent reference to it."""
    subscription = await get_subscription_by_id(session, subscription_id)
    kind = SubscriptionType(subscription.type)

    try:
        result = await session.execute(
            delete(Subscription).where(Subscription.id == subscription_id)
        )
        if result.rowcount != 1:
            raise NotFoundError("Subscription not found")
        detached = await _detach_from_parents(session, kind, subscription_id)
        await session.commit()
    except NotFoundError:
        await session.rollback()
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        raise PersistenceError(f"Error occurred when deleting subscription: {exc}") from exc

    if subscription in session:
        session.expunge(subscription)
    log.info(
        "subscriptions.deleted",
        subscription_id=str(subscription_id),
        parents_updated=detached,
    )
    return {"acknowledged": True, "deleted_count": result.rowcount}


# ---------------------------------------------------------------------------
# Orphans
# ---------------------------------------------------------------------------


async def find_orphans(session: AsyncSession) -> list[Subscription]:
    """Subscriptions that no thread or chat references.

    Candidates are read before the parent lists. A subscription commits
    together with its parent reference, so one created after the candidate
    read is never a candidate, and one created before it is already listed.
    """
    result = await session.execute(select(Subscription))
    candidates = result.scalars().all()
    if not candidates:
        return []

    referenced: set[str] = set()
    for model in PARENT_MODELS.values():
        # Column select, so lists are read fresh rather than from the identity map
        result = await session.execute(select(model.subscriptions))
        for ids in result.scalars().all():
            referenced.update(ids)

    return [s for s in candidates if str(s.id) not in referenced]


async def remove_orphans(session: AsyncSession) -> int:
    orphans = await find_orphans(session)
    if not orphans:
        return 0

    await session.execute(
        delete(Subscription).where(Subscription.id.in_([s.id for s in orphans]))
    )
    await session.commit()
    log.info("subscriptions.orphans_removed", count=len(orphans))
    return len(orphans)
