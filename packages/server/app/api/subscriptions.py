"""
Subscription endpoints.

- POST   /addSubscription — Create a subscription attached to a thread or chat
- GET    /getSubscription/{id}
- DELETE /removeSubscription/{id} — Delete and detach from its parent
- GET    /getUserSubscription/{kind}/{parentId}/{username} — Caller's subscription id, if any
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.errors import ServiceError, ValidationError, lookup_id, parse_id, wrap
from app.services.subscriptions import (
    delete_subscription,
    get_parent,
    get_subscription_by_id,
    get_user_subscription_id,
    subscribe,
    subscription_list,
    validate_subscription,
)
from notifyhub_shared.schemas.common import SubscriptionType
from notifyhub_shared.schemas.subscriptions import (
    AddSubscriptionRequest,
    DeleteConfirmation,
    SubscriptionRead,
    UserSubscriptionResponse,
)

router = APIRouter()


@router.post("/addSubscription", response_model=SubscriptionRead)
async def add_subscription(
    body: Optional[AddSubscriptionRequest] = Body(None),
    session: AsyncSession = Depends(get_session),
):
    """Create a subscription and attach it to the parent named by ``id``."""
    if body is None or body.subscription is None or not body.id:
        raise ValidationError("Invalid subscription body")
    validate_subscription(body.subscription.type, body.subscription.subscriber)
    parent_id = parse_id(body.id)

    try:
        return await subscribe(
            session,
            parent_id,
            body.subscription.type,
            body.subscription.subscriber,
        )
    except ServiceError as exc:
        raise wrap("Error when saving subscription", exc)


@router.get("/getSubscription/{subscriptionId}", response_model=SubscriptionRead)
async def get_subscription(
    subscriptionId: str,
    session: AsyncSession = Depends(get_session),
):
    try:
        subscription_id = lookup_id(subscriptionId)
        return await get_subscription_by_id(session, subscription_id)
    except ServiceError as exc:
        raise wrap("Error when fetching subscription", exc)


@router.delete("/removeSubscription/{subscriptionId}", response_model=DeleteConfirmation)
async def remove_subscription(
    subscriptionId: str,
    session: AsyncSession = Depends(get_session),
):
    subscription_id = parse_id(subscriptionId)
    try:
        return await delete_subscription(session, subscription_id)
    except ServiceError as exc:
        raise wrap("Error when deleting subscription", exc)


@router.get(
    "/getUserSubscription/{kind}/{parentId}/{username}",
    response_model=UserSubscriptionResponse,
)
async def get_user_subscription(
    kind: str,
    parentId: str,
    username: str,
    session: AsyncSession = Depends(get_session),
):
    if kind not in {t.value for t in SubscriptionType}:
        raise ValidationError("Invalid subscription type")
    parent_id = parse_id(parentId)

    try:
        parent = await get_parent(session, SubscriptionType(kind), parent_id)
        subscription_id = await get_user_subscription_id(
            session, subscription_list(parent), username
        )
    except ServiceError as exc:
        raise wrap("Error when fetching subscription", exc)
    return UserSubscriptionResponse(subscription_id=subscription_id)
