"""Subscription schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import UUID4

from .common import CamelModel, SubscriptionType


class SubscriptionDraft(CamelModel):
    type: Optional[str] = None
    subscriber: Optional[str] = None


class AddSubscriptionRequest(CamelModel):
    """Body of ``POST /subscription/addSubscription``.

    ``id`` is the thread or chat the new subscription is attached to.
    """
    subscription: Optional[SubscriptionDraft] = None
    id: Optional[str] = None


class SubscriptionRead(CamelModel):
    id: UUID4
    type: SubscriptionType
    subscriber: str


class DeleteConfirmation(CamelModel):
    acknowledged: bool = True
    deleted_count: int


class UserSubscriptionResponse(CamelModel):
    subscription_id: Optional[UUID4] = None
