"""Schemas for subscribable parents (threads, chats) and content fan-out."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import UUID4, Field

from .common import CamelModel, ChatUpdateType
from .messages import MessageDraft, MessageRead
from .subscriptions import SubscriptionRead


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------

class ThreadCreate(CamelModel):
    title: str = Field(min_length=1)
    text: str = ""
    asked_by: str = Field(min_length=1)


class ThreadRead(CamelModel):
    id: UUID4
    title: str
    text: str
    asked_by: str
    ask_date_time: datetime
    # Raw ids unless the caller asked for ``populate``; ``subscriptions_resolved``
    # tells the two shapes apart.
    subscriptions: Union[List[SubscriptionRead], List[UUID4]] = Field(default_factory=list)
    subscriptions_resolved: bool = False


# ---------------------------------------------------------------------------
# Chats
# ---------------------------------------------------------------------------

class ChatCreate(CamelModel):
    participants: List[str] = Field(min_length=1)
    messages: List[MessageDraft] = Field(default_factory=list)


class AddParticipantRequest(CamelModel):
    username: str = Field(min_length=1)


class ChatRead(CamelModel):
    id: UUID4
    participants: List[str]
    messages: List[MessageRead] = Field(default_factory=list)
    subscriptions: Union[List[SubscriptionRead], List[UUID4]] = Field(default_factory=list)
    subscriptions_resolved: bool = False
    created_at: datetime
    updated_at: datetime


class ChatUpdatePayload(CamelModel):
    chat: ChatRead
    type: ChatUpdateType


# ---------------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------------

class FanoutRequest(CamelModel):
    """A newly created answer/comment/message to fan out to subscribers."""
    kind: Optional[str] = None
    parent_id: Optional[str] = None
    author: Optional[str] = None
    text: Optional[str] = None


class FanoutFailure(CamelModel):
    subscriber: str
    error: str


class FanoutResult(CamelModel):
    succeeded: List[UUID4] = Field(default_factory=list)
    failed: List[FanoutFailure] = Field(default_factory=list)
