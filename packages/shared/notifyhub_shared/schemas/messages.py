"""Global messaging schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import UUID4, Field

from .common import CamelModel


class MessageDraft(CamelModel):
    msg: Optional[str] = None
    msg_from: Optional[str] = None
    msg_date_time: Optional[datetime] = None
    read_by: List[str] = Field(default_factory=list)


class AddMessageRequest(CamelModel):
    message_to_add: Optional[MessageDraft] = None


class MessageRead(CamelModel):
    id: UUID4
    msg: str
    msg_from: str
    msg_date_time: datetime
    read_by: List[str] = Field(default_factory=list)
    type: str = "global"


class MessagePatch(CamelModel):
    """Fields a client may change on an existing message."""
    msg: Optional[str] = None
    read_by: Optional[List[str]] = None


class UpdateMessageRequest(CamelModel):
    message_to_update: Optional[MessagePatch] = None


class MessageUpdatePayload(CamelModel):
    msg: MessageRead
