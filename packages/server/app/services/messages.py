"""
Message service: global message board and the message records behind chats.
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFoundError, PersistenceError, ValidationError
from app.models.base import utcnow
from app.models.message import Message
from notifyhub_shared.schemas.messages import MessageDraft, MessagePatch

GLOBAL = "global"
DIRECT = "direct"


def validate_message(draft: Optional[MessageDraft]) -> MessageDraft:
    if draft is None:
        raise ValidationError("Invalid request")
    if not draft.msg or not draft.msg_from or draft.msg_date_time is None:
        raise ValidationError("Invalid message body")
    return draft


def build_message(draft: MessageDraft, type_: str = GLOBAL) -> Message:
    return Message(
        msg=draft.msg,
        msg_from=draft.msg_from,
        msg_date_time=draft.msg_date_time or utcnow(),
        read_by=list(dict.fromkeys(draft.read_by)),
        type=type_,
    )


async def save_message(
    session: AsyncSession, draft: MessageDraft, type_: str = GLOBAL
) -> Message:
    message = build_message(draft, type_)
    try:
        session.add(message)
        await session.commit()
        await session.refresh(message)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise PersistenceError(f"Error when saving a message: {exc}") from exc
    return message


async def get_messages(session: AsyncSession) -> list[Message]:
    """All global messages, oldest first."""
    result = await session.execute(
        select(Message)
        .where(Message.type == GLOBAL)
        .order_by(Message.msg_date_time.asc())
    )
    return list(result.scalars().all())


async def get_message_by_id(session: AsyncSession, message_id: uuid.UUID) -> Message:
    message = await session.get(Message, message_id)
    if message is None:
        raise NotFoundError("Message not found")
    return message


async def update_message(
    session: AsyncSession, message_id: uuid.UUID, patch: MessagePatch
) -> Message:
    """Apply ``patch``. ``readBy`` entries are merged, never dropped or duplicated."""
    message = await get_message_by_id(session, message_id)

    if patch.msg is not None:
        if not patch.msg:
            raise ValidationError("Invalid message body")
        message.msg = patch.msg
    if patch.read_by is not None:
        message.read_by = list(dict.fromkeys([*message.read_by, *patch.read_by]))

    try:
        session.add(message)
        await session.commit()
        await session.refresh(message)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise PersistenceError(f"Error when updating a message: {exc}") from exc
    return message
