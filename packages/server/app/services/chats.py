"""
Chat service: direct-message chats with participants, messages and subscriptions.

Chat messages are stored as ``direct`` messages and referenced from the
chat's ``messages`` list in send order.
"""

from __future__ import annotations

import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFoundError, PersistenceError, ValidationError
from app.models.chat import Chat
from app.models.message import Message
from app.services.messages import DIRECT, build_message, validate_message
from app.services.subscriptions import resolve, subscription_list
from notifyhub_shared.schemas.messages import MessageDraft, MessageRead
from notifyhub_shared.schemas.parents import ChatCreate, ChatRead
from notifyhub_shared.schemas.subscriptions import SubscriptionRead


async def _commit(session: AsyncSession, *rows) -> None:
    try:
        for row in rows:
            session.add(row)
        await session.commit()
        for row in rows:
            await session.refresh(row)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise PersistenceError(f"Error when saving chat: {exc}") from exc


async def create_chat(session: AsyncSession, req: ChatCreate) -> Chat:
    participants = list(dict.fromkeys(p for p in req.participants if p.strip()))
    if not participants:
        raise ValidationError("Invalid chat body")

    messages = [build_message(validate_message(m), DIRECT) for m in req.messages]
    chat = Chat(participants=participants, messages=[str(m.id) for m in messages])
    await _commit(session, chat, *messages)
    return chat


async def get_chat(session: AsyncSession, chat_id: uuid.UUID) -> Chat:
    chat = await session.get(Chat, chat_id)
    if chat is None:
        raise NotFoundError("Chat not found")
    return chat


async def get_chats_by_user(session: AsyncSession, username: str) -> list[Chat]:
    result = await session.execute(select(Chat).order_by(Chat.updated_at.desc()))
    return [c for c in result.scalars().all() if username in c.participants]


async def add_message_to_chat(
    session: AsyncSession, chat_id: uuid.UUID, draft: MessageDraft
) -> Chat:
    message = build_message(validate_message(draft), DIRECT)
    chat = await get_chat(session, chat_id)
    if message.msg_from not in chat.participants:
        raise ValidationError("Message sender is not a participant in this chat")

    chat.messages = [*chat.messages, str(message.id)]
    await _commit(session, message, chat)
    return chat


async def add_participant(session: AsyncSession, chat_id: uuid.UUID, username: str) -> Chat:
    chat = await get_chat(session, chat_id)
    if username not in chat.participants:
        chat.participants = [*chat.participants, username]
        await _commit(session, chat)
    return chat


async def mark_chat_viewed(session: AsyncSession, chat_id: uuid.UUID, username: str) -> Chat:
    """Add ``username`` to ``readBy`` on every message of the chat."""
    chat = await get_chat(session, chat_id)
    messages = await _load_messages(session, chat)
    unread = [m for m in messages if username not in m.read_by]
    for message in unread:
        message.read_by = [*message.read_by, username]
    if unread:
        await _commit(session, *unread)
    return chat


async def _load_messages(session: AsyncSession, chat: Chat) -> list[Message]:
    if not chat.messages:
        return []
    ids = [uuid.UUID(m) for m in chat.messages]
    result = await session.execute(select(Message).where(Message.id.in_(ids)))
    by_id = {m.id: m for m in result.scalars().all()}
    return [by_id[i] for i in ids if i in by_id]


async def enrich_chat(session: AsyncSession, chat: Chat, populate: bool = False) -> ChatRead:
    """Convert a Chat row to its wire shape with messages loaded."""
    messages = await _load_messages(session, chat)
    subs = subscription_list(chat)
    if populate:
        subscriptions = [SubscriptionRead.model_validate(s) for s in await resolve(session, subs)]
    else:
        subscriptions = subs.ids

    return ChatRead(
        id=chat.id,
        participants=chat.participants,
        messages=[MessageRead.model_validate(m) for m in messages],
        subscriptions=subscriptions,
        subscriptions_resolved=populate,
        created_at=chat.created_at,
        updated_at=chat.updated_at,
    )
