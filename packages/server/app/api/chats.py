"""
Chat endpoints.

- POST /createChat — Create a chat, push chatUpdate(created) to each participant
- GET  /getChatsByUser/{username} — Chats the user participates in
- GET  /{chatId}?populate= — One chat
- POST /{chatId}/addMessage — Append a message, push chatUpdate(newMessage) to the room
- POST /{chatId}/addParticipant — Add a participant, push chatUpdate(newParticipant)

Chat messages never create notifications; participants learn about them
through the chat room only.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.delivery import ConnectionManager, get_manager
from app.core.errors import ServiceError, ValidationError, parse_id, wrap
from app.services.chats import (
    add_message_to_chat,
    add_participant,
    create_chat,
    enrich_chat,
    get_chat,
    get_chats_by_user,
)
from notifyhub_shared.schemas.common import ChatUpdateType
from notifyhub_shared.schemas.messages import MessageDraft
from notifyhub_shared.schemas.parents import AddParticipantRequest, ChatCreate, ChatRead

router = APIRouter()


@router.post("/createChat", response_model=ChatRead)
async def create(
    body: ChatCreate,
    session: AsyncSession = Depends(get_session),
    push: ConnectionManager = Depends(get_manager),
):
    try:
        chat = await create_chat(session, body)
        read = await enrich_chat(session, chat)
    except ServiceError as exc:
        raise wrap("Error when creating chat", exc)

    for participant in read.participants:
        await push.chat_updated(read, ChatUpdateType.CREATED, user=participant)
    return read


@router.get("/getChatsByUser/{username}", response_model=list[ChatRead])
async def chats_by_user(
    username: str,
    session: AsyncSession = Depends(get_session),
):
    try:
        chats = await get_chats_by_user(session, username)
        return [await enrich_chat(session, c) for c in chats]
    except ServiceError as exc:
        raise wrap("Error when fetching chats", exc)


@router.get("/{chatId}", response_model=ChatRead)
async def read_chat(
    chatId: str,
    populate: bool = Query(False),
    session: AsyncSession = Depends(get_session),
):
    chat_id = parse_id(chatId)
    try:
        chat = await get_chat(session, chat_id)
        return await enrich_chat(session, chat, populate)
    except ServiceError as exc:
        raise wrap("Error when fetching chat", exc)


@router.post("/{chatId}/addMessage", response_model=ChatRead)
async def post_message(
    chatId: str,
    body: Optional[MessageDraft] = Body(None),
    session: AsyncSession = Depends(get_session),
    push: ConnectionManager = Depends(get_manager),
):
    chat_id = parse_id(chatId)
    if body is None:
        raise ValidationError("Invalid request")

    try:
        chat = await add_message_to_chat(session, chat_id, body)
        read = await enrich_chat(session, chat)
    except ServiceError as exc:
        raise wrap("Error when adding message to chat", exc)

    await push.chat_updated(read, ChatUpdateType.NEW_MESSAGE, room=str(chat_id))
    return read


@router.post("/{chatId}/addParticipant", response_model=ChatRead)
async def post_participant(
    chatId: str,
    body: AddParticipantRequest,
    session: AsyncSession = Depends(get_session),
    push: ConnectionManager = Depends(get_manager),
):
    chat_id = parse_id(chatId)
    try:
        chat = await add_participant(session, chat_id, body.username)
        read = await enrich_chat(session, chat)
    except ServiceError as exc:
        raise wrap("Error when adding participant", exc)

    await push.chat_updated(read, ChatUpdateType.NEW_PARTICIPANT, room=str(chat_id))
    await push.chat_updated(read, ChatUpdateType.NEW_PARTICIPANT, user=body.username)
    return read
