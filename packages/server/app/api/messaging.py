"""
Global message board endpoints.

- POST  /addMessage — Store a global message, push messageUpdate to everyone
- GET   /getMessages — Global messages, oldest first
- PATCH /updateMessage/{id} — Merge readers into ``readBy``
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.delivery import ConnectionManager, get_manager
from app.core.errors import ServiceError, ValidationError, parse_id, wrap
from app.services.messages import GLOBAL, get_messages, save_message, update_message, validate_message
from notifyhub_shared.schemas.common import PushEvent
from notifyhub_shared.schemas.messages import (
    AddMessageRequest,
    MessageRead,
    MessageUpdatePayload,
    UpdateMessageRequest,
)

router = APIRouter()


@router.post("/addMessage", response_model=MessageRead)
async def add_message(
    body: Optional[AddMessageRequest] = Body(None),
    session: AsyncSession = Depends(get_session),
    push: ConnectionManager = Depends(get_manager),
):
    draft = validate_message(body.message_to_add if body else None)

    try:
        message = await save_message(session, draft, GLOBAL)
    except ServiceError as exc:
        raise wrap("Error when adding a message", exc)

    payload = MessageUpdatePayload(msg=MessageRead.model_validate(message))
    await push.emit(PushEvent.MESSAGE_UPDATE, payload.model_dump(mode="json", by_alias=True))
    return message


@router.get("/getMessages", response_model=list[MessageRead])
async def list_messages(session: AsyncSession = Depends(get_session)):
    return await get_messages(session)


@router.patch("/updateMessage/{messageId}", response_model=MessageRead)
async def patch_message(
    messageId: str,
    body: Optional[UpdateMessageRequest] = Body(None),
    session: AsyncSession = Depends(get_session),
):
    """Apply a partial update; typically appends the reader to ``readBy``."""
    if body is None or body.message_to_update is None:
        raise ValidationError("Invalid request")
    message_id = parse_id(messageId)

    try:
        return await update_message(session, message_id, body.message_to_update)
    except ServiceError as exc:
        raise wrap("Error when updating a message", exc)
