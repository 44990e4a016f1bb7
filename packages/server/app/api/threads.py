"""
Thread endpoints.

- POST /addThread — Create a thread
- GET  /getThread/{id}?populate= — Thread with raw or resolved subscriptions
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.errors import ServiceError, parse_id, wrap
from app.services.threads import create_thread, enrich_thread, get_thread
from notifyhub_shared.schemas.parents import ThreadCreate, ThreadRead

router = APIRouter()


@router.post("/addThread", response_model=ThreadRead)
async def add_thread(
    body: ThreadCreate,
    session: AsyncSession = Depends(get_session),
):
    try:
        thread = await create_thread(session, body)
    except ServiceError as exc:
        raise wrap("Error when saving thread", exc)
    return await enrich_thread(session, thread)


@router.get("/getThread/{threadId}", response_model=ThreadRead)
async def read_thread(
    threadId: str,
    populate: bool = Query(False),
    session: AsyncSession = Depends(get_session),
):
    thread_id = parse_id(threadId)
    try:
        thread = await get_thread(session, thread_id)
        return await enrich_thread(session, thread, populate)
    except ServiceError as exc:
        raise wrap("Error when fetching thread", exc)
