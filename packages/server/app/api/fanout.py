"""
Content fan-out trigger.

- POST /content — Called by the content service after an answer or comment
  is saved; creates one notification per subscriber of the parent thread.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends

from app.core.database import get_session_factory
from app.core.delivery import ConnectionManager, get_manager
from app.core.errors import PartialFailure, ServiceError, wrap
from app.services.fanout import ContentEvent, FanoutEngine
from notifyhub_shared.schemas.parents import FanoutRequest, FanoutResult

router = APIRouter()


@router.post("/content", response_model=FanoutResult)
async def fan_out_content(
    body: Optional[FanoutRequest] = Body(None),
    session_factory=Depends(get_session_factory),
    push: ConnectionManager = Depends(get_manager),
):
    """Fan a content event out to its parent's subscribers.

    Individual notification failures are reported in ``failed``. The request
    fails when the event is invalid, the parent cannot be read, or no
    recipient could be notified at all.
    """
    event = ContentEvent.from_request(body)
    engine = FanoutEngine(session_factory, push)
    try:
        result = await engine.fan_out(event)
    except ServiceError as exc:
        raise wrap("Error when fanning out content", exc)

    if result.failed and not result.succeeded:
        raise PartialFailure(
            f"Error when fanning out content: all {len(result.failed)} notifications failed",
            succeeded=result.succeeded,
            failed=[(f.subscriber, f.error) for f in result.failed],
        )
    return result
