"""
Background task: delete subscriptions no thread or chat references.

Runs periodically inside the API process while ``orphan_sweep_enabled`` is set.
"""

from __future__ import annotations

import asyncio

import structlog

from app.core.config import get_settings
from app.core.database import get_session_context
from app.services.subscriptions import remove_orphans

log = structlog.get_logger()
settings = get_settings()


async def sweep_orphaned_subscriptions(session_factory=get_session_context) -> int:
    """Remove orphaned subscriptions once.

    Returns the number of subscriptions removed.
    """
    async with session_factory() as session:
        count = await remove_orphans(session)

    if count:
        log.info("orphan_sweep.batch_removed", count=count)
    return count


async def run_orphan_sweep(
    interval_seconds: float | None = None,
    session_factory=get_session_context,
) -> None:
    """Sweep forever, sleeping ``interval_seconds`` between passes.

    A failed pass is logged and the loop continues with the next one.
    """
    interval = interval_seconds or settings.orphan_sweep_interval_seconds
    while True:
        try:
            await sweep_orphaned_subscriptions(session_factory)
        except Exception as exc:
            log.error("orphan_sweep.failed", error=str(exc))
        await asyncio.sleep(interval)
