"""Redis client backing the cross-process push relay."""

from __future__ import annotations

import redis.asyncio as redis

from app.core.config import get_settings

settings = get_settings()

_client: redis.Redis | None = None


def redis_enabled() -> bool:
    """The relay is off when ``NH_REDIS_URL`` is empty."""
    return bool(settings.redis_url)


async def get_redis() -> redis.Redis:
    """Get or create the shared client."""
    global _client
    if not redis_enabled():
        raise RuntimeError("Redis relay is disabled")
    if _client is None:
        _client = redis.from_url(settings.redis_url, decode_responses=True)
    return _client


async def check_redis() -> str:
    """Readiness probe result: ``"ok"`` or the error text."""
    try:
        client = await get_redis()
        await client.ping()
    except Exception as exc:
        return f"error: {exc}"
    return "ok"


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
