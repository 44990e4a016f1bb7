"""
Client-side subscription helpers: lookup of the caller's subscription on a
thread or chat, and the follow/unfollow toggle.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from .api import NotifyHubAPI, NotifyHubAPIError

log = structlog.get_logger()


async def populate_subscriptions(api: NotifyHubAPI, parent: dict[str, Any]) -> list[dict[str, Any]]:
    """Fetch every subscription a parent lists by raw id."""
    records = await asyncio.gather(
        *(api.get_subscription(str(s)) for s in parent.get("subscriptions", []))
    )
    return [r.model_dump(mode="json", by_alias=True) for r in records]


async def get_user_subscription_id(
    api: NotifyHubAPI, parent: dict[str, Any], username: str
) -> str | None:
    """The id of ``username``'s subscription on ``parent``, or None.

    ``parent["subscriptions"]`` may hold raw ids or resolved records; raw ids
    are fetched first, then matched.
    """
    subs = parent.get("subscriptions") or []
    if subs and isinstance(subs[0], str):
        subs = await populate_subscriptions(api, parent)

    for s in subs:
        if s.get("subscriber") == username:
            return str(s["id"])
    return None


class SubscriptionToggle:
    """
    Follow/mute toggle for one thread or chat.

    ``error`` holds the last failure message for display and is cleared by
    the next successful toggle. Failures are never retried.
    """

    def __init__(
        self,
        api: NotifyHubAPI,
        kind: str,
        parent_id: str,
        username: str,
        subscription_id: str | None = None,
    ):
        self._api = api
        self._kind = kind
        self._parent_id = parent_id
        self._username = username
        self.subscription_id = subscription_id
        self.error: str | None = None

    @property
    def subscribed(self) -> bool:
        return self.subscription_id is not None

    async def refresh(self, parent: dict[str, Any]) -> None:
        """Re-derive state from a freshly fetched parent."""
        self.subscription_id = await get_user_subscription_id(self._api, parent, self._username)

    async def toggle(self) -> bool:
        """Flip the subscription. Returns the new ``subscribed`` state."""
        try:
            if self.subscribed:
                await self._api.remove_subscription(self.subscription_id)
                self.subscription_id = None
            else:
                sub = await self._api.create_subscription(
                    self._parent_id, self._username, self._kind
                )
                self.subscription_id = str(sub.id)
            self.error = None
        except NotifyHubAPIError as exc:
            self.error = exc.message or "An unknown error occurred."
            log.warning(
                "subscriptions.toggle_failed",
                kind=self._kind,
                parent_id=self._parent_id,
                status=exc.status_code,
            )
        return self.subscribed
