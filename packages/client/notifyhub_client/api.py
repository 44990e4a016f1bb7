"""
HTTP wrapper for the NotifyHub server.

Every method raises ``NotifyHubAPIError`` for a non-200 response; the error
carries the status code and the server's plain-text message.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from notifyhub_shared.schemas.messages import MessageRead
from notifyhub_shared.schemas.notifications import NotificationRead
from notifyhub_shared.schemas.parents import FanoutResult
from notifyhub_shared.schemas.subscriptions import DeleteConfirmation, SubscriptionRead

log = structlog.get_logger()


class NotifyHubAPIError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class NotifyHubAPI:
    """Async client for the notification, subscription, messaging and fan-out routes."""

    def __init__(
        self,
        base_url: str,
        verify_tls: bool = True,
        request_timeout: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._verify_tls = verify_tls
        self._request_timeout = request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._request_timeout),
            verify=self._verify_tls,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "NotifyHubAPI":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        if self._client is None:
            raise RuntimeError("NotifyHubAPI is not open")

        resp = await self._client.request(method, path, json=json)
        if resp.status_code != 200:
            log.warning("api.request_failed", method=method, path=path, status=resp.status_code)
            raise NotifyHubAPIError(resp.status_code, resp.text)
        return resp.json()

    # --- Notifications ---

    async def add_notification(
        self,
        noti_to: str,
        noti_from: str,
        noti_source: str,
        type: str,
        preview: str,
    ) -> NotificationRead:
        body = {
            "notificationToAdd": {
                "notiTo": noti_to,
                "notiFrom": noti_from,
                "notiSource": noti_source,
                "type": type,
                "preview": preview,
            }
        }
        data = await self._request("POST", "/notification/addNotification", body)
        return NotificationRead.model_validate(data)

    async def get_notification(self, notification_id: str) -> NotificationRead:
        data = await self._request("GET", f"/notification/getNotification/{notification_id}")
        return NotificationRead.model_validate(data)

    async def get_notifications_by_user(self, username: str) -> list[NotificationRead]:
        data = await self._request("GET", f"/notification/getNotisByUser/{username}")
        return [NotificationRead.model_validate(n) for n in data]

    async def mark_notification_read(self, notification_id: str) -> NotificationRead:
        data = await self._request("PATCH", f"/notification/markNotiRead/{notification_id}")
        return NotificationRead.model_validate(data)

    async def mark_all_notifications_read(self, username: str) -> list[NotificationRead]:
        data = await self._request("PATCH", f"/notification/markAllNotisRead/{username}")
        return [NotificationRead.model_validate(n) for n in data]

    # --- Subscriptions ---

    async def create_subscription(
        self, parent_id: str, subscriber: str, type: str
    ) -> SubscriptionRead:
        body = {"subscription": {"type": type, "subscriber": subscriber}, "id": parent_id}
        data = await self._request("POST", "/subscription/addSubscription", body)
        return SubscriptionRead.model_validate(data)

    async def get_subscription(self, subscription_id: str) -> SubscriptionRead:
        data = await self._request("GET", f"/subscription/getSubscription/{subscription_id}")
        return SubscriptionRead.model_validate(data)

    async def remove_subscription(self, subscription_id: str) -> DeleteConfirmation:
        data = await self._request("DELETE", f"/subscription/removeSubscription/{subscription_id}")
        return DeleteConfirmation.model_validate(data)

    # --- Messaging ---

    async def add_message(self, msg: str, msg_from: str, msg_date_time: str) -> MessageRead:
        body = {"messageToAdd": {"msg": msg, "msgFrom": msg_from, "msgDateTime": msg_date_time}}
        data = await self._request("POST", "/messaging/addMessage", body)
        return MessageRead.model_validate(data)

    async def get_messages(self) -> list[MessageRead]:
        data = await self._request("GET", "/messaging/getMessages")
        return [MessageRead.model_validate(m) for m in data]

    async def update_message(self, message_id: str, read_by: list[str]) -> MessageRead:
        body = {"messageToUpdate": {"readBy": read_by}}
        data = await self._request("PATCH", f"/messaging/updateMessage/{message_id}", body)
        return MessageRead.model_validate(data)

    # --- Fan-out ---

    async def fan_out_content(
        self, kind: str, parent_id: str, author: str, text: str
    ) -> FanoutResult:
        """Notify a thread's subscribers about a newly saved answer or comment."""
        body = {"kind": kind, "parentId": parent_id, "author": author, "text": text}
        data = await self._request("POST", "/fanout/content", body)
        return FanoutResult.model_validate(data)

    # --- Parents ---

    async def get_thread(self, thread_id: str, populate: bool = False) -> dict[str, Any]:
        suffix = "?populate=true" if populate else ""
        return await self._request("GET", f"/thread/getThread/{thread_id}{suffix}")

    async def get_chat(self, chat_id: str, populate: bool = False) -> dict[str, Any]:
        suffix = "?populate=true" if populate else ""
        return await self._request("GET", f"/chat/{chat_id}{suffix}")
