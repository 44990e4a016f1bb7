"""
WebSocket push channel.

Features:
- One WS connection per client session, multiplexing notificationCreate,
  notificationUpdate, messageUpdate and chatUpdate events
- Per-user scoping for notification events, per-chat rooms for chat events
- Redis Pub/Sub relay so pushes reach sessions held by other processes
- Dead connections pruned on send failure

Delivery is best-effort and at-least-once: a push to a user with no live
session is dropped, the durable record is what clients reconcile against.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import WebSocket

from app.core.config import get_settings
from app.core.metrics import MetricsCollector, metrics as default_metrics
from app.core.redis import get_redis, redis_enabled
from notifyhub_shared.schemas.common import ChatUpdateType, PushEvent
from notifyhub_shared.schemas.notifications import NotificationPayload, NotificationRead
from notifyhub_shared.schemas.parents import ChatRead, ChatUpdatePayload

log = structlog.get_logger()
settings = get_settings()

REDIS_PUSH_CHANNEL = "nh:push"


class ConnectionInfo:
    """Tracks a single WebSocket connection's metadata."""

    __slots__ = ("websocket", "username", "rooms", "connected_at")

    def __init__(self, websocket: WebSocket, username: str | None = None):
        self.websocket = websocket
        self.username = username
        self.rooms: set[str] = set()  # chat ids this connection has joined
        self.connected_at = datetime.now(timezone.utc)


class ConnectionManager:
    """
    Manages WebSocket connections with an optional Redis-backed relay.

    Local connections are tracked in-memory for fast delivery. Every emit is
    delivered locally first, then published to Redis tagged with this
    process's ``instance_id``; relayed envelopes carrying our own id are
    skipped so local sessions are not pushed twice.
    """

    def __init__(
        self,
        max_connections: int | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.instance_id = uuid.uuid4().hex
        self._max_connections = max_connections or settings.max_connections
        self._metrics = metrics or default_metrics
        self._connections: list[ConnectionInfo] = []
        self._relay_task: asyncio.Task | None = None

    @property
    def connections(self) -> list[ConnectionInfo]:
        return self._connections

    def connected_users(self) -> set[str]:
        return {c.username for c in self._connections if c.username}

    async def connect(
        self, websocket: WebSocket, username: str | None = None
    ) -> ConnectionInfo | None:
        """
        Accept a WebSocket connection and register it.

        Returns ConnectionInfo on success, None if the connection limit is reached.
        """
        if len(self._connections) >= self._max_connections:
            return None

        await websocket.accept()
        info = ConnectionInfo(websocket, username)
        self._connections.append(info)
        self._metrics.set_gauge("ws_connections_active", len(self._connections))

        log.info(
            "delivery.connected",
            username=username,
            total=len(self._connections),
        )
        return info

    async def disconnect(self, info: ConnectionInfo) -> None:
        """Remove a connection. Safe to call twice."""
        try:
            self._connections.remove(info)
        except ValueError:
            return
        self._metrics.set_gauge("ws_connections_active", len(self._connections))
        log.info("delivery.disconnected", username=info.username)

    def identify(self, info: ConnectionInfo, username: str) -> None:
        info.username = username

    def join_room(self, info: ConnectionInfo, room: str) -> None:
        info.rooms.add(room)

    def leave_room(self, info: ConnectionInfo, room: str) -> None:
        info.rooms.discard(room)

    # --- Emitting ---

    async def emit(
        self,
        event: PushEvent | str,
        data: dict[str, Any],
        *,
        user: str | None = None,
        room: str | None = None,
    ) -> int:
        """
        Push an event to matching sessions.

        ``user`` limits delivery to that user's sessions, ``room`` to sessions
        that joined the chat; with neither, every session receives it.
        Returns the number of local sessions the frame was written to.
        """
        envelope = {
            "event": PushEvent(event).value,
            "data": data,
            "user": user,
            "room": room,
            "origin": self.instance_id,
        }
        delivered = await self._deliver_local(envelope)

        if redis_enabled():
            try:
                redis = await get_redis()
                await redis.publish(REDIS_PUSH_CHANNEL, json.dumps(envelope))
            except Exception as exc:
                log.warning("delivery.relay_publish_failed", event=envelope["event"], error=str(exc))

        return delivered

    async def notification_created(self, notification: Any) -> int:
        return await self._emit_notification(PushEvent.NOTIFICATION_CREATE, notification)

    async def notification_updated(self, notification: Any) -> int:
        return await self._emit_notification(PushEvent.NOTIFICATION_UPDATE, notification)

    async def _emit_notification(self, event: PushEvent, notification: Any) -> int:
        payload = NotificationPayload(
            notification=NotificationRead.model_validate(notification)
        )
        return await self.emit(
            event,
            payload.model_dump(mode="json", by_alias=True),
            user=payload.notification.noti_to,
        )

    async def chat_updated(
        self,
        chat: ChatRead,
        type_: ChatUpdateType,
        *,
        user: str | None = None,
        room: str | None = None,
    ) -> int:
        payload = ChatUpdatePayload(chat=chat, type=type_)
        return await self.emit(
            PushEvent.CHAT_UPDATE,
            payload.model_dump(mode="json", by_alias=True),
            user=user,
            room=room,
        )

    async def _deliver_local(self, envelope: dict[str, Any]) -> int:
        frame = json.dumps({"event": envelope["event"], "data": envelope["data"]})
        user = envelope.get("user")
        room = envelope.get("room")

        delivered = 0
        dead_connections = []
        for conn_info in list(self._connections):
            if user is not None and conn_info.username != user:
                continue
            if room is not None and room not in conn_info.rooms:
                continue
            try:
                await conn_info.websocket.send_text(frame)
                delivered += 1
            except Exception:
                dead_connections.append(conn_info)

        for dead in dead_connections:
            await self.disconnect(dead)

        self._metrics.inc("pushes_sent_total", delivered, event=envelope["event"])
        return delivered

    # --- Redis Pub/Sub relay ---

    async def start_relay(self) -> None:
        if not redis_enabled() or self._relay_task is not None:
            return
        self._relay_task = asyncio.create_task(self._listen_redis())

    async def stop_relay(self) -> None:
        task, self._relay_task = self._relay_task, None
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _listen_redis(self) -> None:
        """Deliver envelopes published by other processes to local sessions."""
        redis = await get_redis()
        pubsub = redis.pubsub()
        await pubsub.subscribe(REDIS_PUSH_CHANNEL)

        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                envelope = json.loads(message["data"])
                if envelope.get("origin") == self.instance_id:
                    continue
                await self._deliver_local(envelope)
        except asyncio.CancelledError:
            log.info("delivery.relay_cancelled")
        finally:
            await pubsub.unsubscribe(REDIS_PUSH_CHANNEL)
            await pubsub.close()


# Singleton
manager = ConnectionManager()


def get_manager() -> ConnectionManager:
    """FastAPI dependency for the process-wide push channel."""
    return manager
