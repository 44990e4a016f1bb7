"""
Push channel listener.

Maintains a persistent WebSocket connection to the server with:
- Automatic reconnection with exponential backoff
- Re-identification and chat room re-join after every reconnect
- Dispatch of ``{"event", "data"}`` frames to registered handlers
- Graceful shutdown support

Pushes sent while disconnected are lost; handlers should reload their
snapshot after a reconnect if they need to catch up.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Coroutine

import aiohttp
import structlog

log = structlog.get_logger()

# Reconnection parameters
RECONNECT_BASE_SECONDS = 1.0
RECONNECT_MAX_SECONDS = 60.0
RECONNECT_MULTIPLIER = 2.0

PushHandler = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]
ConnectHandler = Callable[[], Coroutine[Any, Any, None]]


class PushListener:
    """Persistent push channel connection for one user."""

    def __init__(self, ws_url: str, username: str, verify_tls: bool = True):
        self._ws_url = ws_url
        self._username = username
        self._verify_tls = verify_tls

        self._handlers: list[PushHandler] = []
        self._connect_handlers: list[ConnectHandler] = []
        self._rooms: set[str] = set()
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._running = False
        self._connected = False
        self._reconnect_count = 0
        self._task: asyncio.Task | None = None

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def reconnect_count(self) -> int:
        return self._reconnect_count

    @property
    def rooms(self) -> set[str]:
        return set(self._rooms)

    def on_event(self, handler: PushHandler) -> None:
        """Register a handler called with ``(event, data)`` for every push."""
        self._handlers.append(handler)

    def on_connect(self, handler: ConnectHandler) -> None:
        """Register a handler run after each (re)connection."""
        self._connect_handlers.append(handler)

    async def start(self) -> None:
        self._running = True
        self._task = asyncio.create_task(self._listen_loop())

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._connected = False
        log.info("push_listener.stopped", username=self._username)

    async def join_chat(self, chat_id: str) -> None:
        """Join a chat room; remembered across reconnects."""
        self._rooms.add(chat_id)
        await self._send({"type": "joinChat", "chatId": chat_id})

    async def leave_chat(self, chat_id: str) -> None:
        self._rooms.discard(chat_id)
        await self._send({"type": "leaveChat", "chatId": chat_id})

    async def _send(self, frame: dict[str, Any]) -> None:
        if self._ws is None or self._ws.closed:
            return
        await self._ws.send_str(json.dumps(frame))

    async def _listen_loop(self) -> None:
        backoff = RECONNECT_BASE_SECONDS

        while self._running:
            try:
                await self._connect_and_listen()
                backoff = RECONNECT_BASE_SECONDS  # Reset on clean disconnect
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                log.warning(
                    "push_listener.connection_lost",
                    username=self._username,
                    error=str(exc),
                    backoff=backoff,
                )
            finally:
                self._connected = False
                self._ws = None

            if not self._running:
                break

            self._reconnect_count += 1
            log.info(
                "push_listener.reconnecting",
                username=self._username,
                backoff=backoff,
                attempt=self._reconnect_count,
            )
            await asyncio.sleep(backoff)
            backoff = min(backoff * RECONNECT_MULTIPLIER, RECONNECT_MAX_SECONDS)

    async def _connect_and_listen(self) -> None:
        async with aiohttp.ClientSession() as session:
            async with session.ws_connect(
                self._ws_url,
                params={"username": self._username},
                ssl=None if self._verify_tls else False,
                heartbeat=30.0,
            ) as ws:
                self._ws = ws
                self._connected = True
                log.info("push_listener.connected", username=self._username, url=self._ws_url)

                for room in sorted(self._rooms):
                    await self._send({"type": "joinChat", "chatId": room})
                for handler in self._connect_handlers:
                    await handler()

                async for msg in ws:
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        await self._dispatch(msg.data)
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        raise ws.exception() or ConnectionError("websocket error")

    async def _dispatch(self, raw: str) -> None:
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            log.warning("push_listener.invalid_json", username=self._username)
            return

        event = frame.get("event")
        if event is None:
            # Control replies (pong, joined, error) carry "type" instead
            if frame.get("type") == "error":
                log.warning("push_listener.server_error", message=frame.get("message"))
            return

        for handler in self._handlers:
            try:
                await handler(event, frame.get("data") or {})
            except Exception as exc:
                log.error("push_listener.handler_error", event=event, error=str(exc))
