"""
Push listener tests: frame dispatch and room bookkeeping.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

from notifyhub_client.listener import PushListener


async def test_dispatch_routes_events_to_handlers():
    listener = PushListener("ws://test/ws", "alice")
    received = []

    async def handler(event, data):
        received.append((event, data))

    listener.on_event(handler)

    await listener._dispatch(json.dumps({"event": "notificationCreate", "data": {"x": 1}}))
    await listener._dispatch(json.dumps({"type": "pong"}))
    await listener._dispatch("not json")

    assert received == [("notificationCreate", {"x": 1})]


async def test_handler_error_does_not_stop_others():
    listener = PushListener("ws://test/ws", "alice")
    second = AsyncMock()

    async def broken(event, data):
        raise ValueError("bad payload")

    listener.on_event(broken)
    listener.on_event(second)

    await listener._dispatch(json.dumps({"event": "messageUpdate", "data": {}}))
    second.assert_awaited_once_with("messageUpdate", {})


async def test_rooms_remembered_while_disconnected():
    listener = PushListener("ws://test/ws", "alice")

    await listener.join_chat("c1")
    await listener.join_chat("c2")
    await listener.leave_chat("c1")

    assert listener.rooms == {"c2"}
    assert listener.connected is False


async def test_join_sends_frame_when_connected():
    listener = PushListener("ws://test/ws", "alice")
    ws = AsyncMock()
    ws.closed = False
    listener._ws = ws

    await listener.join_chat("c1")

    ws.send_str.assert_awaited_once_with(json.dumps({"type": "joinChat", "chatId": "c1"}))
