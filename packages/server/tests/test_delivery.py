"""
Push channel tests: connection tracking, per-user and per-room scoping,
dead connection cleanup, Redis relay, and the WebSocket endpoint frames.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from starlette.testclient import TestClient

from app.core.delivery import REDIS_PUSH_CHANNEL, ConnectionManager, get_manager
from app.core.metrics import MetricsCollector
from app.main import app
from notifyhub_shared.schemas.common import PushEvent


@pytest.fixture
def mgr():
    return ConnectionManager(max_connections=2, metrics=MetricsCollector())


def _sent(ws) -> list[dict]:
    return [json.loads(call.args[0]) for call in ws.send_text.call_args_list]


def _notification(noti_to: str = "alice", read: bool = False):
    return SimpleNamespace(
        id=uuid.uuid4(),
        noti_to=noti_to,
        noti_from="bob",
        noti_source="q1",
        type="answer",
        preview="hi",
        noti_date_time=datetime(2024, 1, 1, tzinfo=timezone.utc),
        read=read,
    )


class TestConnectionManager:
    async def test_connect_and_disconnect(self, mgr, make_ws):
        ws = make_ws()
        info = await mgr.connect(ws, "alice")

        assert info is not None
        ws.accept.assert_awaited_once()
        assert mgr.connected_users() == {"alice"}

        await mgr.disconnect(info)
        await mgr.disconnect(info)
        assert mgr.connections == []

    async def test_connection_limit(self, mgr, make_ws):
        await mgr.connect(make_ws(), "a")
        await mgr.connect(make_ws(), "b")

        ws = make_ws()
        assert await mgr.connect(ws, "c") is None
        ws.accept.assert_not_called()

    async def test_broadcast_without_scope(self, mgr, make_ws):
        ws1, ws2 = make_ws(), make_ws()
        await mgr.connect(ws1, "alice")
        await mgr.connect(ws2, None)

        delivered = await mgr.emit(PushEvent.MESSAGE_UPDATE, {"msg": {"msg": "hello"}})

        assert delivered == 2
        assert _sent(ws1) == [{"event": "messageUpdate", "data": {"msg": {"msg": "hello"}}}]

    async def test_notification_scoped_to_recipient(self, mgr, make_ws):
        alice, bob = make_ws(), make_ws()
        await mgr.connect(alice, "alice")
        await mgr.connect(bob, "bob")

        await mgr.notification_created(_notification("alice"))

        [frame] = _sent(alice)
        assert frame["event"] == "notificationCreate"
        assert frame["data"]["notification"]["notiTo"] == "alice"
        bob.send_text.assert_not_called()

    async def test_every_session_of_the_user_converges(self, make_ws):
        mgr = ConnectionManager(max_connections=5, metrics=MetricsCollector())
        tabs = [make_ws(), make_ws()]
        for ws in tabs:
            await mgr.connect(ws, "alice")

        await mgr.notification_updated(_notification("alice", read=True))

        for ws in tabs:
            [frame] = _sent(ws)
            assert frame["event"] == "notificationUpdate"
            assert frame["data"]["notification"]["read"] is True

    async def test_identify_later(self, mgr, make_ws):
        ws = make_ws()
        info = await mgr.connect(ws, None)

        await mgr.notification_created(_notification("alice"))
        ws.send_text.assert_not_called()

        mgr.identify(info, "alice")
        await mgr.notification_created(_notification("alice"))
        assert len(_sent(ws)) == 1

    async def test_room_scoping(self, mgr, make_ws):
        inside, outside = make_ws(), make_ws()
        info = await mgr.connect(inside, "alice")
        await mgr.connect(outside, "bob")
        mgr.join_room(info, "chat-1")

        await mgr.emit(PushEvent.CHAT_UPDATE, {"type": "newMessage"}, room="chat-1")
        assert len(_sent(inside)) == 1
        outside.send_text.assert_not_called()

        mgr.leave_room(info, "chat-1")
        await mgr.emit(PushEvent.CHAT_UPDATE, {"type": "newMessage"}, room="chat-1")
        assert len(_sent(inside)) == 1

    async def test_dead_connection_pruned(self, mgr, make_ws):
        dead, alive = make_ws(), make_ws()
        dead.send_text = AsyncMock(side_effect=RuntimeError("closed"))
        await mgr.connect(dead, "alice")
        await mgr.connect(alive, "alice")

        delivered = await mgr.emit(PushEvent.MESSAGE_UPDATE, {})

        assert delivered == 1
        assert [c.websocket for c in mgr.connections] == [alive]

    async def test_unknown_event_rejected(self, mgr):
        with pytest.raises(ValueError):
            await mgr.emit("somethingElse", {})


class TestRedisRelay:
    async def test_emit_publishes_when_enabled(self, mgr, make_ws):
        redis_mock = AsyncMock()
        with patch("app.core.delivery.redis_enabled", return_value=True), \
             patch("app.core.delivery.get_redis", AsyncMock(return_value=redis_mock)):
            await mgr.emit(PushEvent.MESSAGE_UPDATE, {"x": 1})

        channel, raw = redis_mock.publish.call_args.args
        assert channel == REDIS_PUSH_CHANNEL
        envelope = json.loads(raw)
        assert envelope["origin"] == mgr.instance_id
        assert envelope["event"] == "messageUpdate"

    async def test_publish_failure_does_not_break_local_delivery(self, mgr, make_ws):
        ws = make_ws()
        await mgr.connect(ws, "alice")
        with patch("app.core.delivery.redis_enabled", return_value=True), \
             patch("app.core.delivery.get_redis", AsyncMock(side_effect=ConnectionError("down"))):
            delivered = await mgr.emit(PushEvent.MESSAGE_UPDATE, {})

        assert delivered == 1

    async def test_relayed_envelope_delivered_locally(self, mgr, make_ws):
        ws = make_ws()
        await mgr.connect(ws, "alice")

        envelope = {
            "event": "notificationCreate",
            "data": {"notification": {"notiTo": "alice"}},
            "user": "alice",
            "room": None,
            "origin": "another-process",
        }
        await mgr._deliver_local(envelope)

        assert _sent(ws) == [{"event": "notificationCreate", "data": envelope["data"]}]


class TestWebSocketEndpoint:
    @pytest.fixture
    def ws_client(self):
        mgr = ConnectionManager(max_connections=5, metrics=MetricsCollector())
        app.dependency_overrides[get_manager] = lambda: mgr
        yield TestClient(app), mgr
        app.dependency_overrides.clear()

    def test_ping_pong(self, ws_client):
        tc, _ = ws_client
        with tc.websocket_connect("/ws?username=alice") as ws:
            ws.send_text(json.dumps({"type": "ping"}))
            assert ws.receive_json() == {"type": "pong"}

    def test_identify(self, ws_client):
        tc, mgr = ws_client
        with tc.websocket_connect("/ws") as ws:
            ws.send_text(json.dumps({"type": "identify", "username": "bob"}))
            assert ws.receive_json() == {"type": "identified", "username": "bob"}
            assert mgr.connected_users() == {"bob"}

    def test_invalid_frames(self, ws_client):
        tc, _ = ws_client
        with tc.websocket_connect("/ws?username=alice") as ws:
            ws.send_text("not json")
            assert ws.receive_json()["code"] == "INVALID_JSON"
            ws.send_text(json.dumps({"type": "dance"}))
            assert ws.receive_json()["code"] == "UNKNOWN_TYPE"
            ws.send_text(json.dumps({"type": "joinChat", "chatId": "nope"}))
            assert ws.receive_json() == {
                "type": "error",
                "code": "JOIN_FAILED",
                "message": "Invalid ID format",
            }

    def test_leave_chat(self, ws_client):
        tc, mgr = ws_client
        with tc.websocket_connect("/ws?username=alice") as ws:
            ws.send_text(json.dumps({"type": "leaveChat", "chatId": "c1"}))
            assert ws.receive_json() == {"type": "left", "chatId": "c1"}
