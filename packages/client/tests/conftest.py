"""
Shared fixtures for client tests: an in-memory fake of the server's HTTP
surface served through ``httpx.MockTransport``.
"""

import json
import uuid
from datetime import datetime, timezone

import httpx
import pytest

from notifyhub_client.api import NotifyHubAPI


class FakeServer:
    """Just enough of the notification and subscription routes."""

    def __init__(self):
        self.notifications: dict[str, dict] = {}
        self.subscriptions: dict[str, dict] = {}
        self.requests: list[tuple[str, str]] = []
        self.fail_paths: set[str] = set()

    def add_notification(self, noti_to="alice", preview="hi", when=None, read=False) -> dict:
        noti = {
            "id": str(uuid.uuid4()),
            "notiTo": noti_to,
            "notiFrom": "bob",
            "notiSource": "q1",
            "type": "answer",
            "preview": preview,
            "notiDateTime": (when or datetime.now(timezone.utc)).isoformat(),
            "read": read,
        }
        self.notifications[noti["id"]] = noti
        return noti

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        if path in self.fail_paths:
            return httpx.Response(500, text="Error when doing things: boom")

        parts = path.strip("/").split("/")
        if parts[:2] == ["notification", "getNotisByUser"]:
            user = parts[2]
            return httpx.Response(200, json=[n for n in self.notifications.values() if n["notiTo"] == user])
        if parts[:2] == ["notification", "markNotiRead"]:
            noti = self.notifications[parts[2]]
            noti["read"] = True
            return httpx.Response(200, json=noti)
        if parts[:2] == ["notification", "markAllNotisRead"]:
            changed = [n for n in self.notifications.values() if n["notiTo"] == parts[2] and not n["read"]]
            for n in changed:
                n["read"] = True
            return httpx.Response(200, json=changed)
        if parts[:2] == ["subscription", "addSubscription"]:
            body = json.loads(request.content)
            sub = {"id": str(uuid.uuid4()), **body["subscription"]}
            self.subscriptions[sub["id"]] = sub
            return httpx.Response(200, json=sub)
        if parts[:2] == ["subscription", "getSubscription"]:
            sub = self.subscriptions.get(parts[2])
            if sub is None:
                return httpx.Response(500, text="Error when fetching subscription")
            return httpx.Response(200, json=sub)
        if parts[:2] == ["subscription", "removeSubscription"]:
            self.subscriptions.pop(parts[2], None)
            return httpx.Response(200, json={"acknowledged": True, "deletedCount": 1})
        return httpx.Response(404, text="Not Found")


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
async def api(server):
    async with NotifyHubAPI("http://test", transport=httpx.MockTransport(server.handler)) as client:
        yield client
