"""
Client subscription helper tests: raw-id fetch-then-match and the toggle.
"""

from __future__ import annotations

import uuid

from notifyhub_client.subscriptions import SubscriptionToggle, get_user_subscription_id


def _seed(server, subscriber: str, type_: str = "thread") -> dict:
    sub = {"id": str(uuid.uuid4()), "type": type_, "subscriber": subscriber}
    server.subscriptions[sub["id"]] = sub
    return sub


async def test_lookup_over_raw_ids_fetches_each(api, server):
    alice = _seed(server, "alice")
    bob = _seed(server, "bob")
    parent = {"id": "t1", "subscriptions": [alice["id"], bob["id"]]}

    found = await get_user_subscription_id(api, parent, "bob")

    assert found == bob["id"]
    assert ("GET", f"/subscription/getSubscription/{alice['id']}") in server.requests
    assert ("GET", f"/subscription/getSubscription/{bob['id']}") in server.requests


async def test_lookup_over_resolved_records_makes_no_requests(api, server):
    parent = {
        "id": "t1",
        "subscriptions": [
            {"id": "s1", "type": "thread", "subscriber": "alice"},
            {"id": "s2", "type": "thread", "subscriber": "bob"},
        ],
    }
    assert await get_user_subscription_id(api, parent, "alice") == "s1"
    assert server.requests == []


async def test_lookup_absent(api):
    assert await get_user_subscription_id(api, {"subscriptions": []}, "bob") is None


async def test_toggle_follow_then_unfollow(api, server):
    parent_id = str(uuid.uuid4())
    toggle = SubscriptionToggle(api, "thread", parent_id, "alice")
    assert toggle.subscribed is False

    assert await toggle.toggle() is True
    [sub] = server.subscriptions.values()
    assert sub["subscriber"] == "alice"
    assert toggle.subscription_id == sub["id"]

    assert await toggle.toggle() is False
    assert server.subscriptions == {}
    assert toggle.error is None


async def test_toggle_failure_keeps_state_and_sets_error(api, server):
    server.fail_paths.add("/subscription/addSubscription")
    toggle = SubscriptionToggle(api, "chat", str(uuid.uuid4()), "alice")

    assert await toggle.toggle() is False
    assert toggle.error == "Error when doing things: boom"

    server.fail_paths.clear()
    assert await toggle.toggle() is True
    assert toggle.error is None


async def test_refresh_from_parent(api, server):
    sub = _seed(server, "alice")
    toggle = SubscriptionToggle(api, "thread", "t1", "alice")

    await toggle.refresh({"subscriptions": [sub["id"]]})
    assert toggle.subscription_id == sub["id"]
