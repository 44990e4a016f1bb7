"""
Notification feed reconciliation tests.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from notifyhub_client.feed import NotificationFeed, ToastQueue
from notifyhub_shared.schemas.notifications import NotificationRead

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _noti(noti_id=None, when=T0, noti_to="alice", read=False) -> NotificationRead:
    return NotificationRead(
        id=noti_id or uuid.uuid4(),
        noti_to=noti_to,
        noti_from="bob",
        noti_source="q1",
        type="answer",
        preview="hi",
        noti_date_time=when,
        read=read,
    )


@pytest.fixture
async def feed(api):
    f = NotificationFeed("alice", api, toast_ttl_seconds=0.05)
    yield f
    f.close()


async def test_load_sorts_most_recent_first(feed, server):
    server.add_notification(when=T0)
    newest = server.add_notification(when=T0 + timedelta(hours=2))
    server.add_notification(when=T0 + timedelta(hours=1))
    server.add_notification(noti_to="carol")

    await feed.load()

    dates = [n.noti_date_time for n in feed.notifications]
    assert dates == sorted(dates, reverse=True)
    assert str(feed.notifications[0].id) == newest["id"]
    assert len(feed.notifications) == 3


async def test_create_prepends_without_resort(feed):
    newer = _noti(when=T0 + timedelta(hours=1))
    older = _noti(when=T0)

    assert feed.apply_create(newer)
    assert feed.apply_create(older)

    assert [n.id for n in feed.notifications] == [older.id, newer.id]
    assert [t.id for t in feed.toasts.entries] == [newer.id, older.id]


async def test_create_for_someone_else_ignored(feed):
    assert feed.apply_create(_noti(noti_to="carol")) is False
    assert feed.notifications == []
    assert len(feed.toasts) == 0


async def test_duplicate_create_ignored(feed):
    noti = _noti()
    feed.apply_create(noti)
    assert feed.apply_create(noti) is False
    assert len(feed.notifications) == 1


async def test_update_replaces_by_id_and_resorts(feed):
    id1, id2 = uuid.uuid4(), uuid.uuid4()
    feed.apply_update(_noti(id1, when=T0 + timedelta(hours=2)))
    feed.apply_update(_noti(id2, when=T0 + timedelta(hours=1)))

    feed.apply_update(_noti(id2, when=T0 + timedelta(hours=1), read=True))

    items = feed.notifications
    assert [n.id for n in items] == [id1, id2]
    assert items[1].read is True
    assert feed.unread_count == 1


async def test_update_is_idempotent(feed):
    update = _noti(read=True)
    feed.apply_update(update)
    feed.apply_update(update)
    assert len(feed.notifications) == 1


async def test_update_for_someone_else_ignored(feed):
    assert feed.apply_update(_noti(noti_to="carol")) is False


async def test_handle_push_dispatches(feed):
    noti = _noti()
    payload = {"notification": noti.model_dump(mode="json", by_alias=True)}

    await feed.handle_push("notificationCreate", payload)
    assert [n.id for n in feed.notifications] == [noti.id]

    payload["notification"]["read"] = True
    await feed.handle_push("notificationUpdate", payload)
    assert feed.notifications[0].read is True

    await feed.handle_push("messageUpdate", {"msg": {}})
    assert len(feed.notifications) == 1


async def test_mark_read_waits_for_push(feed, server):
    stored = server.add_notification()
    await feed.load()

    assert await feed.mark_read(stored["id"])
    assert ("PATCH", f"/notification/markNotiRead/{stored['id']}") in server.requests
    # The list only changes when the update push arrives
    assert feed.notifications[0].read is False


async def test_mark_read_failure_sets_error(feed, server):
    stored = server.add_notification()
    server.fail_paths.add(f"/notification/markNotiRead/{stored['id']}")

    assert await feed.mark_read(stored["id"]) is False
    assert feed.error == "Error marking notification read"


async def test_mark_all_read(feed, server):
    server.add_notification()
    assert await feed.mark_all_read()
    assert feed.error is None


async def test_change_listener_called(feed):
    seen = []
    feed.on_change(lambda f: seen.append(len(f.notifications)))
    feed.apply_create(_noti())
    assert seen == [1]


class TestToastQueue:
    async def test_entries_expire_from_head(self):
        toasts = ToastQueue(ttl_seconds=0.2)
        first, second = _noti(), _noti()

        toasts.push(first)
        await asyncio.sleep(0.1)
        toasts.push(second)
        assert [t.id for t in toasts.entries] == [first.id, second.id]

        await asyncio.sleep(0.15)
        assert [t.id for t in toasts.entries] == [second.id]

        await asyncio.sleep(0.1)
        assert toasts.entries == []

    async def test_expiry_ignores_read_state(self):
        toasts = ToastQueue(ttl_seconds=0.01)
        toasts.push(_noti(read=True))
        await asyncio.sleep(0.05)
        assert len(toasts) == 0

    async def test_close_cancels_pending(self):
        toasts = ToastQueue(ttl_seconds=0.01)
        toasts.push(_noti())
        toasts.close()
        assert len(toasts) == 0
        await asyncio.sleep(0.03)
        assert len(toasts) == 0
