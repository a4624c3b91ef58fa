"""Unit tests for push-based snapshot subscriptions."""

import logging

import pytest

from cortex.core.live_query import SnapshotHub


@pytest.fixture
def hub():
    return SnapshotHub()


def _fetcher(source):
    async def fetch():
        return list(source)

    return fetch


async def test_subscribe_delivers_initial_snapshot(hub):
    received = []
    await hub.subscribe(owner_id="o1", collection="tasks", fetch=_fetcher(["a"]), callback=received.append)
    assert received == [["a"]]
    assert hub.active_count == 1


async def test_notify_delivers_full_snapshot(hub):
    source = ["a"]
    received = []
    await hub.subscribe(owner_id="o1", collection="tasks", fetch=_fetcher(source), callback=received.append)

    source.append("b")
    delivered = await hub.notify(owner_id="o1", collection="tasks")

    assert delivered == 1
    assert received[-1] == ["a", "b"]


async def test_notify_is_scoped_by_owner_and_collection(hub):
    received = []
    await hub.subscribe(owner_id="o1", collection="tasks", fetch=_fetcher([]), callback=received.append)

    assert await hub.notify(owner_id="o2", collection="tasks") == 0
    assert await hub.notify(owner_id="o1", collection="conditionals") == 0
    assert len(received) == 1


async def test_async_callback(hub):
    received = []

    async def callback(snapshot):
        received.append(snapshot)

    await hub.subscribe(owner_id="o1", collection="tasks", fetch=_fetcher([1]), callback=callback)
    await hub.notify(owner_id="o1", collection="tasks")
    assert received == [[1], [1]]


async def test_unsubscribe_is_idempotent(hub):
    received = []
    subscription = await hub.subscribe(
        owner_id="o1", collection="tasks", fetch=_fetcher([]), callback=received.append
    )

    subscription.unsubscribe()
    subscription.unsubscribe()

    assert hub.active_count == 0
    assert await hub.notify(owner_id="o1", collection="tasks") == 0
    assert len(received) == 1


async def test_unsubscribe_during_fetch_skips_delivery(hub):
    received = []
    holder = {}

    async def fetch():
        subscription = holder.get("sub")
        if subscription is not None:
            subscription.unsubscribe()
        return []

    subscription = await hub.subscribe(owner_id="o1", collection="tasks", fetch=fetch, callback=received.append)
    holder["sub"] = subscription

    assert await hub.notify(owner_id="o1", collection="tasks") == 0
    assert len(received) == 1


async def test_failing_callback_is_logged_and_isolated(hub, caplog):
    received = []

    def broken(_snapshot):
        raise RuntimeError("render failed")

    with caplog.at_level(logging.ERROR, logger="cortex.core.live_query"):
        await hub.subscribe(owner_id="o1", collection="tasks", fetch=_fetcher([]), callback=broken)
        await hub.subscribe(owner_id="o1", collection="tasks", fetch=_fetcher([]), callback=received.append)
        delivered = await hub.notify(owner_id="o1", collection="tasks")

    assert delivered == 1
    assert len(received) == 2
    assert "Snapshot callback failed" in caplog.text


async def test_clear_deactivates_everything(hub):
    subscription = await hub.subscribe(owner_id="o1", collection="tasks", fetch=_fetcher([]), callback=lambda _: None)
    hub.clear()
    assert hub.active_count == 0
    assert not subscription.active
    subscription.unsubscribe()


async def test_failed_initial_fetch_leaves_no_subscription(hub):
    async def fetch():
        raise RuntimeError("query failed")

    with pytest.raises(RuntimeError, match="query failed"):
        await hub.subscribe(owner_id="o1", collection="tasks", fetch=fetch, callback=lambda _: None)

    assert hub.active_count == 0
    assert await hub.notify(owner_id="o1", collection="tasks") == 0


async def test_failing_fetch_on_notify_is_isolated(hub, caplog):
    calls = {"n": 0}
    received = []

    async def flaky_fetch():
        calls["n"] += 1
        if calls["n"] > 1:
            raise RuntimeError("query failed")
        return []

    await hub.subscribe(owner_id="o1", collection="tasks", fetch=flaky_fetch, callback=lambda _: None)
    await hub.subscribe(owner_id="o1", collection="tasks", fetch=_fetcher(["a"]), callback=received.append)

    with caplog.at_level(logging.ERROR, logger="cortex.core.live_query"):
        delivered = await hub.notify(owner_id="o1", collection="tasks")

    assert delivered == 1
    assert received == [["a"], ["a"]]
    assert "Snapshot fetch failed" in caplog.text
    assert hub.active_count == 2
