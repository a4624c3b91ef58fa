"""Push-based live views over owner-scoped collections.

A subscriber receives the full current snapshot as soon as it subscribes and
again after every write that touches the same ``(owner_id, collection)`` pair.
Deliveries are always whole snapshots, never deltas.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any


logger = logging.getLogger(__name__)

Snapshot = list[Any]
SnapshotFetcher = Callable[[], Awaitable[Snapshot]]
SnapshotCallback = Callable[[Snapshot], Any]


class Subscription:
    """Handle returned by ``SnapshotHub.subscribe``."""

    def __init__(
        self,
        hub: "SnapshotHub",
        *,
        owner_id: str,
        collection: str,
        fetch: SnapshotFetcher,
        callback: SnapshotCallback,
    ) -> None:
        self._hub = hub
        self.owner_id = owner_id
        self.collection = collection
        self.fetch = fetch
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        """Stop deliveries. Safe to call more than once."""
        if not self.active:
            return
        self.active = False
        self._hub._remove(self)


class SnapshotHub:
    """In-memory registry of live subscriptions keyed by owner and collection."""

    def __init__(self) -> None:
        self._subscriptions: dict[tuple[str, str], list[Subscription]] = {}

    @property
    def active_count(self) -> int:
        return sum(len(subs) for subs in self._subscriptions.values())

    async def subscribe(
        self,
        *,
        owner_id: str,
        collection: str,
        fetch: SnapshotFetcher,
        callback: SnapshotCallback,
    ) -> Subscription:
        """Register a subscriber and deliver the current snapshot immediately."""
        subscription = Subscription(self, owner_id=owner_id, collection=collection, fetch=fetch, callback=callback)
        self._subscriptions.setdefault((owner_id, collection), []).append(subscription)
        logger.debug("Subscribed", extra={"owner_id": owner_id, "collection": collection})

        try:
            snapshot = await fetch()
        except Exception:
            subscription.unsubscribe()
            raise
        await self._deliver(subscription, snapshot)
        return subscription

    async def notify(self, *, owner_id: str, collection: str) -> int:
        """Re-run every matching subscriber's fetch and deliver the result.

        Returns:
            Number of subscribers that received a snapshot
        """
        delivered = 0
        for subscription in list(self._subscriptions.get((owner_id, collection), [])):
            if not subscription.active:
                continue
            try:
                snapshot = await subscription.fetch()
            except Exception:
                logger.exception(
                    "Snapshot fetch failed",
                    extra={"owner_id": owner_id, "collection": collection},
                )
                continue
            # The subscriber may have unsubscribed while the fetch was running
            if not subscription.active:
                continue
            if await self._deliver(subscription, snapshot):
                delivered += 1
        return delivered

    def clear(self) -> None:
        """Drop every subscription."""
        for subs in self._subscriptions.values():
            for subscription in subs:
                subscription.active = False
        self._subscriptions.clear()

    def _remove(self, subscription: Subscription) -> None:
        key = (subscription.owner_id, subscription.collection)
        subs = self._subscriptions.get(key, [])
        if subscription in subs:
            subs.remove(subscription)
        if not subs:
            self._subscriptions.pop(key, None)
        logger.debug(
            "Unsubscribed", extra={"owner_id": subscription.owner_id, "collection": subscription.collection}
        )

    async def _deliver(self, subscription: Subscription, snapshot: Snapshot) -> bool:
        try:
            result = subscription.callback(snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "Snapshot callback failed",
                extra={"owner_id": subscription.owner_id, "collection": subscription.collection},
            )
            return False
        return True


# Global hub shared by the services
snapshot_hub = SnapshotHub()
