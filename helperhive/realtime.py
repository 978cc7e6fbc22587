"""
Live queries over committed documents.

Services publish a document to its collection after the transaction that
wrote it has committed; every subscription on that collection whose filters
match receives it. A subscription is an async iterator backed by its own FIFO
queue, so it sees documents in the order they were published. ``cancel()``
detaches it from the hub and wakes any pending reader.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, Optional

logger = logging.getLogger(__name__)

_CLOSED = object()


def matches(document: dict, filters: dict) -> bool:
    """A list-valued field matches when it contains the filter value"""
    for field, expected in filters.items():
        actual = document.get(field)
        if isinstance(actual, (list, tuple, set)):
            if expected not in actual:
                return False
        elif actual != expected:
            return False
    return True


class Subscription:
    def __init__(self, hub: "LiveQueryHub", collection: str, filters: Optional[dict] = None):
        self.hub = hub
        self.collection = collection
        self.filters = dict(filters or {})
        self.active = True
        self._queue: asyncio.Queue = asyncio.Queue()
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

    def _deliver(self, item: Any) -> None:
        if self._loop is None or self._loop.is_closed():
            self._queue.put_nowait(item)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._queue.put_nowait(item)
        else:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)

    def offer(self, document: dict) -> bool:
        if not self.active or not matches(document, self.filters):
            return False
        self._deliver(document)
        return True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self.hub._detach(self)
        self._deliver(_CLOSED)

    def pending(self) -> int:
        return self._queue.qsize()

    async def get(self, timeout: Optional[float] = None) -> Optional[dict]:
        """Next document, or None once cancelled"""
        if not self.active and self._queue.empty():
            return None
        if timeout is None:
            item = await self._queue.get()
        else:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        if item is _CLOSED or not self.active:
            return None
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> dict:
        item = await self.get()
        if item is None:
            raise StopAsyncIteration
        return item


class LiveQueryHub:
    def __init__(self):
        self._subscriptions: dict[str, list[Subscription]] = defaultdict(list)

    def subscribe(self, collection: str, filters: Optional[dict] = None) -> Subscription:
        subscription = Subscription(self, collection, filters)
        self._subscriptions[collection].append(subscription)
        logger.debug(f"📡 Subscribed to {collection} with filters {subscription.filters}")
        return subscription

    def publish(self, collection: str, document: dict) -> int:
        """Fan a committed document out to matching subscriptions; returns the delivery count"""
        delivered = 0
        for subscription in list(self._subscriptions.get(collection, ())):
            if subscription.offer(document):
                delivered += 1
        return delivered

    def subscriber_count(self, collection: Optional[str] = None) -> int:
        if collection is not None:
            return len(self._subscriptions.get(collection, ()))
        return sum(len(subs) for subs in self._subscriptions.values())

    def _detach(self, subscription: Subscription) -> None:
        subs = self._subscriptions.get(subscription.collection)
        if subs and subscription in subs:
            subs.remove(subscription)
            logger.debug(f"📴 Subscription on {subscription.collection} released")
        if subs is not None and not subs:
            self._subscriptions.pop(subscription.collection, None)


live_queries = LiveQueryHub()
