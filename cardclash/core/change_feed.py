import asyncio
from collections.abc import Iterable
from typing import Any, Self

from loguru import logger
from pydantic import BaseModel, Field

from cardclash.core.enums import ChangeEvent

ALL_EVENTS = frozenset(ChangeEvent)


class ChangeNotification(BaseModel):
    table: str
    event: ChangeEvent
    row_id: int
    data: dict[str, Any] = Field(default_factory=dict)


class ChangeFilter(BaseModel):
    """Which rows of a table a subscriber wants to hear about."""

    table: str
    match: dict[str, Any] = Field(default_factory=dict)
    events: frozenset[ChangeEvent] = ALL_EVENTS

    def matches(self, notification: ChangeNotification) -> bool:
        if notification.table != self.table or notification.event not in self.events:
            return False
        return all(notification.data.get(key) == value for key, value in self.match.items())


class Subscription:
    def __init__(self, feed: "ChangeFeed", filters: Iterable[ChangeFilter]) -> None:
        self.feed = feed
        self.filters = tuple(filters)
        self.queue: asyncio.Queue[ChangeNotification] = asyncio.Queue()
        self.closed = False

    def offer(self, notification: ChangeNotification) -> None:
        if not self.closed and any(f.matches(notification) for f in self.filters):
            self.queue.put_nowait(notification)

    async def next(self, timeout: float | None = None) -> ChangeNotification | None:
        """Wait for the next notification, or return None once ``timeout`` passes."""
        try:
            return await asyncio.wait_for(self.queue.get(), timeout)
        except TimeoutError:
            return None

    def drain(self) -> list[ChangeNotification]:
        """Take every notification already queued without waiting."""
        drained: list[ChangeNotification] = []
        while not self.queue.empty():
            drained.append(self.queue.get_nowait())
        return drained

    def close(self) -> None:
        self.closed = True
        self.feed.unsubscribe(self)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class ChangeFeed:
    """In-process fan-out of committed row changes.

    Delivery is at least once and carries no ordering promise relative to reads
    of the same rows; subscribers must treat a notification as a hint to
    re-read, never as the new state itself.
    """

    def __init__(self) -> None:
        self._subscriptions: set[Subscription] = set()

    def subscribe(self, *filters: ChangeFilter) -> Subscription:
        subscription = Subscription(self, filters)
        self._subscriptions.add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)

    def publish(self, notification: ChangeNotification) -> None:
        logger.trace(
            f"Change {notification.event} on {notification.table}#{notification.row_id}"
        )
        for subscription in list(self._subscriptions):
            subscription.offer(notification)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)


change_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    return change_feed
