"""In-process change notifications for watched tables, plus their SSE wire codec."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Iterable, Literal

logger = logging.getLogger(__name__)

EventKind = Literal["INSERT", "UPDATE", "DELETE"]
ALL_EVENTS = "*"

STATUS_SUBSCRIBED = "SUBSCRIBED"
STATUS_CLOSED = "CLOSED"


@dataclass(frozen=True)
class ChangeEvent:
    """A row in a watched table was inserted, updated or deleted."""

    table: str
    event: EventKind
    record_id: str | None = None


class Subscription:
    """
    A live registration on a ChangeFeed.

    Events are buffered in an asyncio queue owned by the loop that created the
    subscription.  Iterate with ``async for`` or call ``get()``; release with
    ``close()`` so the feed stops delivering to it.
    """

    def __init__(self, feed: "ChangeFeed", table: str, events: Iterable[str]) -> None:
        self.table = table
        self.events = frozenset(events)
        self.status = STATUS_SUBSCRIBED
        self._feed = feed
        self._queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue()
        self._loop = asyncio.get_running_loop()

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        return ALL_EVENTS in self.events or event.event in self.events

    def _deliver(self, event: ChangeEvent | None) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._queue.put_nowait(event)
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    async def get(self) -> ChangeEvent:
        """
        Wait for the next matching event.

        Raises:
            StopAsyncIteration: If the subscription has been closed
        """
        if self.status == STATUS_CLOSED and self._queue.empty():
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is None:
            raise StopAsyncIteration
        return event

    def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        return self

    async def __anext__(self) -> ChangeEvent:
        return await self.get()

    def close(self) -> None:
        """Unregister from the feed and wake any pending ``get()``."""
        if self.status == STATUS_CLOSED:
            return
        self.status = STATUS_CLOSED
        self._feed._remove(self)
        self._deliver(None)


class ChangeFeed:
    """Fan-out of table change events to open subscriptions."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, table: str, events: Iterable[str] = (ALL_EVENTS,)) -> Subscription:
        """
        Open a subscription on a table.

        Must be called from inside a running event loop; events are delivered
        on that loop.

        Args:
            table: Table name to watch
            events: Event kinds to receive, or ``"*"`` for all

        Returns:
            An open Subscription
        """
        subscription = Subscription(self, table, events)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.info("Subscribed to %s changes (%s)", table, ",".join(sorted(subscription.events)))
        return subscription

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver an event to every matching subscription.

        Args:
            event: The change that happened

        Returns:
            Number of subscriptions the event was delivered to
        """
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(event)]
        for subscription in targets:
            subscription._deliver(event)
        logger.debug("Published %s on %s to %d subscriber(s)", event.event, event.table, len(targets))
        return len(targets)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)


# Process-wide feed shared by the API routes and in-process listeners
change_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    """Dependency function returning the process-wide change feed."""
    return change_feed


def format_sse(event: ChangeEvent) -> str:
    """
    Encode a change event as a Server-Sent Events message.

    Args:
        event: The change to encode

    Returns:
        ``event:`` and ``data:`` lines terminated by a blank line
    """
    payload = json.dumps({"table": event.table, "event": event.event, "id": event.record_id})
    return f"event: {event.event}\ndata: {payload}\n\n"


async def iter_sse_events(lines: AsyncIterable[str]) -> AsyncIterator[ChangeEvent]:
    """
    Decode change events from a stream of Server-Sent Events lines.

    Comment lines (keep-alives) and messages without a JSON payload are
    skipped.

    Args:
        lines: Text lines without their line terminators

    Yields:
        ChangeEvent for every complete message
    """
    data: list[str] = []
    async for line in lines:
        if line.startswith(":"):
            continue
        if line == "":
            if data:
                raw = "\n".join(data)
                data = []
                try:
                    payload = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning("Ignoring malformed change event: %r", raw)
                    continue
                yield ChangeEvent(
                    table=payload.get("table", ""),
                    event=payload.get("event", "UPDATE"),
                    record_id=payload.get("id"),
                )
            continue
        field, _, value = line.partition(":")
        if field == "data":
            data.append(value.removeprefix(" "))
