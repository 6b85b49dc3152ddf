"""Tests for the live opportunity listing."""

from __future__ import annotations

import asyncio
import threading
from datetime import datetime, timedelta

import httpx
import pytest

from wabnet.config import ListingConfig
from wabnet.errors import SubscriptionError, TransportError
from wabnet.schemas.opportunity import Opportunity
from wabnet.services.change_feed import (
    STATUS_CLOSED,
    STATUS_SUBSCRIBED,
    ChangeEvent,
    format_sse,
)
from wabnet.services.opportunity_repository import OpportunityRepository
from wabnet.sync.listing import ListingSynchronizer, render_text
from wabnet.sync.sources import HttpSource, RepositorySource

STORAGE_BASE = "https://project.supabase.co"
BUCKET = "opportunity-images"


def _row(position: str, minutes: int = 0, **extra) -> Opportunity:
    return Opportunity(
        id=f"id-{position}",
        position=position,
        description=f"{position} description",
        created_at=datetime(2025, 1, 1) + timedelta(minutes=minutes),
        **extra,
    )


async def _until(predicate, timeout: float = 2.0) -> None:
    async def poll():
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout=timeout)


class FakeSource:
    """Scriptable source: rows to return, failures to raise, events to emit."""

    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.calls = 0
        self.failures: list[Exception] = []
        self.gates: dict[int, asyncio.Event] = {}
        self.events: asyncio.Queue = asyncio.Queue()
        self.watch_error: Exception | None = None
        self.statuses: list[str] = []

    async def fetch_all(self):
        self.calls += 1
        call = self.calls
        snapshot = list(self.rows)
        if call in self.gates:
            await self.gates[call].wait()
        if self.failures:
            raise self.failures.pop(0)
        return snapshot

    async def watch(self, on_status):
        def report(status):
            self.statuses.append(status)
            on_status(status)

        report(STATUS_SUBSCRIBED)
        try:
            while True:
                event = await self.events.get()
                if event is None:
                    return
                if isinstance(event, Exception):
                    raise event
                yield event
        finally:
            report(STATUS_CLOSED)


def _listing(source, **config) -> ListingSynchronizer:
    return ListingSynchronizer(
        source,
        config=ListingConfig(**{"retry_delay_seconds": 0, **config}),
        storage_base_url=STORAGE_BASE,
        bucket=BUCKET,
    )


class TestInitialLoad:
    """Tests for the first query."""

    @pytest.mark.asyncio
    async def test_loads_rows(self):
        """Rows are projected into listing items once loaded."""
        source = FakeSource([_row("Newest", 2), _row("Older", 1)])
        listing = _listing(source)

        async with listing:
            assert listing.loading is True
            await _until(lambda: not listing.loading)

            assert [item.title for item in listing.items] == ["Newest", "Older"]
            assert listing.items[0].image_url == "/pathway/soc.png"
            assert listing.is_empty is False

    @pytest.mark.asyncio
    async def test_empty(self):
        """An empty table yields the empty state."""
        listing = _listing(FakeSource())

        async with listing:
            await _until(lambda: not listing.loading)
            assert listing.is_empty

    @pytest.mark.asyncio
    async def test_fetch_failure_shows_empty(self, caplog):
        """A failed initial query ends loading with an empty list."""
        source = FakeSource([_row("A")])
        source.failures.append(TransportError("offline"))
        listing = _listing(source)

        async with listing:
            await _until(lambda: not listing.loading)
            assert listing.items == []
            assert listing.is_empty
        assert "Error fetching opportunities" in caplog.text

    @pytest.mark.asyncio
    async def test_retry_when_configured(self):
        """Configured retries recover from transient failures."""
        source = FakeSource([_row("A")])
        source.failures.extend([TransportError("1"), TransportError("2")])
        listing = _listing(source, fetch_retry_attempts=3)

        async with listing:
            await _until(lambda: not listing.loading)
            assert [item.title for item in listing.items] == ["A"]
        assert source.calls == 3

    @pytest.mark.asyncio
    async def test_no_retry_by_default(self):
        """Without configuration a failure is not retried."""
        source = FakeSource([_row("A")])
        source.failures.append(TransportError("1"))
        listing = _listing(source)

        async with listing:
            await _until(lambda: not listing.loading)
        assert source.calls == 1


class TestLiveUpdates:
    """Tests for change-triggered refetches."""

    @pytest.mark.asyncio
    async def test_change_triggers_full_refetch(self):
        """Any change event replaces the listing with a fresh query."""
        source = FakeSource([_row("A", 1)])
        listing = _listing(source)

        async with listing:
            await _until(lambda: not listing.loading)
            source.rows = [_row("B", 2), _row("A", 1)]
            await source.events.put(ChangeEvent("opportunities", "INSERT", "id-B"))

            await _until(lambda: len(listing.items) == 2)
            assert [item.title for item in listing.items] == ["B", "A"]

    @pytest.mark.asyncio
    async def test_delete_event_refetches(self):
        source = FakeSource([_row("B", 2), _row("A", 1)])
        listing = _listing(source)

        async with listing:
            await _until(lambda: len(listing.items) == 2)
            source.rows = [_row("A", 1)]
            await source.events.put(ChangeEvent("opportunities", "DELETE", "id-B"))
            await _until(lambda: len(listing.items) == 1)

    @pytest.mark.asyncio
    async def test_connected_tracks_subscription(self):
        """The connection flag follows the subscription status."""
        source = FakeSource()
        listing = _listing(source)

        async with listing:
            await _until(lambda: listing.connected)
        assert listing.connected is False
        assert source.statuses == [STATUS_SUBSCRIBED, STATUS_CLOSED]

    @pytest.mark.asyncio
    async def test_subscription_error_keeps_data(self, caplog):
        """A broken stream keeps the current items and clears the live flag."""
        source = FakeSource([_row("A")])
        listing = _listing(source)

        async with listing:
            await _until(lambda: listing.items and listing.connected)
            await source.events.put(SubscriptionError("socket closed"))
            await _until(lambda: not listing.connected)
            assert [item.title for item in listing.items] == ["A"]
        assert "live updates stopped" in caplog.text

    @pytest.mark.asyncio
    async def test_stale_result_dropped(self):
        """A slow older query never overwrites a newer applied one."""
        source = FakeSource([_row("Old")])
        source.gates[1] = asyncio.Event()
        listing = _listing(source)

        async with listing:
            await _until(lambda: listing.connected)
            source.rows = [_row("New")]
            await source.events.put(ChangeEvent("opportunities", "UPDATE", "id-New"))
            await _until(lambda: not listing.loading)
            assert [item.title for item in listing.items] == ["New"]

            source.gates[1].set()
            await _until(lambda: source.calls == 2)
            await asyncio.sleep(0.05)
            assert [item.title for item in listing.items] == ["New"]

    @pytest.mark.asyncio
    async def test_stop_discards_in_flight(self):
        """Results arriving after stop are never applied."""
        source = FakeSource([_row("A")])
        source.gates[1] = asyncio.Event()
        listing = _listing(source)
        notified = []
        listing.add_listener(lambda _: notified.append(len(listing.items)))

        await listing.start()
        await asyncio.sleep(0.01)
        await listing.stop()
        source.gates[1].set()
        await asyncio.sleep(0.05)

        assert listing.items == []
        assert listing.active is False
        assert all(count == 0 for count in notified)

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self):
        source = FakeSource([_row("A")])
        listing = _listing(source)

        async with listing:
            await listing.start()
            await _until(lambda: not listing.loading)
        assert source.calls == 1


class TestRepositorySource:
    """The listing against the real database and change feed."""

    @pytest.mark.asyncio
    async def test_insert_appears_first(self, db, feed, session_factory, make_opportunity):
        """A newly inserted row shows up at the top of the listing."""
        make_opportunity(position="Existing")
        listing = _listing(RepositorySource(session_factory, feed))

        async with listing:
            await _until(lambda: listing.connected and not listing.loading)
            assert [item.title for item in listing.items] == ["Existing"]

            OpportunityRepository(db, feed).insert(
                position="Fresh", description="Just posted", image=None, link="https://apply.example"
            )

            await _until(lambda: listing.items and listing.items[0].title == "Fresh")
            assert listing.items[0].cta_text == "Apply Now"
        assert feed.subscriber_count == 0


    @pytest.mark.asyncio
    async def test_fetch_runs_off_the_event_loop(self, feed, session_factory, make_opportunity):
        """The database query runs in a worker thread."""
        make_opportunity(position="Existing")
        threads: list[int] = []

        def tracking_factory():
            threads.append(threading.get_ident())
            return session_factory()

        rows = await RepositorySource(tracking_factory, feed).fetch_all()

        assert [row.position for row in rows] == ["Existing"]
        assert threads and threads[0] != threading.get_ident()


class TestHttpSource:
    """Tests for reading over HTTP."""

    @pytest.mark.asyncio
    async def test_fetch_all(self):
        rows = [_row("A").model_dump(mode="json")]

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/opportunities"
            return httpx.Response(200, json=rows)

        source = HttpSource("http://api.test", transport=httpx.MockTransport(handler))
        fetched = await source.fetch_all()
        assert [row.position for row in fetched] == ["A"]

    @pytest.mark.asyncio
    async def test_fetch_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"detail": "boom"})

        source = HttpSource("http://api.test", transport=httpx.MockTransport(handler))
        with pytest.raises(TransportError):
            await source.fetch_all()

    @pytest.mark.asyncio
    async def test_watch_decodes_stream(self):
        """Events from the SSE stream are yielded in order with status reports."""
        body = ": subscribed\n\n" + format_sse(ChangeEvent("opportunities", "INSERT", "1"))

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/opportunities/changes"
            return httpx.Response(200, text=body, headers={"Content-Type": "text/event-stream"})

        source = HttpSource("http://api.test", transport=httpx.MockTransport(handler))
        statuses: list[str] = []

        events = [event async for event in source.watch(statuses.append)]

        assert events == [ChangeEvent("opportunities", "INSERT", "1")]
        assert statuses == [STATUS_SUBSCRIBED, STATUS_CLOSED]

    @pytest.mark.asyncio
    async def test_watch_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        source = HttpSource("http://api.test", transport=httpx.MockTransport(handler))
        statuses: list[str] = []

        with pytest.raises(SubscriptionError):
            async for _ in source.watch(statuses.append):
                pass
        assert statuses == [STATUS_CLOSED]


class TestRenderText:
    """Tests for the plain-text rendering."""

    def test_loading(self):
        listing = _listing(FakeSource())
        listing.loading = True
        assert render_text(listing) == "Loading opportunities..."

    def test_never_loaded(self):
        """A listing that has not loaded yet is not reported as empty."""
        listing = _listing(FakeSource())
        assert listing.is_empty is False
        assert render_text(listing) == "Loading opportunities..."

    def test_empty(self):
        listing = _listing(FakeSource())
        listing.loaded = True
        assert listing.is_empty
        assert render_text(listing) == (
            "No opportunities available at the moment\nCheck back soon for new openings"
        )

    def test_items(self):
        listing = _listing(FakeSource())
        listing.items = listing.project([_row("Intern", link="https://apply.example")])
        listing.loaded = True
        listing.connected = True

        text = render_text(listing)

        assert text.splitlines()[0] == "Be A Part: 1 opportunities (live)"
        assert "- Intern: Intern description" in text
        assert "Apply Now: https://apply.example" in text
