"""Keeps a public listing of opportunities in step with the backend."""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import Callable, Coroutine

from wabnet.config import ListingConfig, listing_config, settings
from wabnet.errors import OpportunityError, SubscriptionError
from wabnet.schemas.listing import ListingItem
from wabnet.schemas.opportunity import Opportunity
from wabnet.services.change_feed import STATUS_SUBSCRIBED
from wabnet.sync.sources import OpportunitySource

logger = logging.getLogger(__name__)

Listener = Callable[["ListingSynchronizer"], None]

EMPTY_TITLE = "No opportunities available at the moment"
EMPTY_HINT = "Check back soon for new openings"


class ListingSynchronizer:
    """
    Live, newest-first listing of opportunities.

    ``start()`` runs the initial query and the change subscription
    concurrently.  Every change notification, whatever its kind, triggers a
    full refetch whose result replaces the whole list; the receiver never
    patches the list from the event itself.  Overlapping refetches are
    numbered and a result older than the last applied one is dropped.

    ``stop()`` cancels every in-flight task and releases the subscription,
    after which no result is applied.

    State for rendering: ``loading``, ``loaded``, ``items``, ``is_empty`` and
    ``connected`` (informational; it never gates rendering).
    """

    def __init__(
        self,
        source: OpportunitySource,
        *,
        config: ListingConfig | None = None,
        storage_base_url: str | None = None,
        bucket: str | None = None,
    ) -> None:
        """
        Initialize the synchronizer.

        Args:
            source: Where rows and change notifications come from
            config: Listing configuration (uses the loaded config if not provided)
            storage_base_url: Public storage base for image URLs
            bucket: Image bucket name
        """
        self.source = source
        self.config = config or listing_config
        self.storage_base_url = storage_base_url or settings.supabase_url
        self.bucket = bucket or settings.storage_bucket

        self.items: list[ListingItem] = []
        self.loading = False
        self.loaded = False
        self.connected = False
        self.active = False

        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task] = set()
        self._issued = 0
        self._applied = 0

    @property
    def is_empty(self) -> bool:
        """True once a load has finished with zero rows."""
        return self.loaded and not self.loading and not self.items

    def add_listener(self, listener: Listener) -> Listener:
        """Register a callback invoked after every state change."""
        self._listeners.append(listener)
        return listener

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _spawn(self, coro: Coroutine, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def project(self, rows: list[Opportunity]) -> list[ListingItem]:
        """Map rows to listing cards."""
        return [
            ListingItem.from_opportunity(
                row,
                config=self.config,
                storage_base_url=self.storage_base_url,
                bucket=self.bucket,
            )
            for row in rows
        ]

    async def start(self) -> None:
        """Begin loading and listening; a no-op when already active."""
        if self.active:
            return
        self.active = True
        self.loading = True
        self._notify()
        self._spawn(self._initial_load(), "listing-initial-load")
        self._spawn(self._listen(), "listing-subscription")

    async def stop(self) -> None:
        """Cancel in-flight work and release the subscription."""
        self.active = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.connected = False

    async def __aenter__(self) -> "ListingSynchronizer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _fetch(self) -> list[Opportunity]:
        """
        Query the source, retrying with exponential backoff when configured.

        Raises:
            OpportunityError: If every attempt fails
        """
        attempts = max(1, self.config.fetch_retry_attempts)
        last_error: OpportunityError | None = None

        for attempt in range(attempts):
            try:
                return await self.source.fetch_all()
            except OpportunityError as exc:
                last_error = exc
                if attempt < attempts - 1:
                    await asyncio.sleep(self.config.retry_delay_seconds * (2**attempt))

        assert last_error is not None
        raise last_error

    async def refresh(self) -> bool:
        """
        Run one full query and replace the listing with its result.

        Returns:
            True if the result was applied, False if it was stale or the
            synchronizer is no longer active

        Raises:
            OpportunityError: If the query fails
        """
        self._issued += 1
        sequence = self._issued
        rows = await self._fetch()
        return self._apply(sequence, rows)

    def _apply(self, sequence: int, rows: list[Opportunity]) -> bool:
        if not self.active or sequence < self._applied:
            return False
        self._applied = sequence
        self.items = self.project(rows)
        self.loading = False
        self.loaded = True
        self._notify()
        return True

    async def _initial_load(self) -> None:
        try:
            await self.refresh()
        except OpportunityError as exc:
            logger.error("Error fetching opportunities: %s", exc)
            if self.active and self.loading:
                self.items = []
                self.loading = False
                self.loaded = True
                self._notify()

    async def _refetch(self) -> None:
        try:
            await self.refresh()
        except OpportunityError as exc:
            logger.error("Error fetching fresh opportunities: %s", exc)

    def _on_status(self, status: str) -> None:
        if not self.active:
            return
        self.connected = status == STATUS_SUBSCRIBED
        logger.info("Opportunities real-time status: %s", status)
        self._notify()

    async def _listen(self) -> None:
        try:
            async with aclosing(self.source.watch(self._on_status)) as events:
                async for event in events:
                    logger.debug("Real-time opportunity update: %s", event.event)
                    if self.active:
                        self._spawn(self._refetch(), "listing-refetch")
        except SubscriptionError as exc:
            logger.warning("Opportunities live updates stopped: %s", exc)
        else:
            if self.active:
                logger.warning("Opportunities live updates stopped: stream ended")
        if self.active:
            self.connected = False
            self._notify()


def render_text(listing: ListingSynchronizer) -> str:
    """Render the listing state as plain text."""
    if listing.loading or not listing.loaded:
        return "Loading opportunities..."
    if listing.is_empty:
        return f"{EMPTY_TITLE}\n{EMPTY_HINT}"

    live = "live" if listing.connected else "connecting..."
    lines = [f"Be A Part: {len(listing.items)} opportunities ({live})"]
    for item in listing.items:
        lines.append(f"- {item.title}: {item.summary}")
        lines.append(f"  {item.cta_text}: {item.href}")
        lines.append(f"  image: {item.image_url}")
    return "\n".join(lines)
