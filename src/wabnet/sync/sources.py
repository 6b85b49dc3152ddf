"""Where the listing synchronizer reads rows and change notifications from."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Callable, Protocol

import httpx
from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from wabnet.errors import SubscriptionError, TransportError
from wabnet.models.opportunity import TABLE_NAME
from wabnet.schemas.opportunity import Opportunity
from wabnet.services.change_feed import (
    STATUS_CLOSED,
    STATUS_SUBSCRIBED,
    ChangeEvent,
    ChangeFeed,
    iter_sse_events,
)
from wabnet.services.opportunity_repository import OpportunityRepository

StatusCallback = Callable[[str], None]

_ROWS = TypeAdapter(list[Opportunity])


class OpportunitySource(Protocol):
    """Read side of the data service: ordered rows plus a change stream."""

    async def fetch_all(self) -> list[Opportunity]:
        """Return all rows, newest first."""
        ...

    def watch(self, on_status: StatusCallback) -> AsyncIterator[ChangeEvent]:
        """Yield change notifications until closed, reporting connection status."""
        ...


class RepositorySource:
    """Reads straight from the database and the in-process change feed."""

    def __init__(self, session_factory: Callable[[], Session], feed: ChangeFeed) -> None:
        self.session_factory = session_factory
        self.feed = feed

    def _query(self) -> list[Opportunity]:
        db = self.session_factory()
        try:
            rows = OpportunityRepository(db).list()
            return [Opportunity.model_validate(row) for row in rows]
        finally:
            db.close()

    async def fetch_all(self) -> list[Opportunity]:
        """Run the query in a worker thread so the event loop keeps serving."""
        return await asyncio.to_thread(self._query)

    async def watch(self, on_status: StatusCallback) -> AsyncIterator[ChangeEvent]:
        subscription = self.feed.subscribe(TABLE_NAME)
        on_status(subscription.status)
        try:
            async for event in subscription:
                yield event
        finally:
            subscription.close()
            on_status(STATUS_CLOSED)


class HttpSource:
    """Reads from the HTTP API: the listing endpoint and its SSE change stream."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the source.

        Args:
            base_url: API server base URL
            timeout_seconds: Timeout for fetches and for connecting the stream
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def fetch_all(self) -> list[Opportunity]:
        """
        Fetch all opportunities.

        Raises:
            TransportError: If the request fails or the response is malformed
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get("/api/opportunities")
                response.raise_for_status()
                return _ROWS.validate_python(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            raise TransportError(f"Failed to fetch opportunities: {exc}") from exc

    async def watch(self, on_status: StatusCallback) -> AsyncIterator[ChangeEvent]:
        """
        Follow the server's change stream.

        Raises:
            SubscriptionError: If the stream cannot be opened or breaks
        """
        # No read timeout: the stream is idle between changes.
        timeout = httpx.Timeout(self.timeout_seconds, read=None)
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=timeout, transport=self._transport
            ) as client:
                async with client.stream(
                    "GET", "/api/opportunities/changes", headers={"Accept": "text/event-stream"}
                ) as response:
                    response.raise_for_status()
                    on_status(STATUS_SUBSCRIBED)
                    async for event in iter_sse_events(response.aiter_lines()):
                        yield event
        except httpx.HTTPError as exc:
            raise SubscriptionError(f"Change stream failed: {exc}") from exc
        finally:
            on_status(STATUS_CLOSED)
