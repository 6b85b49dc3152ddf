"""HTTP client for the admin opportunity endpoints."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import TypeAdapter

from wabnet.admin.upload import ImageFile, ProgressCallback, form_parts, progress_stream
from wabnet.config import UploadConfig, upload_config
from wabnet.errors import TransportError
from wabnet.schemas.opportunity import Opportunity

_ROWS = TypeAdapter(list[Opportunity])


class ApiResponse:
    """Status and decoded JSON body of an admin API call."""

    def __init__(self, status_code: int, reason: str, payload: dict[str, Any] | None) -> None:
        self.status_code = status_code
        self.reason = reason
        self.payload = payload

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def success(self) -> bool:
        return self.ok and bool(self.payload and self.payload.get("success"))

    @property
    def error(self) -> str | None:
        if self.payload is None:
            return None
        return self.payload.get("error")


class AdminApiClient:
    """
    Client for the admin API.

    Network failures raise TransportError; HTTP error statuses are returned
    as ApiResponse so callers can show the server's error text.
    """

    def __init__(
        self,
        base_url: str,
        *,
        config: UploadConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: API server base URL
            config: Upload configuration (uses the loaded config if not provided)
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.config = config or upload_config
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.config.timeout_seconds,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    @staticmethod
    def _wrap(response: httpx.Response) -> ApiResponse:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = None
        return ApiResponse(response.status_code, response.reason_phrase, payload)

    async def list_opportunities(self) -> list[Opportunity]:
        """
        Fetch all opportunities, newest first.

        Raises:
            TransportError: If the request fails or the response is malformed
        """
        try:
            async with self._client() as client:
                response = await client.get("/api/opportunities")
                response.raise_for_status()
                return _ROWS.validate_python(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            raise TransportError(f"Failed to fetch opportunities: {exc}") from exc

    async def save_opportunity(
        self,
        fields: dict[str, str],
        image: ImageFile | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ApiResponse:
        """
        Send one multipart save request with upload progress.

        Args:
            fields: Form fields (position, description, link, isEdit, id)
            image: Optional image part
            on_progress: Called with the percentage of the body sent

        Raises:
            TransportError: If the request could not be completed
        """
        try:
            async with self._client() as client:
                # httpx encodes the multipart body; it is then resent in chunks
                # so the progress callback sees every byte leave.
                encoded = client.build_request(
                    "POST", "/api/admins/opportunities", files=form_parts(fields, image)
                )
                body = encoded.read()
                response = await client.post(
                    "/api/admins/opportunities",
                    content=progress_stream(body, on_progress, self.config.chunk_size),
                    headers={
                        "Content-Type": encoded.headers["Content-Type"],
                        "Content-Length": str(len(body)),
                    },
                )
        except httpx.HTTPError as exc:
            raise TransportError(f"Upload request failed: {exc}") from exc
        return self._wrap(response)

    async def delete_opportunity(self, opportunity_id: str) -> ApiResponse:
        """
        Ask the server to delete an opportunity.

        Raises:
            TransportError: If the request could not be completed
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    "/api/admins/opportunities-delete", json={"id": opportunity_id}
                )
        except httpx.HTTPError as exc:
            raise TransportError(f"Delete request failed: {exc}") from exc
        return self._wrap(response)
