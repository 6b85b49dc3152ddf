"""Object storage clients for opportunity images."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import httpx

from wabnet.config import settings
from wabnet.utils.file_storage import delete_file, file_exists, load_bytes, save_bytes

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when an object storage operation fails."""


class ObjectStorage(Protocol):
    """Blob store addressed by path inside a single bucket."""

    bucket: str

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> None: ...

    async def download(self, path: str) -> bytes: ...

    async def remove(self, paths: list[str]) -> None: ...


class LocalObjectStorage:
    """
    Object storage backed by the local filesystem.

    Objects live under ``{root}/{bucket}/{path}``.  Paths that would resolve
    outside the bucket directory are rejected.
    """

    def __init__(self, root: str, bucket: str) -> None:
        """
        Initialize local storage.

        Args:
            root: Directory holding one subdirectory per bucket
            bucket: Bucket name
        """
        self.bucket = bucket
        self.base_dir = Path(root, bucket).resolve()

    def _object_path(self, path: str) -> str:
        target = (self.base_dir / path).resolve()
        if target == self.base_dir or self.base_dir not in target.parents:
            raise StorageError(f"Invalid object path: {path}")
        return str(target)

    def exists(self, path: str) -> bool:
        return file_exists(self._object_path(path))

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> None:
        """
        Store an object.

        Raises:
            StorageError: If the path is invalid, already taken, or cannot be written
        """
        target = self._object_path(path)
        if file_exists(target):
            raise StorageError(f"Object already exists: {path}")
        try:
            save_bytes(data, target)
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc

    async def download(self, path: str) -> bytes:
        """
        Read an object.

        Raises:
            StorageError: If the object does not exist or cannot be read
        """
        try:
            return load_bytes(self._object_path(path))
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    async def remove(self, paths: list[str]) -> None:
        """
        Remove objects; missing objects are ignored.

        Raises:
            StorageError: If a path is invalid or a file cannot be removed
        """
        for path in paths:
            try:
                delete_file(self._object_path(path))
            except OSError as exc:
                raise StorageError(f"Failed to remove {path}: {exc}") from exc


class SupabaseObjectStorage:
    """Object storage client for the hosted storage REST API."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        *,
        timeout_seconds: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the storage client.

        Args:
            base_url: Project URL (``https://<project>.supabase.co``)
            service_key: Service role key used for bearer auth
            bucket: Bucket name
            timeout_seconds: Per-request timeout
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._headers = {"Authorization": f"Bearer {service_key}", "apikey": service_key}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self.timeout_seconds,
            transport=self._transport,
        )

    def _object_url(self, path: str) -> str:
        return f"/storage/v1/object/{self.bucket}/{quote(path)}"

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> None:
        """
        Upload an object.

        Raises:
            StorageError: If the request fails or is rejected
        """
        headers = {
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "false",
        }
        try:
            async with self._client() as client:
                response = await client.post(self._object_url(path), content=data, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise StorageError(f"Upload of {path} failed: {exc}") from exc

    async def download(self, path: str) -> bytes:
        """
        Download an object.

        Raises:
            StorageError: If the request fails or the object does not exist
        """
        try:
            async with self._client() as client:
                response = await client.get(self._object_url(path))
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as exc:
            raise StorageError(f"Download of {path} failed: {exc}") from exc

    async def remove(self, paths: list[str]) -> None:
        """
        Remove objects.

        Raises:
            StorageError: If the request fails or is rejected
        """
        try:
            async with self._client() as client:
                response = await client.request(
                    "DELETE",
                    f"/storage/v1/object/{self.bucket}",
                    json={"prefixes": paths},
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise StorageError(f"Removal of {', '.join(paths)} failed: {exc}") from exc


def get_storage() -> ObjectStorage:
    """
    Dependency function returning the configured object storage.

    Raises:
        ValueError: If the hosted backend is selected without a service key
    """
    if settings.storage_backend == "supabase":
        if not settings.supabase_service_role_key:
            raise ValueError(
                "Storage key not found. Please set SUPABASE_SERVICE_ROLE_KEY environment variable."
            )
        return SupabaseObjectStorage(
            settings.supabase_url, settings.supabase_service_role_key, settings.storage_bucket
        )
    return LocalObjectStorage(os.path.join(settings.data_root, "storage"), settings.storage_bucket)
