"""Multipart form parts and progress-reporting request bodies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Callable

ProgressCallback = Callable[[int], None]


@dataclass
class ImageFile:
    """An image chosen in the admin form."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


def form_parts(
    fields: dict[str, str],
    image: ImageFile | None = None,
) -> dict[str, tuple]:
    """
    Build the ``files`` mapping httpx encodes as multipart/form-data.

    Text fields are passed as ``(None, value)`` parts so the body is multipart
    whether or not an image is attached.

    Args:
        fields: Text fields
        image: Optional image, sent as the ``image`` part

    Returns:
        Mapping suitable for the ``files`` argument of an httpx request
    """
    parts: dict[str, tuple] = {name: (None, value) for name, value in fields.items()}
    if image is not None:
        parts["image"] = (image.filename, image.content, image.content_type)
    return parts


async def progress_stream(
    body: bytes,
    on_progress: ProgressCallback | None = None,
    chunk_size: int = 64 * 1024,
) -> AsyncIterator[bytes]:
    """
    Yield a request body in chunks, reporting the percentage sent.

    Progress is reported after each chunk has been consumed by the transport,
    so 100 means every byte was handed over.

    Args:
        body: Complete request body
        on_progress: Called with an integer percentage (0-100)
        chunk_size: Bytes per chunk
    """
    total = len(body)
    sent = 0
    for start in range(0, total, chunk_size):
        chunk = body[start : start + chunk_size]
        yield chunk
        sent += len(chunk)
        if on_progress is not None:
            on_progress(round(sent * 100 / total))
