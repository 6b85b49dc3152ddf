"""Storage path generation and public URL resolution for opportunity images."""

from __future__ import annotations

import secrets
import time

from wabnet.utils.slug import create_slug

IMAGE_PREFIX = "images"
DEFAULT_EXTENSION = "bin"

# Values with one of these prefixes are already fetchable (remote URLs or
# local previews of unsaved files) and are never rewritten.
ABSOLUTE_PREFIXES = ("http:", "https:", "blob:", "data:")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _random_token(length: int = 11) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def _extension(filename: str) -> str:
    if "." not in filename:
        return DEFAULT_EXTENSION
    ext = create_slug(filename.rsplit(".", 1)[-1]).replace("-", "")
    return ext or DEFAULT_EXTENSION


def make_image_path(filename: str, now: float | None = None) -> str:
    """
    Generate a collision-resistant storage path for an uploaded image.

    Args:
        filename: Original name of the uploaded file (only its extension is kept)
        now: Optional epoch seconds, for deterministic paths in tests

    Returns:
        Path of the form ``images/{epoch-ms}-{random}.{ext}``

    Examples:
        >>> make_image_path("a.png", now=1700000000.0)  # doctest: +SKIP
        'images/1700000000000-k3j2h1g0f9e.png'
    """
    millis = int((time.time() if now is None else now) * 1000)
    return f"{IMAGE_PREFIX}/{millis}-{_random_token()}.{_extension(filename)}"


def public_url(base: str, bucket: str, path: str) -> str:
    """
    Build the public URL of a stored object.

    Args:
        base: Storage service base URL
        bucket: Bucket name
        path: Object path inside the bucket

    Returns:
        ``{base}/storage/v1/object/public/{bucket}/{path}``
    """
    return f"{base.rstrip('/')}/storage/v1/object/public/{bucket}/{path}"


def resolve_image_url(
    path: str | None,
    *,
    base_url: str,
    bucket: str,
    fallback: str | None = None,
) -> str | None:
    """
    Resolve a stored image path into a displayable URL.

    Args:
        path: Value of an opportunity's ``image`` field
        base_url: Storage service base URL
        bucket: Bucket name
        fallback: Returned when ``path`` is empty

    Returns:
        The fallback for empty paths, absolute references unchanged, otherwise
        the public storage URL
    """
    if not path:
        return fallback
    if path.startswith(ABSOLUTE_PREFIXES):
        return path
    return public_url(base_url, bucket, path)
