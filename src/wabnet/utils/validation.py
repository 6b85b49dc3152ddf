"""Field validation and search helpers shared by the backend and the admin client."""

from __future__ import annotations

from typing import Iterable, Protocol, TypeVar

from wabnet.errors import ValidationError

REQUIRED_FIELDS_MESSAGE = "Position and description required"


class _Searchable(Protocol):
    position: str
    description: str


T = TypeVar("T", bound=_Searchable)


def clean_fields(
    position: str | None,
    description: str | None,
    link: str | None,
) -> tuple[str, str, str | None]:
    """
    Trim submitted text fields and enforce the required ones.

    Args:
        position: Raw position input
        description: Raw description input
        link: Raw link input (optional)

    Returns:
        Tuple of (position, description, link) with an empty link as None

    Raises:
        ValidationError: If position or description is empty after trimming
    """
    position = (position or "").strip()
    description = (description or "").strip()
    if not position or not description:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)
    return position, description, (link or "").strip() or None


def filter_opportunities(rows: Iterable[T], query: str) -> list[T]:
    """Case-insensitive substring match over position and description."""
    needle = query.lower()
    return [
        row
        for row in rows
        if needle in row.position.lower() or needle in row.description.lower()
    ]
