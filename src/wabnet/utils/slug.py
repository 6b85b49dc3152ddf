"""Slug generation utilities."""

from slugify import slugify


def create_slug(text: str) -> str:
    """
    Create a URL-friendly slug from text.

    Args:
        text: The text to convert to a slug

    Returns:
        A lowercase, hyphenated slug

    Examples:
        >>> create_slug("PNG")
        'png'
        >>> create_slug("Summer Intern")
        'summer-intern'
    """
    return slugify(text, lowercase=True, separator="-")
