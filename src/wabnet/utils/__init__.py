"""Utility functions package."""

from wabnet.utils.file_storage import delete_file, load_bytes, save_bytes
from wabnet.utils.image_urls import make_image_path, public_url, resolve_image_url
from wabnet.utils.slug import create_slug
from wabnet.utils.validation import clean_fields, filter_opportunities

__all__ = [
    "clean_fields",
    "create_slug",
    "delete_file",
    "filter_opportunities",
    "load_bytes",
    "make_image_path",
    "public_url",
    "resolve_image_url",
    "save_bytes",
]
