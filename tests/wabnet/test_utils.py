"""Tests for utility functions."""

import os
import re
import tempfile
from types import SimpleNamespace

import pytest

from wabnet.config import settings
from wabnet.errors import ValidationError
from wabnet.utils.file_storage import delete_file, file_exists, load_bytes, save_bytes
from wabnet.utils.image_urls import make_image_path, public_url, resolve_image_url
from wabnet.utils.slug import create_slug
from wabnet.utils.validation import clean_fields, filter_opportunities

BASE = "https://project.supabase.co"
BUCKET = "opportunity-images"


class TestSlugUtils:
    """Tests for slug generation utilities."""

    def test_create_slug_basic(self):
        """Test basic slug creation."""
        assert create_slug("Summer Intern") == "summer-intern"

    def test_create_slug_uppercase_extension(self):
        """Extensions are lowercased."""
        assert create_slug("PNG") == "png"


class TestImagePaths:
    """Tests for storage path generation."""

    def test_make_image_path_format(self):
        """Paths follow images/{ms}-{random}.{ext}."""
        path = make_image_path("a.png", now=1700000000.0)
        assert re.fullmatch(r"images/1700000000000-[0-9a-z]{11}\.png", path)

    def test_make_image_path_lowercases_extension(self):
        """The original extension is kept, lowercased."""
        assert make_image_path("Photo.JPEG").endswith(".jpeg")

    def test_make_image_path_without_extension(self):
        """Files without an extension get a neutral one."""
        assert make_image_path("upload").endswith(".bin")

    def test_make_image_path_sanitizes_extension(self):
        """Unsafe characters in the extension are dropped."""
        path = make_image_path("evil.p/n g")
        assert path.endswith(".png")

    def test_make_image_path_unique(self):
        """Paths generated at the same instant do not collide."""
        paths = {make_image_path("a.png", now=1.0) for _ in range(50)}
        assert len(paths) == 50


class TestImageUrls:
    """Tests for public URL resolution."""

    def test_public_url_template(self):
        """Public URLs follow the storage template."""
        assert (
            public_url(BASE, BUCKET, "images/1-a.png")
            == f"{BASE}/storage/v1/object/public/{BUCKET}/images/1-a.png"
        )

    def test_public_url_trailing_slash(self):
        """A trailing slash on the base does not double up."""
        assert public_url(BASE + "/", BUCKET, "x.png") == public_url(BASE, BUCKET, "x.png")

    def test_resolve_empty_uses_fallback(self):
        """Empty or missing paths resolve to the fallback."""
        assert resolve_image_url(None, base_url=BASE, bucket=BUCKET, fallback="/f.png") == "/f.png"
        assert resolve_image_url("", base_url=BASE, bucket=BUCKET, fallback="/f.png") == "/f.png"
        assert resolve_image_url("", base_url=BASE, bucket=BUCKET) is None

    @pytest.mark.parametrize(
        "value",
        ["https://cdn.example.com/a.png", "http://example.com/b.jpg", "blob:http://localhost/123", "data:image/png;base64,AA=="],
    )
    def test_resolve_absolute_passthrough(self, value):
        """Absolute references are returned unchanged."""
        assert resolve_image_url(value, base_url=BASE, bucket=BUCKET) == value

    def test_resolve_storage_path(self):
        """Storage paths are prefixed with the public base."""
        assert resolve_image_url("images/1-a.png", base_url=BASE, bucket=BUCKET) == public_url(
            BASE, BUCKET, "images/1-a.png"
        )


class TestValidation:
    """Tests for shared field validation and search."""

    def test_clean_fields_trims(self):
        """Fields are trimmed and an empty link becomes None."""
        assert clean_fields("  Intern ", " Help out ", "  ") == ("Intern", "Help out", None)

    def test_clean_fields_keeps_link(self):
        """A non-empty link is kept, trimmed."""
        assert clean_fields("A", "B", " https://x.org ")[2] == "https://x.org"

    @pytest.mark.parametrize("position,description", [("", "x"), ("x", "   "), (None, "x")])
    def test_clean_fields_requires_position_and_description(self, position, description):
        """Blank position or description is rejected."""
        with pytest.raises(ValidationError, match="Position and description required"):
            clean_fields(position, description, None)

    def test_filter_matches_position_and_description(self):
        """Search is case-insensitive over position and description."""
        rows = [
            SimpleNamespace(position="Design Intern", description="Posters", link="https://x"),
            SimpleNamespace(position="Volunteer", description="Event DESIGN help", link=None),
            SimpleNamespace(position="Treasurer", description="Budgets", link="https://design.org"),
        ]
        matched = filter_opportunities(rows, "design")
        assert [r.position for r in matched] == ["Design Intern", "Volunteer"]

    def test_filter_blank_query_returns_all(self):
        """An empty search keeps every row in order."""
        rows = [SimpleNamespace(position="A", description="a"), SimpleNamespace(position="B", description="b")]
        assert filter_opportunities(rows, "") == rows


class TestFileStorageUtils:
    """Tests for file storage utilities."""

    def test_save_and_load_bytes(self):
        """Test saving and loading binary content."""
        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "nested", "img.png")
            save_bytes(b"\x89PNG\r\n", filepath)
            assert load_bytes(filepath) == b"\x89PNG\r\n"

    def test_delete_file(self):
        """Deleting an existing file removes it and reports True."""
        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "img.png")
            save_bytes(b"x", filepath)
            assert delete_file(filepath) is True
            assert file_exists(filepath) is False

    def test_delete_missing_file(self):
        """Deleting a missing file reports False."""
        assert delete_file("/nonexistent/path/img.png") is False

    def test_load_missing_file(self):
        """Loading a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_bytes("/nonexistent/path/img.png")

    def test_relative_paths_use_working_directory(self, monkeypatch, tmp_path):
        """Paths are used as given; no data directory is prepended."""
        monkeypatch.setattr(settings, "data_root", str(tmp_path / "elsewhere"))
        monkeypatch.chdir(tmp_path)

        saved = save_bytes(b"x", "blobs/a.bin")

        assert saved == str((tmp_path / "blobs" / "a.bin").resolve())
        assert file_exists("blobs/a.bin")
        assert not (tmp_path / "elsewhere").exists()
