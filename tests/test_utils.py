"""
Tests for object key naming and role classification.
"""

import pytest

from photo_report_backend.models import ImageReference, ObjectRole
from photo_report_backend.utils import artifact_key, key_from_url, sanitize_name, source_key


class TestKeyNaming:
    def test_source_key_format(self):
        assert source_key(3, "photo.png", timestamp=1700000000000) == "img-1700000000000-3-photo.png"

    def test_source_key_sanitizes_original_name(self):
        assert source_key(0, "../My Photo (1).png", timestamp=1) == "img-1-0-My-Photo-1-.png"

    def test_source_key_falls_back_when_name_is_unusable(self):
        assert source_key(0, "???", timestamp=1) == "img-1-0-image"

    def test_artifact_key_format(self):
        assert artifact_key("job-42", timestamp=1700000000000) == "pdf-job-42-1700000000000.pdf"

    def test_artifact_keys_differ_across_runs(self):
        assert artifact_key("job", timestamp=1) != artifact_key("job", timestamp=2)

    def test_sanitize_name_strips_directories(self):
        assert sanitize_name("/etc/passwd", "image") == "passwd"


class TestKeyFromUrl:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://abc.supabase.co/storage/v1/object/public/pdfs/img-1-0-a.png", "img-1-0-a.png"),
            ("https://example.com/pdfs/pdf-1-2.pdf?X-Amz-Signature=abc#frag", "pdf-1-2.pdf"),
            ("/pdfs/img-1-0-My%20Photo.png", "img-1-0-My Photo.png"),
            ("img-1-0-a.png", "img-1-0-a.png"),
        ],
    )
    def test_extracts_last_path_segment(self, url, expected):
        assert key_from_url(url) == expected


class TestObjectRole:
    @pytest.mark.parametrize(
        ("key", "role"),
        [
            ("img-123-0-a.png", ObjectRole.SOURCE),
            ("pdf-123-456.pdf", ObjectRole.ARTIFACT),
            ("photo.png", ObjectRole.UNKNOWN),
            ("image-1.png", ObjectRole.UNKNOWN),
        ],
    )
    def test_role_from_key_prefix(self, key, role):
        assert ObjectRole.from_key(key) is role


class TestImageReference:
    def test_requires_exactly_one_source(self):
        with pytest.raises(ValueError):
            ImageReference()
        with pytest.raises(ValueError):
            ImageReference(data=b"x", url="https://example.com/a.png")

    def test_describe(self):
        assert ImageReference.from_url("https://example.com/a.png").describe() == "https://example.com/a.png"
        assert ImageReference.from_bytes(b"abc", filename="a.png").describe() == "a.png"
        assert ImageReference.from_bytes(b"abc").describe() == "<3 inline bytes>"
