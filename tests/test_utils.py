"""Tests for utility functions."""

import pytest

from zipdeploy.exceptions import (
    ArchiveTooLargeError,
    EntryReadError,
    FormatError,
    ListingError,
    SourceNotFoundError,
    TransferError,
    UploadError,
    ZipDeployError,
)
from zipdeploy.utils import format_size, is_multipart_etag, parse_size, strip_etag


class TestFormatSize:
    """Tests for format_size."""

    def test_bytes(self):
        assert format_size(0) == "0 B"
        assert format_size(1023) == "1023 B"

    def test_kilobytes(self):
        assert format_size(1024) == "1.0 KB"
        assert format_size(1536) == "1.5 KB"

    def test_megabytes(self):
        assert format_size(1024 * 1024) == "1.0 MB"

    def test_gigabytes(self):
        assert format_size(3 * 1024**3) == "3.0 GB"


class TestParseSize:
    """Tests for parse_size."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("512", 512),
            ("512B", 512),
            ("2KB", 2048),
            ("2kb", 2048),
            ("1.5 MB", 1572864),
            ("1GB", 1024**3),
            (100, 100),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_size(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "10 TB", "MB"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_size(value)

    def test_negative(self):
        with pytest.raises(ValueError, match="negative"):
            parse_size("-5")


class TestEtags:
    """Tests for ETag helpers."""

    def test_strip_quotes(self):
        assert (
            strip_etag('"9d5ed678fe57bcca610140957afab571"')
            == "9d5ed678fe57bcca610140957afab571"
        )

    def test_strip_unquoted_is_noop(self):
        assert strip_etag("abc") == "abc"

    def test_strip_weak_prefix(self):
        assert strip_etag('W/"abc"') == "abc"

    def test_multipart(self):
        assert is_multipart_etag("a7d414b9133d6483d9a1c4e04e856e3b-3")
        assert not is_multipart_etag("a7d414b9133d6483d9a1c4e04e856e3b")


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_everything_derives_from_base(self):
        for exc in (
            FormatError("x"),
            TransferError("x"),
            SourceNotFoundError("x"),
            ListingError("x"),
            EntryReadError("a.txt"),
            UploadError("a.txt", "www"),
            ArchiveTooLargeError(10, 5),
        ):
            assert isinstance(exc, ZipDeployError)

    def test_archive_too_large_is_format_error(self):
        exc = ArchiveTooLargeError(10, 5)
        assert isinstance(exc, FormatError)
        assert exc.size == 10
        assert exc.limit == 5

    def test_entry_read_error_names_entry(self):
        exc = EntryReadError("assets/app.js", "Bad CRC-32")
        assert exc.name == "assets/app.js"
        assert "assets/app.js" in str(exc)
        assert "Bad CRC-32" in str(exc)

    def test_upload_error_names_entry_and_bucket(self):
        exc = UploadError("index.html", "www", "AccessDenied")
        assert exc.name == "index.html"
        assert exc.bucket == "www"
        assert "index.html" in str(exc)
        assert "www" in str(exc)
