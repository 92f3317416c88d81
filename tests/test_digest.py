"""Tests for the digest functions."""

import io

import pytest
from conftest import make_zip, md5

from zipdeploy.archive import ArchiveReader
from zipdeploy.digest import (
    ABSENT,
    digest_archive,
    digest_target_bucket,
    fingerprint,
)
from zipdeploy.exceptions import ListingError

MD5_A = "7fc56270e7a70fa81a5935b72eacbe29"
MD5_B = "9d5ed678fe57bcca610140957afab571"


class TestFingerprint:
    """Tests for fingerprint."""

    def test_known_values(self):
        assert fingerprint(b"A") == MD5_A
        assert fingerprint(b"B") == MD5_B
        assert fingerprint(b"") == "d41d8cd98f00b204e9800998ecf8427e"

    def test_absent_marker_is_not_a_fingerprint(self):
        assert ABSENT == ""
        assert fingerprint(b"") != ABSENT


class TestDigestArchive:
    """Tests for digest_archive."""

    def test_digest(self):
        data = make_zip([("file1.txt", b"A"), ("file2.js", b"B")])
        with ArchiveReader(io.BytesIO(data)) as reader:
            assert digest_archive(reader) == {"file1.txt": MD5_A, "file2.js": MD5_B}

    def test_nested_names_kept_verbatim(self):
        data = make_zip([("assets/css/site.css", b"body{}")])
        with ArchiveReader(io.BytesIO(data)) as reader:
            assert digest_archive(reader) == {"assets/css/site.css": md5(b"body{}")}

    def test_empty_archive(self):
        with ArchiveReader(io.BytesIO(make_zip([]))) as reader:
            assert digest_archive(reader) == {}

    def test_deterministic(self):
        data = make_zip([(f"f{i}.txt", f"payload {i}".encode()) for i in range(20)])
        with ArchiveReader(io.BytesIO(data)) as reader:
            first = digest_archive(reader)
            second = digest_archive(reader)
        assert first == second

    def test_large_entry_hashed_across_chunks(self):
        payload = b"0123456789abcdef" * 200_000
        data = make_zip([("big.bin", payload)])
        with ArchiveReader(io.BytesIO(data)) as reader:
            assert digest_archive(reader) == {"big.bin": md5(payload)}

    def test_duplicate_name_last_wins(self):
        data = make_zip([("a.txt", b"first"), ("a.txt", b"second")])
        with ArchiveReader(io.BytesIO(data)) as reader:
            assert digest_archive(reader) == {"a.txt": md5(b"second")}


class TestDigestTargetBucket:
    """Tests for digest_target_bucket."""

    def test_empty_bucket(self, storage):
        assert digest_target_bucket(storage, "www") == {}

    def test_strips_etag_quotes(self, s3, storage):
        s3.put("www", "file1.txt", b"A")
        s3.put("www", "file2.js", b"B")
        assert digest_target_bucket(storage, "www") == {
            "file1.txt": MD5_A,
            "file2.js": MD5_B,
        }

    def test_follows_pagination(self, s3, storage):
        s3.page_size = 2
        for i in range(5):
            s3.put("www", f"obj{i}", f"{i}".encode())
        result = digest_target_bucket(storage, "www")
        assert sorted(result) == [f"obj{i}" for i in range(5)]
        assert result["obj3"] == md5(b"3")

    def test_multipart_etag_kept(self, s3, storage):
        s3.put("www", "big.bin", b"...", etag='"a7d414b9133d6483d9a1c4e04e856e3b-3"')
        assert digest_target_bucket(storage, "www") == {
            "big.bin": "a7d414b9133d6483d9a1c4e04e856e3b-3"
        }

    def test_missing_bucket(self, storage):
        with pytest.raises(ListingError, match="nope"):
            digest_target_bucket(storage, "nope")
