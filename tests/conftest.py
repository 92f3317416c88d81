"""Shared fixtures: an in-memory S3 client and archive builders."""

import hashlib
import io
import warnings
import zipfile
from typing import Optional

import pytest
from botocore.exceptions import ClientError

from zipdeploy.archive import ArchiveFetcher
from zipdeploy.storage import S3Storage
from zipdeploy.sync import SyncEngine


def client_error(code: str, operation: str) -> ClientError:
    """Build a botocore ClientError with the given error code."""
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def make_zip(entries, compression=zipfile.ZIP_DEFLATED) -> bytes:
    """Build ZIP bytes from (name, payload) pairs, in order."""
    buffer = io.BytesIO()
    with warnings.catch_warnings():
        # zipfile warns about duplicate names, which some tests need
        warnings.simplefilter("ignore", UserWarning)
        with zipfile.ZipFile(buffer, "w", compression=compression) as zf:
            for name, payload in entries:
                zf.writestr(name, payload)
    return buffer.getvalue()


def md5(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def multipart_etag(data: bytes, part_size: int) -> str:
    """ETag S3 assigns to an object uploaded in parts of ``part_size``."""
    parts = [data[i : i + part_size] for i in range(0, len(data), part_size)]
    digest = hashlib.md5(b"".join(hashlib.md5(p).digest() for p in parts))
    return f'"{digest.hexdigest()}-{len(parts)}"'


class FakePaginator:
    """Stand-in for the list_objects_v2 paginator."""

    def __init__(self, client: "FakeS3Client"):
        self.client = client

    def paginate(self, Bucket: str):
        if Bucket not in self.client.buckets:
            raise client_error("NoSuchBucket", "ListObjectsV2")
        keys = sorted(self.client.buckets[Bucket])
        size = self.client.page_size
        if not keys:
            yield {"KeyCount": 0}
            return
        for start in range(0, len(keys), size):
            yield {
                "KeyCount": len(keys[start : start + size]),
                "Contents": [
                    {
                        "Key": key,
                        "ETag": self.client.buckets[Bucket][key][-1]["ETag"],
                        "Size": len(self.client.buckets[Bucket][key][-1]["Body"]),
                    }
                    for key in keys[start : start + size]
                ],
            }


class FakeS3Client:
    """Versioned in-memory S3 covering the calls zipdeploy makes.

    Every put keeps the previous versions. ``fail_upload_at`` makes the
    n-th upload_fileobj call (1-based) fail with a ClientError.
    """

    def __init__(self, page_size: int = 1000):
        self.buckets: dict[str, dict[str, list[dict]]] = {}
        self.page_size = page_size
        self.fail_upload_at: Optional[int] = None
        self.upload_calls: list[str] = []
        self._version_counter = 0

    def create_bucket(self, bucket: str) -> None:
        self.buckets.setdefault(bucket, {})

    def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str = "binary/octet-stream",
        etag: Optional[str] = None,
    ) -> str:
        """Store an object version and return its version id."""
        self.create_bucket(bucket)
        self._version_counter += 1
        version_id = f"v{self._version_counter}"
        self.buckets[bucket].setdefault(key, []).append(
            {
                "Body": data,
                "ContentType": content_type,
                "ETag": etag or f'"{md5(data)}"',
                "VersionId": version_id,
            }
        )
        return version_id

    def latest(self, bucket: str, key: str) -> dict:
        return self.buckets[bucket][key][-1]

    def keys(self, bucket: str) -> list[str]:
        return sorted(self.buckets.get(bucket, {}))

    # boto3 client API

    def get_object(self, Bucket: str, Key: str, VersionId: Optional[str] = None):
        if Bucket not in self.buckets:
            raise client_error("NoSuchBucket", "GetObject")
        versions = self.buckets[Bucket].get(Key)
        if not versions:
            raise client_error("NoSuchKey", "GetObject")
        if VersionId is None:
            obj = versions[-1]
        else:
            matches = [v for v in versions if v["VersionId"] == VersionId]
            if not matches:
                raise client_error("NoSuchVersion", "GetObject")
            obj = matches[0]
        return {
            "Body": io.BytesIO(obj["Body"]),
            "ContentLength": len(obj["Body"]),
            "ContentType": obj["ContentType"],
            "ETag": obj["ETag"],
            "VersionId": obj["VersionId"],
        }

    def get_paginator(self, operation_name: str) -> FakePaginator:
        assert operation_name == "list_objects_v2"
        return FakePaginator(self)

    def upload_fileobj(self, Fileobj, Bucket, Key, ExtraArgs=None, Config=None):
        self.upload_calls.append(Key)
        if (
            self.fail_upload_at is not None
            and len(self.upload_calls) == self.fail_upload_at
        ):
            raise client_error("InternalError", "PutObject")
        if Bucket not in self.buckets:
            raise client_error("NoSuchBucket", "PutObject")
        data = Fileobj.read()
        content_type = (ExtraArgs or {}).get("ContentType", "binary/octet-stream")
        etag = None
        # boto3 switches to a multipart upload above the threshold
        threshold = Config.multipart_threshold if Config else 8 * 1024 * 1024
        if len(data) >= threshold:
            chunksize = Config.multipart_chunksize if Config else 8 * 1024 * 1024
            etag = multipart_etag(data, chunksize)
        self.put(Bucket, Key, data, content_type=content_type, etag=etag)


@pytest.fixture
def s3():
    """In-memory S3 with an empty source and target bucket."""
    client = FakeS3Client()
    client.create_bucket("artifacts")
    client.create_bucket("www")
    return client


@pytest.fixture
def storage(s3):
    return S3Storage(s3)


@pytest.fixture
def engine(storage):
    return SyncEngine(storage, fetcher=ArchiveFetcher(storage, spool_threshold=1024))
