"""Content fingerprints for archives and buckets.

A fingerprint is the lowercase hex MD5 of an object's bytes, which is what
S3 reports as the ETag of an object uploaded in a single part.
"""

import hashlib
import logging

from .archive import ArchiveReader
from .storage import S3Storage
from .utils import strip_etag

logger = logging.getLogger(__name__)

FingerprintSet = dict[str, str]
"""Mapping of object name to fingerprint"""

ABSENT = ""
"""Fingerprint recorded for a tracked name that no longer exists"""


def fingerprint(data: bytes) -> str:
    """Compute the fingerprint of a byte payload.

    Examples:
        >>> fingerprint(b"A")
        '7fc56270e7a70fa81a5935b72eacbe29'
    """
    return hashlib.md5(data).hexdigest()


def digest_archive(reader: ArchiveReader) -> FingerprintSet:
    """Fingerprint every entry of an archive.

    Args:
        reader: Opened archive

    Returns:
        Mapping of entry name to fingerprint

    Raises:
        EntryReadError: On the first entry that cannot be read; no partial
            result is returned
    """
    hashes: FingerprintSet = {}
    for entry in reader.entries():
        hasher = hashlib.md5()
        for chunk in reader.iter_chunks(entry):
            hasher.update(chunk)
        hashes[entry.name] = hasher.hexdigest()

    logger.debug(f"Computed {len(hashes)} fingerprint(s) for {reader.source}")
    return hashes


def digest_target_bucket(storage: S3Storage, bucket: str) -> FingerprintSet:
    """Fingerprint every object currently stored in a bucket.

    The storage service's ETag is used as the fingerprint, stripped of its
    quotes. Objects uploaded in multiple parts carry an ETag that is not a
    content MD5 and will never match an archive fingerprint.

    Args:
        storage: Storage client
        bucket: Bucket name

    Returns:
        Mapping of object key to fingerprint

    Raises:
        ListingError: If listing the bucket fails
    """
    found: FingerprintSet = {}
    for obj in storage.iter_objects(bucket):
        found[obj["Key"]] = strip_etag(obj.get("ETag", ""))

    logger.debug(f"Found {len(found)} object(s) in target bucket {bucket}")
    return found
