"""zipdeploy - deploy ZIP archives from S3 into S3 buckets and detect drift."""

from .archive import ArchiveEntry, ArchiveFetcher, ArchiveReader
from .content_type import ContentTypeResolver
from .digest import (
    ABSENT,
    FingerprintSet,
    digest_archive,
    digest_target_bucket,
    fingerprint,
)
from .exceptions import (
    ArchiveTooLargeError,
    ConfigError,
    EntryReadError,
    FormatError,
    ListingError,
    SourceNotFoundError,
    StateError,
    TransferError,
    UploadError,
    ZipDeployError,
)
from .locator import SourceLocator
from .storage import S3Storage

__version__ = "0.1.0"

__all__ = [
    "ABSENT",
    "ArchiveEntry",
    "ArchiveFetcher",
    "ArchiveReader",
    "ArchiveTooLargeError",
    "ConfigError",
    "ContentTypeResolver",
    "EntryReadError",
    "FingerprintSet",
    "FormatError",
    "ListingError",
    "S3Storage",
    "SourceLocator",
    "SourceNotFoundError",
    "StateError",
    "TransferError",
    "UploadError",
    "ZipDeployError",
    "digest_archive",
    "digest_target_bucket",
    "fingerprint",
]
