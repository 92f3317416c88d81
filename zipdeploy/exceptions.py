"""Exceptions raised by zipdeploy."""

from typing import Optional


class ZipDeployError(Exception):
    """Base exception for all zipdeploy errors."""

    pass


class ConfigError(ZipDeployError):
    """Configuration is missing or invalid."""

    pass


class FormatError(ZipDeployError):
    """A locator string or a downloaded payload has an invalid format."""

    pass


class ArchiveTooLargeError(FormatError):
    """The source archive exceeds the configured size ceiling."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"Archive size {size} bytes exceeds the configured limit of {limit} bytes"
        )


class TransferError(ZipDeployError):
    """Transport failure while talking to the storage service."""

    pass


class SourceNotFoundError(TransferError):
    """The source object (or the requested version of it) does not exist."""

    pass


class ListingError(TransferError):
    """Listing the objects of a bucket failed."""

    pass


class EntryReadError(ZipDeployError):
    """An archive entry could not be decompressed or read."""

    def __init__(self, name: str, reason: Optional[str] = None):
        self.name = name
        message = f"Failed to read archive entry '{name}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UploadError(ZipDeployError):
    """A single archive entry failed to reach the target bucket."""

    def __init__(self, name: str, bucket: str, reason: Optional[str] = None):
        self.name = name
        self.bucket = bucket
        message = f"Failed to upload '{name}' to bucket '{bucket}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class StateError(ZipDeployError):
    """A deployment state transition is not allowed from the current phase."""

    pass
