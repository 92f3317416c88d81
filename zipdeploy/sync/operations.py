"""Upload operations for archive entries."""

import logging
from typing import Optional

from ..archive import ArchiveEntry, ArchiveReader
from ..content_type import ContentTypeResolver
from ..storage import S3Storage
from ..utils import SNIFF_LENGTH

logger = logging.getLogger(__name__)


class UploadOperations:
    """Streams archive entries into a target bucket."""

    def __init__(
        self,
        storage: S3Storage,
        resolver: Optional[ContentTypeResolver] = None,
    ):
        """Initialize upload operations.

        Args:
            storage: Storage client for the target bucket
            resolver: Content-type resolver (default table if not provided)
        """
        self.storage = storage
        self.resolver = resolver or ContentTypeResolver()

    def content_type_for(self, reader: ArchiveReader, entry: ArchiveEntry) -> str:
        """Resolve the Content-Type an entry is uploaded with.

        The payload is only opened when the extension table has no mapping.
        """
        mime_type = self.resolver.from_name(entry.name)
        if mime_type:
            return mime_type
        mime_type = self.resolver.sniff(reader.head(entry, SNIFF_LENGTH))
        logger.debug(f"Sniffed content type {mime_type} for {entry.name}")
        return mime_type

    def upload_entry(
        self, reader: ArchiveReader, entry: ArchiveEntry, target_bucket: str
    ) -> str:
        """Upload one archive entry under its full name.

        The payload is streamed from the decompression reader.

        Args:
            reader: Archive holding the entry
            entry: Entry to upload
            target_bucket: Target bucket name

        Returns:
            The Content-Type the object was stored with

        Raises:
            EntryReadError: If the entry cannot be decompressed
            UploadError: If storing the object fails
        """
        content_type = self.content_type_for(reader, entry)
        with reader.open(entry) as stream:
            self.storage.upload_stream(target_bucket, entry.name, stream, content_type)
        logger.debug(f"Uploaded {entry.name} to {target_bucket} as {content_type}")
        return content_type
