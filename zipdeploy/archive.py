"""Archive retrieval from a source bucket.

The fetcher copies the archive object into a spooled temporary file, which
stays in memory for small archives and spills to disk for large ones, and
opens it as a random-access ZIP archive.
"""

import io
import logging
import tempfile
import zipfile
import zlib
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import IO, Any, Optional

from botocore.exceptions import BotoCoreError

from .exceptions import ArchiveTooLargeError, EntryReadError, FormatError, TransferError
from .locator import SourceLocator
from .storage import S3Storage
from .utils import DEFAULT_CHUNK_SIZE, DEFAULT_SPOOL_THRESHOLD, format_size

logger = logging.getLogger(__name__)

# Failures zipfile and its decompressors raise for a damaged or unsupported entry
ENTRY_READ_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    NotImplementedError,
    RuntimeError,
    OSError,
)


@dataclass
class ArchiveEntry:
    """A file stored in an archive."""

    name: str
    """Relative path inside the archive, used verbatim as the object key"""

    size: int
    """Uncompressed size in bytes"""

    compressed_size: int
    """Compressed size in bytes"""

    info: zipfile.ZipInfo = field(repr=False, compare=False)
    """Underlying ZIP member"""


class ArchiveReader:
    """Random-access reader over an opened ZIP archive.

    Use as a context manager so the backing spool is released:

        >>> with fetcher.fetch(locator) as reader:
        ...     names = [e.name for e in reader.entries()]
    """

    def __init__(self, fileobj: IO[bytes], source: str = "<archive>"):
        """Open an archive.

        Args:
            fileobj: Seekable binary file holding the ZIP data
            source: Description of where the data came from (for messages)

        Raises:
            FormatError: If the data is not a valid ZIP archive
        """
        self.source = source
        self._fileobj = fileobj
        try:
            self._zip = zipfile.ZipFile(fileobj)
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            fileobj.close()
            raise FormatError(f"Failed to unzip {source}: {e}") from e

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the archive and release the backing file."""
        self._zip.close()
        self._fileobj.close()

    def entries(self) -> list[ArchiveEntry]:
        """List the file entries of the archive in archive order.

        Directory members carry no payload and are left out. If a name occurs
        more than once, every occurrence is returned.
        """
        entries = [
            ArchiveEntry(
                name=info.filename,
                size=info.file_size,
                compressed_size=info.compress_size,
                info=info,
            )
            for info in self._zip.infolist()
            if not info.is_dir()
        ]

        names = [e.name for e in entries]
        if len(names) != len(set(names)):
            duplicates = sorted({n for n in names if names.count(n) > 1})
            logger.warning(
                f"Archive {self.source} contains duplicate entry names; "
                f"the last occurrence wins: {', '.join(duplicates)}"
            )
        return entries

    def open(self, entry: ArchiveEntry) -> "EntryStream":
        """Open an entry's decompressed payload as a stream.

        Raises:
            EntryReadError: If the entry cannot be opened
        """
        try:
            raw = self._zip.open(entry.info)
        except ENTRY_READ_ERRORS as e:
            raise EntryReadError(entry.name, str(e)) from e
        return EntryStream(entry.name, raw)

    def iter_chunks(
        self, entry: ArchiveEntry, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> Iterator[bytes]:
        """Yield an entry's decompressed payload in chunks.

        Raises:
            EntryReadError: If the payload cannot be decompressed
        """
        with self.open(entry) as stream:
            for chunk in iter(lambda: stream.read(chunk_size), b""):
                yield chunk

    def read(self, entry: ArchiveEntry) -> bytes:
        """Read an entry's whole decompressed payload."""
        return b"".join(self.iter_chunks(entry))

    def head(self, entry: ArchiveEntry, length: int) -> bytes:
        """Read at most ``length`` leading bytes of an entry's payload."""
        with self.open(entry) as stream:
            data = bytearray()
            while len(data) < length:
                chunk = stream.read(length - len(data))
                if not chunk:
                    break
                data += chunk
            return bytes(data)


class EntryStream(io.RawIOBase):
    """Readable, non-seekable stream over one decompressed entry.

    Decompression failures surface as EntryReadError naming the entry,
    including when the stream is consumed by a transfer manager.
    """

    def __init__(self, name: str, raw: IO[bytes]):
        super().__init__()
        self.name = name
        self._raw = raw

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        try:
            data = self._raw.read(len(buffer))
        except ENTRY_READ_ERRORS as e:
            raise EntryReadError(self.name, str(e)) from e
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        if not self.closed:
            self._raw.close()
        super().close()


class ArchiveFetcher:
    """Downloads archives from a source bucket."""

    def __init__(
        self,
        storage: S3Storage,
        max_archive_size: Optional[int] = None,
        spool_threshold: int = DEFAULT_SPOOL_THRESHOLD,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """Initialize archive fetcher.

        Args:
            storage: Storage client for the source bucket
            max_archive_size: Size ceiling in bytes (None disables the check)
            spool_threshold: Bytes kept in memory before spilling to disk
            chunk_size: Read size when copying the object body
        """
        self.storage = storage
        self.max_archive_size = max_archive_size
        self.spool_threshold = spool_threshold
        self.chunk_size = chunk_size

    def fetch(self, locator: SourceLocator) -> ArchiveReader:
        """Download an archive and open it.

        Args:
            locator: Source archive location; a pinned version is honoured

        Returns:
            ArchiveReader over the downloaded archive

        Raises:
            TransferError: If the download fails
            ArchiveTooLargeError: If the archive exceeds max_archive_size
            FormatError: If the object is not a ZIP archive
        """
        logger.debug(f"Fetching archive {locator.describe()}")
        response = self.storage.get_object(
            locator.bucket, locator.key, locator.version
        )

        declared = response.get("ContentLength")
        if (
            self.max_archive_size is not None
            and declared is not None
            and declared > self.max_archive_size
        ):
            response["Body"].close()
            raise ArchiveTooLargeError(declared, self.max_archive_size)

        spool = tempfile.SpooledTemporaryFile(max_size=self.spool_threshold)
        try:
            total = self._copy_body(response["Body"], spool)
        except BaseException:
            spool.close()
            raise

        logger.debug(
            f"Downloaded {format_size(total)} from {locator} "
            f"(version {response.get('VersionId') or locator.version or 'latest'})"
        )
        spool.seek(0)
        return ArchiveReader(spool, source=str(locator))

    def _copy_body(self, body: Any, sink: IO[bytes]) -> int:
        """Copy a streaming object body into ``sink``, enforcing the ceiling."""
        total = 0
        try:
            while True:
                chunk = body.read(self.chunk_size)
                if not chunk:
                    break
                total += len(chunk)
                if self.max_archive_size is not None and total > self.max_archive_size:
                    raise ArchiveTooLargeError(total, self.max_archive_size)
                sink.write(chunk)
        except (BotoCoreError, OSError) as e:
            raise TransferError(f"Failed to read object from S3: {e}") from e
        finally:
            body.close()
        return total
