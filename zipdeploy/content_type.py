"""Content-type resolution for uploaded objects."""

import logging
import mimetypes
from typing import Optional

import magic

from .utils import DEFAULT_CONTENT_TYPE

logger = logging.getLogger(__name__)


class ContentTypeResolver:
    """Resolves the Content-Type of an archive entry.

    The extension table is consulted first. When it has no mapping the type
    is sniffed from the leading payload bytes with libmagic, and
    application/octet-stream is used if sniffing yields nothing.

    Examples:
        >>> resolver = ContentTypeResolver()
        >>> resolver.from_name("assets/style.css")
        'text/css'
        >>> resolver.sniff(b"")
        'application/octet-stream'
    """

    def __init__(self, extra_types: Optional[dict[str, str]] = None):
        """Initialize resolver.

        Args:
            extra_types: Additional extension -> MIME type mappings
                         (e.g. {".webmanifest": "application/manifest+json"}),
                         taking precedence over the system table
        """
        self._table = mimetypes.MimeTypes()
        for ext, mime_type in (extra_types or {}).items():
            if not ext.startswith("."):
                ext = f".{ext}"
            self._table.add_type(mime_type, ext.lower())

    def from_name(self, name: str) -> Optional[str]:
        """Look up a MIME type by file extension, None if unknown."""
        mime_type, _ = self._table.guess_type(name, strict=False)
        if mime_type is None:
            # Extensions are matched case-insensitively
            mime_type, _ = self._table.guess_type(name.lower(), strict=False)
        return mime_type

    def sniff(self, head: bytes) -> str:
        """Detect a MIME type from leading payload bytes."""
        if not head:
            return DEFAULT_CONTENT_TYPE
        try:
            mime_type = magic.from_buffer(head, mime=True)
        except magic.MagicException as e:
            logger.debug(f"Content sniffing failed: {e}")
            return DEFAULT_CONTENT_TYPE
        return mime_type or DEFAULT_CONTENT_TYPE
