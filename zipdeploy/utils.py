"""Utility functions and constants for zipdeploy."""

# =============================================================================
# Constants for archive and transfer operations
# =============================================================================

# Read size when copying object bodies and archive entries (1 MB)
DEFAULT_CHUNK_SIZE: int = 1024 * 1024

# Archives up to this size stay in memory before spilling to disk (64 MB)
DEFAULT_SPOOL_THRESHOLD: int = 64 * 1024 * 1024

# Number of leading payload bytes inspected when sniffing a content type
SNIFF_LENGTH: int = 2048

# Largest object S3 accepts in a single PUT (5 GB)
MAX_SINGLE_PUT_SIZE: int = 5 * 1024 * 1024 * 1024

DEFAULT_CONTENT_TYPE: str = "application/octet-stream"


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def parse_size(value: str) -> int:
    """Parse a human-readable size into bytes.

    Accepts plain integers as well as values with a B, KB, MB or GB suffix
    (case-insensitive, binary multiples).

    Args:
        value: Size string such as "512", "10MB" or "1.5 GB"

    Returns:
        Size in bytes

    Raises:
        ValueError: If the value cannot be parsed or is negative

    Examples:
        >>> parse_size("512")
        512
        >>> parse_size("2KB")
        2048
        >>> parse_size("1.5 MB")
        1572864
    """
    text = str(value).strip().upper()
    multipliers = {"GB": 1024**3, "MB": 1024**2, "KB": 1024, "B": 1}

    multiplier = 1
    for suffix, factor in multipliers.items():
        if text.endswith(suffix):
            text = text[: -len(suffix)].strip()
            multiplier = factor
            break

    try:
        size = int(float(text) * multiplier)
    except ValueError as e:
        raise ValueError(f"Invalid size: {value!r}") from e

    if size < 0:
        raise ValueError(f"Size must not be negative: {value!r}")
    return size


# =============================================================================
# ETag utilities
# =============================================================================


def strip_etag(etag: str) -> str:
    """Remove the quoting S3 puts around ETag values.

    Examples:
        >>> strip_etag('"9d5ed678fe57bcca610140957afab571"')
        '9d5ed678fe57bcca610140957afab571'
        >>> strip_etag('W/"abc"')
        'abc'
    """
    if etag.startswith("W/"):
        etag = etag[2:]
    return etag.strip('"')


def is_multipart_etag(etag: str) -> bool:
    """Check whether an ETag belongs to a multipart upload.

    Multipart ETags have the form ``<md5-of-part-md5s>-<part count>`` and
    are not an MD5 of the object content.

    Examples:
        >>> is_multipart_etag("d41d8cd98f00b204e9800998ecf8427e")
        False
        >>> is_multipart_etag("a7d414b9133d6483d9a1c4e04e856e3b-3")
        True
    """
    return "-" in etag
