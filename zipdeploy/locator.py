"""Source archive locators."""

from dataclasses import dataclass
from typing import Optional

from .exceptions import FormatError

SEPARATOR = "/"


@dataclass(frozen=True)
class SourceLocator:
    """Identifies a ZIP archive object in a source bucket."""

    bucket: str
    """Source bucket name"""

    key: str
    """Object key of the archive (may itself contain '/')"""

    version: Optional[str] = None
    """Immutable version id; None resolves to the latest version"""

    def __post_init__(self) -> None:
        if not self.bucket:
            raise FormatError("Source bucket must not be empty")
        if not self.key:
            raise FormatError("Source key must not be empty")
        if self.version == "":
            object.__setattr__(self, "version", None)

    @classmethod
    def parse(cls, value: str, version: Optional[str] = None) -> "SourceLocator":
        """Parse a ``bucket/key`` string.

        Only the first separator splits, so keys can contain '/'.

        Args:
            value: Composite locator string
            version: Optional version id to pin

        Returns:
            SourceLocator instance

        Raises:
            FormatError: If the string does not split into two non-empty parts

        Examples:
            >>> SourceLocator.parse("artifacts/releases/site.zip").key
            'releases/site.zip'
        """
        parts = value.split(SEPARATOR, 1)
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise FormatError(
                f"Invalid source format: {value!r} (expected 'bucket/path/to/archive.zip')"
            )
        return cls(bucket=parts[0], key=parts[1], version=version)

    def __str__(self) -> str:
        return f"{self.bucket}{SEPARATOR}{self.key}"

    def describe(self) -> str:
        """Human-readable form including the version, if pinned."""
        if self.version:
            return f"{self} (version {self.version})"
        return f"{self} (latest)"
