"""Upload strategies for deployments."""

from enum import Enum


class UploadStrategy(str, Enum):
    """Decides which archive entries a deployment uploads."""

    FORCE_ALL = "force-all"
    """Upload every entry, whether or not the target already matches"""

    SKIP_UNCHANGED = "skip-unchanged"
    """Upload only entries whose fingerprint differs from the target object"""

    @property
    def requires_target_scan(self) -> bool:
        """Whether the target bucket must be listed before uploading."""
        return self == UploadStrategy.SKIP_UNCHANGED

    @classmethod
    def from_string(cls, value: str) -> "UploadStrategy":
        """Parse a strategy name or abbreviation.

        Args:
            value: "force-all" / "fa" or "skip-unchanged" / "su"
                   (underscores and camelCase are accepted as well)

        Returns:
            UploadStrategy

        Raises:
            ValueError: If the value names no strategy

        Examples:
            >>> UploadStrategy.from_string("skipUnchanged")
            <UploadStrategy.SKIP_UNCHANGED: 'skip-unchanged'>
            >>> UploadStrategy.from_string("fa")
            <UploadStrategy.FORCE_ALL: 'force-all'>
        """
        normalized = value.strip().lower().replace("_", "-")
        aliases = {
            "force-all": cls.FORCE_ALL,
            "forceall": cls.FORCE_ALL,
            "fa": cls.FORCE_ALL,
            "skip-unchanged": cls.SKIP_UNCHANGED,
            "skipunchanged": cls.SKIP_UNCHANGED,
            "su": cls.SKIP_UNCHANGED,
        }
        if normalized not in aliases:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"Invalid upload strategy: {value!r} (valid: {valid})")
        return aliases[normalized]
