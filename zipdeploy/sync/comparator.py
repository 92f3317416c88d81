"""Fingerprint comparison logic for deployments and drift checks."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..digest import ABSENT, FingerprintSet
from ..utils import is_multipart_etag
from .modes import UploadStrategy


class UploadAction(str, Enum):
    """Actions that can be taken for an archive entry during deploy."""

    UPLOAD = "upload"
    """Upload the entry to the target bucket"""

    SKIP = "skip"
    """Target object already matches (no action needed)"""


@dataclass
class UploadDecision:
    """Represents a decision about how to deploy one entry."""

    action: UploadAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    name: str
    """Entry name / object key"""

    source_fingerprint: str
    """Fingerprint of the archive entry"""

    target_fingerprint: Optional[str] = None
    """Fingerprint of the target object, if it exists and was looked up"""


class DriftStatus(str, Enum):
    """Outcome of re-evaluating one name during a drift check."""

    UNCHANGED = "unchanged"
    """Source still matches the recorded fingerprint"""

    CHANGED = "changed"
    """Source content differs from the recorded fingerprint"""

    MISSING_FROM_SOURCE = "missing_from_source"
    """Name is no longer present in the source archive"""

    TARGET_MISMATCH = "target_mismatch"
    """Source is unchanged but the target object differs or is missing"""

    NEW = "new"
    """Name appeared in the source but was never recorded"""


@dataclass
class DriftEntry:
    """Drift result for a single name."""

    name: str
    status: DriftStatus
    recorded: Optional[str]
    source: Optional[str]
    target: Optional[str] = None

    @property
    def drifted(self) -> bool:
        return self.status != DriftStatus.UNCHANGED


@dataclass
class DriftReport:
    """Detailed result of a drift check."""

    entries: list[DriftEntry] = field(default_factory=list)

    updated_state: FingerprintSet = field(default_factory=dict)
    """Fingerprint set to persist in place of the recorded one"""

    @property
    def drifted(self) -> list[DriftEntry]:
        return [e for e in self.entries if e.drifted]

    @property
    def has_drift(self) -> bool:
        return any(e.drifted for e in self.entries)

    def counts(self) -> dict[str, int]:
        """Number of entries per drift status."""
        counts = {status.value: 0 for status in DriftStatus}
        for entry in self.entries:
            counts[entry.status.value] += 1
        return counts


class FingerprintComparator:
    """Compares fingerprint sets to decide uploads and detect drift."""

    def __init__(self, strategy: UploadStrategy = UploadStrategy.FORCE_ALL):
        """Initialize comparator.

        Args:
            strategy: Upload strategy used for deploy decisions
        """
        self.strategy = strategy

    # =========================
    # Deploy decisions
    # =========================

    def compare_uploads(
        self,
        source: FingerprintSet,
        target: Optional[FingerprintSet] = None,
    ) -> list[UploadDecision]:
        """Decide, per archive entry, whether it has to be uploaded.

        Args:
            source: Fingerprints of the archive entries
            target: Fingerprints of the target bucket objects; required by
                    the skip-unchanged strategy, ignored by force-all

        Returns:
            List of UploadDecision objects, sorted by name
        """
        if self.strategy.requires_target_scan and target is None:
            raise ValueError(
                f"Strategy {self.strategy.value} requires target fingerprints"
            )

        return [
            self._decide_upload(name, source[name], (target or {}).get(name))
            for name in sorted(source)
        ]

    def _decide_upload(
        self, name: str, source_fp: str, target_fp: Optional[str]
    ) -> UploadDecision:
        """Decide what to do with a single entry."""
        if self.strategy == UploadStrategy.FORCE_ALL:
            return UploadDecision(
                action=UploadAction.UPLOAD,
                reason="Force-all strategy uploads every entry",
                name=name,
                source_fingerprint=source_fp,
                target_fingerprint=target_fp,
            )

        if target_fp is None:
            reason = "New entry (not in target bucket)"
        elif is_multipart_etag(target_fp):
            # Multipart ETags are not content hashes, so equality is unknown
            reason = "Target object has a multipart ETag"
        elif target_fp != source_fp:
            reason = "Content differs from target object"
        else:
            return UploadDecision(
                action=UploadAction.SKIP,
                reason="Target object is identical",
                name=name,
                source_fingerprint=source_fp,
                target_fingerprint=target_fp,
            )

        return UploadDecision(
            action=UploadAction.UPLOAD,
            reason=reason,
            name=name,
            source_fingerprint=source_fp,
            target_fingerprint=target_fp,
        )

    # =========================
    # Drift detection
    # =========================

    def apply_drift(
        self, prior: FingerprintSet, source: FingerprintSet
    ) -> FingerprintSet:
        """Re-evaluate recorded fingerprints against the current source.

        Only names present in ``prior`` are considered. A name whose source
        fingerprint differs takes the source fingerprint; a name missing from
        the source becomes ABSENT; everything else carries over.

        Args:
            prior: Previously recorded fingerprints
            source: Current source fingerprints

        Returns:
            Updated fingerprint set
        """
        updated: FingerprintSet = {}
        for name, recorded in prior.items():
            source_fp = source.get(name)
            if source_fp is None or source_fp != recorded:
                updated[name] = source_fp if source_fp is not None else ABSENT
            else:
                updated[name] = recorded
        return updated

    def classify_drift(
        self,
        prior: FingerprintSet,
        source: FingerprintSet,
        target: Optional[FingerprintSet] = None,
        include_new: bool = False,
    ) -> DriftReport:
        """Classify every tracked name against source and target.

        Args:
            prior: Previously recorded fingerprints
            source: Current source fingerprints
            target: Current target bucket fingerprints (optional)
            include_new: Also report source names that were never recorded

        Returns:
            DriftReport whose updated_state matches apply_drift()
        """
        entries: list[DriftEntry] = []

        for name in sorted(prior):
            recorded = prior[name]
            source_fp = source.get(name)
            target_fp = target.get(name) if target is not None else None

            if source_fp is None:
                status = DriftStatus.MISSING_FROM_SOURCE
            elif source_fp != recorded:
                status = DriftStatus.CHANGED
            elif target is not None and target_fp != source_fp:
                status = DriftStatus.TARGET_MISMATCH
            else:
                status = DriftStatus.UNCHANGED

            entries.append(
                DriftEntry(
                    name=name,
                    status=status,
                    recorded=recorded,
                    source=source_fp,
                    target=target_fp,
                )
            )

        if include_new:
            for name in sorted(set(source) - set(prior)):
                entries.append(
                    DriftEntry(
                        name=name,
                        status=DriftStatus.NEW,
                        recorded=None,
                        source=source[name],
                        target=target.get(name) if target is not None else None,
                    )
                )

        return DriftReport(
            entries=entries, updated_state=self.apply_drift(prior, source)
        )
