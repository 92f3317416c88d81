"""Core sync engine for deploying archives and checking drift."""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..archive import ArchiveFetcher
from ..digest import FingerprintSet, digest_archive, digest_target_bucket
from ..exceptions import UploadError
from ..locator import SourceLocator
from ..storage import S3Storage
from .comparator import DriftReport, FingerprintComparator, UploadAction, UploadDecision
from .modes import UploadStrategy
from .operations import UploadOperations

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]
"""Called after each upload with (entry name, uploads done, uploads planned)"""


@dataclass
class DeployResult:
    """Outcome of a successful deployment."""

    fingerprints: FingerprintSet
    """Fingerprints of the deployed archive"""

    decisions: list[UploadDecision] = field(default_factory=list)
    """Per-entry upload decisions, sorted by name"""

    content_types: dict[str, str] = field(default_factory=dict)
    """Content-Type of every uploaded entry"""

    elapsed: float = 0.0
    """Wall-clock duration in seconds"""

    @property
    def uploaded(self) -> list[str]:
        return [d.name for d in self.decisions if d.action == UploadAction.UPLOAD]

    @property
    def skipped(self) -> list[str]:
        return [d.name for d in self.decisions if d.action == UploadAction.SKIP]


class SyncEngine:
    """Deploys archives to a target bucket and detects drift.

    Every operation is a single blocking attempt: nothing is retried and
    nothing is rolled back.

    Examples:
        >>> engine = SyncEngine(S3Storage())
        >>> locator = SourceLocator.parse("artifacts/site.zip")
        >>> state = engine.deploy(locator, "www-bucket")
        >>> engine.check_drift(locator, "www-bucket", state)
    """

    def __init__(
        self,
        storage: S3Storage,
        fetcher: Optional[ArchiveFetcher] = None,
        operations: Optional[UploadOperations] = None,
    ):
        """Initialize sync engine.

        Args:
            storage: Storage client used for source and target buckets
            fetcher: Archive fetcher (created from storage if not provided)
            operations: Upload operations (created from storage if not provided)
        """
        self.storage = storage
        self.fetcher = fetcher or ArchiveFetcher(storage)
        self.operations = operations or UploadOperations(storage)
        self.last_result: Optional[DeployResult] = None

    def deploy(
        self,
        locator: SourceLocator,
        target_bucket: str,
        strategy: UploadStrategy = UploadStrategy.FORCE_ALL,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> FingerprintSet:
        """Deploy an archive to a target bucket.

        Each entry is uploaded under its full name with a resolved
        Content-Type. With FORCE_ALL every entry is uploaded; with
        SKIP_UNCHANGED the target bucket is listed first and entries whose
        fingerprint already matches are skipped. Either way the target ends
        up in the same state.

        Args:
            locator: Source archive
            target_bucket: Bucket to deploy into
            strategy: Upload strategy
            progress_callback: Optional callback invoked after each upload

        Returns:
            Fingerprints of the archive, to be recorded as deployment state

        Raises:
            TransferError: If the archive cannot be downloaded or the target
                listed
            FormatError: If the source object is not a ZIP archive
            EntryReadError: If an entry cannot be decompressed
            UploadError: If an entry fails to upload; entries uploaded
                before it stay in the target bucket
        """
        start_time = time.time()
        self.last_result = None
        comparator = FingerprintComparator(strategy)

        logger.debug(
            f"Deploying {locator.describe()} to {target_bucket} "
            f"(strategy: {strategy.value})"
        )

        with self.fetcher.fetch(locator) as reader:
            entries = reader.entries()

            if strategy.requires_target_scan:
                source = digest_archive(reader)
                target = digest_target_bucket(self.storage, target_bucket)
                decisions = comparator.compare_uploads(source, target)
                pending_names = {
                    d.name for d in decisions if d.action == UploadAction.UPLOAD
                }
                pending = [e for e in entries if e.name in pending_names]
            else:
                pending = entries

            content_types: dict[str, str] = {}
            for index, entry in enumerate(pending, start=1):
                try:
                    content_types[entry.name] = self.operations.upload_entry(
                        reader, entry, target_bucket
                    )
                except UploadError:
                    logger.error(
                        f"Upload of {entry.name} failed after {index - 1} of "
                        f"{len(pending)} entries reached {target_bucket}"
                    )
                    raise
                if progress_callback:
                    progress_callback(entry.name, index, len(pending))

            if not strategy.requires_target_scan:
                source = digest_archive(reader)
                decisions = comparator.compare_uploads(source)

        elapsed = time.time() - start_time
        self.last_result = DeployResult(
            fingerprints=source,
            decisions=decisions,
            content_types=content_types,
            elapsed=elapsed,
        )
        logger.debug(
            f"Deployed {len(pending)} of {len(entries)} entries to {target_bucket} "
            f"in {elapsed:.2f}s"
        )
        return source

    def check_drift(
        self,
        locator: SourceLocator,
        target_bucket: str,
        prior_state: FingerprintSet,
    ) -> FingerprintSet:
        """Re-evaluate recorded fingerprints against the current source.

        Only names in ``prior_state`` are evaluated. A name whose source
        content changed takes the new fingerprint and a name that vanished
        from the source becomes ABSENT. The target bucket is never modified.

        Args:
            locator: Source archive
            target_bucket: Bucket the recorded state belongs to
            prior_state: Previously recorded fingerprints

        Returns:
            Updated fingerprint set

        Raises:
            TransferError: If the archive cannot be downloaded
            FormatError: If the source object is not a ZIP archive
            EntryReadError: If an entry cannot be decompressed
        """
        source = self.source_fingerprints(locator)
        updated = FingerprintComparator().apply_drift(prior_state, source)

        changed = sorted(n for n in updated if updated[n] != prior_state[n])
        if changed:
            logger.info(
                f"Drift detected for {target_bucket}: {len(changed)} of "
                f"{len(prior_state)} tracked object(s) changed"
            )
        else:
            logger.debug(f"No drift for {target_bucket}")
        return updated

    def drift_report(
        self,
        locator: SourceLocator,
        target_bucket: str,
        prior_state: FingerprintSet,
        include_new: bool = False,
    ) -> DriftReport:
        """Build a detailed drift report using both source and target.

        Args:
            locator: Source archive
            target_bucket: Bucket the recorded state belongs to
            prior_state: Previously recorded fingerprints
            include_new: Also report source entries that were never recorded

        Returns:
            DriftReport; its updated_state equals what check_drift() returns

        Raises:
            TransferError: If the archive cannot be downloaded or the target
                listed
        """
        source = self.source_fingerprints(locator)
        target = self.target_fingerprints(target_bucket)
        return FingerprintComparator().classify_drift(
            prior_state, source, target, include_new=include_new
        )

    def source_fingerprints(self, locator: SourceLocator) -> FingerprintSet:
        """Download an archive and fingerprint its entries."""
        with self.fetcher.fetch(locator) as reader:
            return digest_archive(reader)

    def target_fingerprints(self, bucket: str) -> FingerprintSet:
        """Fingerprint the objects currently stored in a bucket."""
        return digest_target_bucket(self.storage, bucket)
