"""Deployment state and its transitions.

A deployment moves between three phases:

    ABSENT --deploy--> DEPLOYED --refresh--> DRIFTED
       ^                  |  ^                  |
       +----teardown------+  +-----deploy-------+

Each transition returns a new DeploymentState; states are never merged.
The engine never persists state itself. DeploymentStateManager stores
states as JSON for hosts that need persistence, such as the CLI.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from ..digest import FingerprintSet
from ..exceptions import FormatError, StateError
from ..locator import SourceLocator
from .comparator import DriftReport
from .engine import ProgressCallback, SyncEngine
from .modes import UploadStrategy

logger = logging.getLogger(__name__)


class DeploymentPhase(str, Enum):
    """Lifecycle phase of a deployment."""

    ABSENT = "absent"
    """Nothing has been deployed (or the deployment was torn down)"""

    DEPLOYED = "deployed"
    """Target matches the recorded fingerprints"""

    DRIFTED = "drifted"
    """Source no longer matches the recorded fingerprints"""


@dataclass
class DeploymentState:
    """Recorded state of one target bucket."""

    target_bucket: str
    """Bucket the archive is deployed to"""

    source: Optional[SourceLocator] = None
    """Archive the state was derived from"""

    fingerprints: FingerprintSet = field(default_factory=dict)
    """Fingerprints most recently observed for deployed objects"""

    phase: DeploymentPhase = DeploymentPhase.ABSENT
    """Current lifecycle phase"""

    updated_at: Optional[str] = None
    """ISO timestamp of the last transition"""

    def to_dict(self) -> dict:
        """Convert state to dictionary for JSON serialization."""
        return {
            "target_bucket": self.target_bucket,
            "source": str(self.source) if self.source else None,
            "source_version": self.source.version if self.source else None,
            "fingerprints": dict(sorted(self.fingerprints.items())),
            "phase": self.phase.value,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DeploymentState":
        """Create DeploymentState from dictionary."""
        source = data.get("source")
        return cls(
            target_bucket=data["target_bucket"],
            source=(
                SourceLocator.parse(source, version=data.get("source_version"))
                if source
                else None
            ),
            fingerprints=dict(data.get("fingerprints", {})),
            phase=DeploymentPhase(data.get("phase", DeploymentPhase.ABSENT.value)),
            updated_at=data.get("updated_at"),
        )


def deploy(
    engine: SyncEngine,
    state: Optional[DeploymentState],
    locator: SourceLocator,
    target_bucket: str,
    strategy: UploadStrategy = UploadStrategy.FORCE_ALL,
    progress_callback: Optional[ProgressCallback] = None,
) -> DeploymentState:
    """Deploy an archive and return the resulting DEPLOYED state.

    Allowed from every phase. On failure the exception propagates and the
    previous state stays the current one.
    """
    if state is not None and state.target_bucket != target_bucket:
        raise StateError(
            f"State belongs to bucket {state.target_bucket}, not {target_bucket}"
        )

    fingerprints = engine.deploy(
        locator, target_bucket, strategy=strategy, progress_callback=progress_callback
    )
    return DeploymentState(
        target_bucket=target_bucket,
        source=locator,
        fingerprints=fingerprints,
        phase=DeploymentPhase.DEPLOYED,
        updated_at=datetime.now().isoformat(),
    )


def refresh(engine: SyncEngine, state: DeploymentState) -> DeploymentState:
    """Re-read the source and return the updated state.

    The phase becomes DRIFTED when any recorded fingerprint changed. A
    drifted deployment stays DRIFTED until it is deployed again.

    Raises:
        StateError: If nothing is deployed
    """
    if state.phase == DeploymentPhase.ABSENT or state.source is None:
        raise StateError(f"Nothing is deployed to {state.target_bucket}")

    updated = engine.check_drift(
        state.source, state.target_bucket, state.fingerprints
    )
    return _refreshed(state, updated)


def refresh_from_report(state: DeploymentState, report: DriftReport) -> DeploymentState:
    """Apply a drift report produced by SyncEngine.drift_report().

    Gives the same result as refresh() without downloading the archive again.

    Raises:
        StateError: If nothing is deployed
    """
    if state.phase == DeploymentPhase.ABSENT:
        raise StateError(f"Nothing is deployed to {state.target_bucket}")
    return _refreshed(state, report.updated_state)


def _refreshed(state: DeploymentState, updated: FingerprintSet) -> DeploymentState:
    if state.phase == DeploymentPhase.DRIFTED or updated != state.fingerprints:
        phase = DeploymentPhase.DRIFTED
    else:
        phase = DeploymentPhase.DEPLOYED
    return replace(
        state,
        fingerprints=updated,
        phase=phase,
        updated_at=datetime.now().isoformat(),
    )


def teardown(state: DeploymentState) -> DeploymentState:
    """Forget a deployment.

    Objects in the target bucket are left untouched.
    """
    return DeploymentState(
        target_bucket=state.target_bucket,
        phase=DeploymentPhase.ABSENT,
        updated_at=datetime.now().isoformat(),
    )


class DeploymentStateManager:
    """Persists deployment states as JSON files.

    One file per target bucket, keyed by a hash of the bucket name.
    """

    def __init__(self, state_dir: Optional[Path] = None):
        """Initialize state manager.

        Args:
            state_dir: Directory to store state files. Defaults to
                      ~/.config/zipdeploy/state/
        """
        if state_dir is None:
            state_dir = Path.home() / ".config" / "zipdeploy" / "state"
        self.state_dir = state_dir

    def _get_state_file(self, target_bucket: str) -> Path:
        key = hashlib.sha256(target_bucket.encode()).hexdigest()[:16]
        return self.state_dir / f"{key}.json"

    def load_state(self, target_bucket: str) -> Optional[DeploymentState]:
        """Load the recorded state of a target bucket.

        Args:
            target_bucket: Target bucket name

        Returns:
            DeploymentState if found, None otherwise
        """
        state_file = self._get_state_file(target_bucket)

        if not state_file.exists():
            logger.debug(f"No deployment state found at {state_file}")
            return None

        try:
            with open(state_file, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            state = DeploymentState.from_dict(data)
        except (
            json.JSONDecodeError,
            KeyError,
            TypeError,
            ValueError,
            FormatError,
        ) as e:
            logger.warning(f"Failed to load deployment state from {state_file}: {e}")
            return None

        logger.debug(
            f"Loaded deployment state with {len(state.fingerprints)} object(s) "
            f"from {state.updated_at}"
        )
        return state

    def save_state(self, state: DeploymentState) -> Path:
        """Save the state of a target bucket, replacing any previous one.

        Returns:
            Path of the written state file
        """
        self.state_dir.mkdir(parents=True, exist_ok=True)
        state_file = self._get_state_file(state.target_bucket)
        with open(state_file, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)
        logger.debug(
            f"Saved deployment state with {len(state.fingerprints)} object(s) "
            f"to {state_file}"
        )
        return state_file

    def clear_state(self, target_bucket: str) -> bool:
        """Remove the recorded state of a target bucket.

        Returns:
            True if state was cleared, False if no state existed
        """
        state_file = self._get_state_file(target_bucket)

        if state_file.exists():
            state_file.unlink()
            logger.debug(f"Cleared deployment state at {state_file}")
            return True
        return False
